# edara/api/routes/notifications.py
from fastapi import APIRouter, Depends, HTTPException
from edara.api.deps import get_current_user
from edara.repositories import activity_repo
from edara.utils.mongo_helpers import clean_doc

router = APIRouter()

@router.get("")
async def my_notifications(unread_only: bool = False, current=Depends(get_current_user)):
    return clean_doc(await activity_repo.list_notifications(current["id"], unread_only=unread_only))

@router.post("/{notification_id}/read")
async def mark_read(notification_id: str, current=Depends(get_current_user)):
    if not await activity_repo.mark_notification_read(notification_id, current["id"]):
        raise HTTPException(404, "Notification not found")
    return {"ok": True}
