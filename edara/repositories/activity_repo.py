# edara/repositories/activity_repo.py
from __future__ import annotations
from typing import List
from edara.core.db import get_db
from edara.models.ticket import ActivityLog, Notification

async def log(ticket_id: str, activity_type: str, user: dict | None = None,
              recipient: dict | None = None, description: str | None = None) -> dict:
    entry = ActivityLog(
        ticket_id=ticket_id,
        activity_type=activity_type,
        user_id=(user or {}).get("id"),
        user_name=(user or {}).get("full_name"),
        recipient_id=(recipient or {}).get("id"),
        recipient_name=(recipient or {}).get("full_name"),
        description=description,
    ).model_dump()
    await get_db().ticket_activity_logs.insert_one(entry)
    return entry

async def list_by_ticket(ticket_id: str, limit: int = 500) -> List[dict]:
    cur = get_db().ticket_activity_logs.find({"ticket_id": ticket_id}).sort("created_at", 1).limit(limit)
    return await cur.to_list(length=limit)

async def add_notification(notification: Notification) -> dict:
    doc = notification.model_dump()
    await get_db().notifications.insert_one(doc)
    return doc

async def list_notifications(user_id: str, unread_only: bool = False, limit: int = 100) -> List[dict]:
    filt = {"user_id": user_id}
    if unread_only:
        filt["is_read"] = False
    cur = get_db().notifications.find(filt).sort("created_at", -1).limit(limit)
    return await cur.to_list(length=limit)

async def mark_notification_read(notification_id: str, user_id: str) -> int:
    res = await get_db().notifications.update_one(
        {"id": notification_id, "user_id": user_id}, {"$set": {"is_read": True}}
    )
    return res.matched_count
