# edara/api/routes/tickets.py
import re
import uuid
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query

from edara.api.deps import get_current_user, require_role
from edara.core.config import settings
from edara.core.db import get_db
from edara.models.common import TicketStatus
from edara.models.ticket import TicketCreate, ApprovePayload, RejectPayload, AssignPayload, CommentCreate
from edara.repositories import activity_repo
from edara.repositories import department_admins_repo as admins_repo
from edara.repositories import tickets_repo as repo
from edara.services import ticket_service as svc
from edara.utils.mongo_helpers import clean_doc
from edara.utils.pagination import meta, page_payload, skip_for

router = APIRouter()

SORT_FIELDS = {"created_at", "updated_at", "status", "priority", "ticket_number", "department_id"}


async def _visible_ticket(ticket_id: str, current: dict) -> Dict[str, Any]:
    """Visible para: creador, asignado, miembros del roster del departamento y admins."""
    ticket = await svc.get_or_404(ticket_id)
    if current.get("role") == "admin" or current["id"] in (ticket["user_id"], ticket.get("assigned_to")):
        return ticket
    if await svc.is_department_member(current["id"], ticket["department_id"]):
        return ticket
    raise HTTPException(403, "Not authorized")


@router.post("")
async def create_ticket(payload: TicketCreate, background: BackgroundTasks, current=Depends(get_current_user)):
    return await svc.create_ticket(payload, current, background)


@router.get("")
async def list_tickets(
    current=Depends(get_current_user),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=settings.max_page_size),
    status: Optional[TicketStatus] = None,
    department_id: Optional[str] = None,
    is_purchase_ticket: Optional[bool] = None,
    q: Optional[str] = None,
    sort: Optional[str] = Query("-created_at"),
):
    filt: Dict[str, Any] = {}
    if current.get("role") != "admin":
        records = await admins_repo.list_by_user(current["id"])
        dept_ids = sorted({r["department_id"] for r in records})
        filt["$or"] = [{"user_id": current["id"]}, {"assigned_to": current["id"]}, {"department_id": {"$in": dept_ids}}]
    if status: filt["status"] = status
    if department_id: filt["department_id"] = department_id
    if is_purchase_ticket is not None: filt["is_purchase_ticket"] = is_purchase_ticket
    if q:
        pattern = re.escape(q.strip())
        filt["$and"] = [{"$or": [
            {"subject": {"$regex": pattern, "$options": "i"}},
            {"ticket_number": {"$regex": pattern, "$options": "i"}},
        ]}]

    sort_field, sort_dir = ("created_at", -1)
    if sort:
        if sort.startswith("-"): sort_field, sort_dir = (sort[1:], -1)
        else: sort_field, sort_dir = (sort, 1)
    if sort_field not in SORT_FIELDS:
        sort_field = "created_at"

    m = meta(await repo.count(filt), page, page_size)
    items = await repo.list_paginated(filt, sort_field, sort_dir, skip_for(m), m.page_size)
    return page_payload([svc.normalize(d) for d in items], m)


@router.get("/pending-approvals")
async def pending_approvals(current=Depends(get_current_user)):
    items = await svc.pending_for_user(current["id"])
    return {"items": items, "count": len(items)}


@router.get("/stalled")
async def stalled(current=Depends(require_role(["admin"]))):
    items = await svc.stalled_tickets()
    return {"items": items, "count": len(items)}


@router.get("/{ticket_id}")
async def get_ticket(ticket_id: str, current=Depends(get_current_user)):
    ticket = await _visible_ticket(ticket_id, current)
    return {**ticket, "approval": await svc.approval_state(ticket, current)}


@router.post("/{ticket_id}/approve")
async def approve(ticket_id: str, background: BackgroundTasks, payload: ApprovePayload = ApprovePayload(),
                  current=Depends(get_current_user)):
    ticket = await svc.get_or_404(ticket_id)
    svc.ensure_transition(ticket["status"], "approved")
    svc.ensure_can_act(ticket, current, await admins_repo.list_by_department(ticket["department_id"]))
    return await svc.approve(ticket_id, current, channel="app", cost_center_id=payload.cost_center_id,
                             background=background)


@router.post("/{ticket_id}/reject")
async def reject(ticket_id: str, payload: RejectPayload, background: BackgroundTasks,
                 current=Depends(get_current_user)):
    ticket = await svc.get_or_404(ticket_id)
    svc.ensure_transition(ticket["status"], "rejected")
    svc.ensure_can_act(ticket, current, await admins_repo.list_by_department(ticket["department_id"]))
    return await svc.reject(ticket_id, current, reason=payload.reason, channel="app", background=background)


@router.post("/{ticket_id}/close")
async def close(ticket_id: str, background: BackgroundTasks, current=Depends(get_current_user)):
    ticket = await svc.get_or_404(ticket_id)
    if current.get("role") != "admin" and not await svc.is_department_member(current["id"], ticket["department_id"]):
        raise HTTPException(403, "Only department approvers can close tickets")
    return await svc.close(ticket_id, current, background=background)


@router.post("/{ticket_id}/assign")
async def assign(ticket_id: str, payload: AssignPayload, background: BackgroundTasks,
                 current=Depends(get_current_user)):
    ticket = await svc.get_or_404(ticket_id)
    if current.get("role") != "admin" and not await svc.is_department_member(current["id"], ticket["department_id"]):
        raise HTTPException(403, "Only department approvers can assign tickets")
    target = await get_db().users.find_one({"id": payload.assigned_to})
    if not target:
        raise HTTPException(400, "Target user not found")
    return await svc.assign(ticket_id, target, current, background=background)


@router.delete("/{ticket_id}")
async def soft_delete(ticket_id: str, current=Depends(require_role(["admin"]))):
    await svc.soft_delete(ticket_id, current)
    return {"ok": True}


@router.get("/{ticket_id}/activity")
async def activity(ticket_id: str, current=Depends(get_current_user)):
    await _visible_ticket(ticket_id, current)
    return clean_doc(await activity_repo.list_by_ticket(ticket_id))


@router.get("/{ticket_id}/comments")
async def list_comments(ticket_id: str, current=Depends(get_current_user)):
    ticket = await _visible_ticket(ticket_id, current)
    filt: Dict[str, Any] = {"ticket_id": ticket_id}
    # los comentarios internos solo los ven admins y aprobadores del departamento
    if current.get("role") != "admin" and not await svc.is_department_member(current["id"], ticket["department_id"]):
        filt["is_internal"] = {"$ne": True}
    items = await get_db().ticket_comments.find(filt).sort("created_at", 1).to_list(length=None)
    return clean_doc(items)


@router.post("/{ticket_id}/comments")
async def add_comment(ticket_id: str, payload: CommentCreate, current=Depends(get_current_user)):
    ticket = await _visible_ticket(ticket_id, current)
    is_member = current.get("role") == "admin" or await svc.is_department_member(current["id"], ticket["department_id"])
    doc = {
        "id": uuid.uuid4().hex,
        "ticket_id": ticket_id,
        "user_id": current["id"],
        "user_name": current["full_name"],
        "comment": payload.comment.strip(),
        "is_internal": bool(payload.is_internal and is_member),
        "created_at": datetime.now(timezone.utc),
    }
    await get_db().ticket_comments.insert_one(doc)
    return clean_doc(doc)
