# edara/services/ticket_service.py
import logging
from datetime import datetime, timezone
from typing import Dict, Any, Optional

from fastapi import BackgroundTasks, HTTPException

from edara.core.db import get_db
from edara.models.common import (
    ALLOWED_TRANSITIONS,
    ACTIVITY_TICKET_CREATED, ACTIVITY_APPROVED_BY_APP, ACTIVITY_APPROVED_BY_EMAIL,
    ACTIVITY_REJECTED_BY_APP, ACTIVITY_REJECTED_BY_EMAIL, ACTIVITY_PASSED_TO_NEXT_LEVEL,
    ACTIVITY_TICKET_APPROVED, ACTIVITY_TICKET_ASSIGNED, ACTIVITY_TICKET_CLOSED,
    ACTIVITY_COST_CENTER_ASSIGNED,
)
from edara.models.ticket import TicketCreate, TicketInDB
from edara.repositories import tickets_repo as repo
from edara.repositories import department_admins_repo as admins_repo
from edara.services import approval
from edara.services import notification_service as notify
from edara.utils.mongo_helpers import clean_doc

logger = logging.getLogger(__name__)

PASSED_TO_NEXT_LEVEL = "passed_to_next_level"
FULLY_APPROVED = "approved"

def ensure_transition(old: str, new: str):
    if new not in ALLOWED_TRANSITIONS.get(old, set()):
        raise HTTPException(status_code=400, detail=f"Transition not allowed: {old} → {new}")

def normalize(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Quita campos internos y completa los que faltan en documentos antiguos."""
    out = clean_doc(dict(doc))
    out.setdefault("status", "pending")
    if out.get("next_admin_order") is None:
        out["next_admin_order"] = 0
    out["is_purchase_phase"] = bool(out.get("is_purchase_phase"))
    return out

async def get_or_404(ticket_id: str) -> Dict[str, Any]:
    doc = await repo.find_by_id(ticket_id)
    if not doc:
        raise HTTPException(404, "Ticket not found")
    return normalize(doc)


# ============================
#          Creación
# ============================

async def create_ticket(payload: TicketCreate, current: dict, background: Optional[BackgroundTasks] = None) -> Dict[str, Any]:
    db = get_db()
    if not await db.departments.find_one({"id": payload.department_id}):
        raise HTTPException(400, "Department not found")

    data = payload.model_dump()
    if not payload.is_purchase_ticket:
        for k in ("purchase_type", "qty", "uom", "budget_value"):
            data[k] = None

    ticket = TicketInDB(
        ticket_number=await repo.next_ticket_number(),
        user_id=current["id"],
        user_name=current["full_name"],
        next_admin_order=0,
        **data,
    ).model_dump()
    await repo.insert(ticket)
    ticket = normalize(ticket)
    logger.info("Ticket %s (%s) created by %s", ticket["ticket_number"], ticket["id"], current["username"])

    await notify.record(ticket["id"], ACTIVITY_TICKET_CREATED, user=current,
                        description=f"Ticket {ticket['ticket_number']} created")
    await notify.dispatch(background, notify.notify_tier, ticket)
    return ticket


# ============================
#   Aprobación / rechazo / cierre
# ============================

def ensure_can_act(ticket: Dict[str, Any], user: dict, admins: list):
    if not approval.can_user_approve(ticket, user["id"], admins):
        raise HTTPException(403, "You are not the next approver for this ticket")

async def _resolve_cost_center(cost_center_id: str) -> Dict[str, Any]:
    cc = await get_db().cost_centers.find_one({"id": cost_center_id, "is_active": True})
    if not cc:
        raise HTTPException(400, "Cost center not found or inactive")
    return cc

async def approve(ticket_id: str, actor: Optional[dict], channel: str = "app",
                  cost_center_id: Optional[str] = None,
                  background: Optional[BackgroundTasks] = None,
                  enforce_cost_center: bool = True) -> Dict[str, Any]:
    """
    Aprueba el nivel actual. Si queda algún nivel con admins, el ticket pasa a
    ese nivel y se avisa a sus aprobadores; si no, queda aprobado del todo.
    En tickets de compra, tras los regulares de un nivel aprueban los admins
    de compras del mismo nivel antes de subir al siguiente.
    ``actor`` es None cuando la acción llega por enlace de correo.
    """
    ticket = await get_or_404(ticket_id)
    ensure_transition(ticket["status"], "approved")

    admins = await admins_repo.list_by_department(ticket["department_id"])
    level = approval.current_order(ticket)
    now = datetime.now(timezone.utc)

    if enforce_cost_center and approval.requires_cost_center(ticket, admins) and not cost_center_id:
        raise HTTPException(422, "A cost center is required to approve this purchase ticket")

    if cost_center_id and ticket.get("is_purchase_ticket"):
        cc = await _resolve_cost_center(cost_center_id)
        await repo.update_by_id(ticket_id, {"$set": {"cost_center_id": cc["id"], "updated_at": now}})
        ticket["cost_center_id"] = cc["id"]
        await notify.record(ticket_id, ACTIVITY_COST_CENTER_ASSIGNED, user=actor,
                            description=f"Cost center assigned: {cc.get('cost_center_name') or cc['id']}")

    activity = ACTIVITY_APPROVED_BY_EMAIL if channel == "email" else ACTIVITY_APPROVED_BY_APP
    await notify.record(ticket_id, activity, user=actor, description=f"Ticket approved via {channel} (level {level})")

    step = approval.next_tier(ticket, admins)
    if step is not None:
        nxt, purchase_phase = step
        # Sin bloqueo: la escritura va solo por id
        await repo.update_by_id(ticket_id, {"$set": {
            "next_admin_order": nxt, "is_purchase_phase": purchase_phase, "updated_at": now,
        }})
        ticket.update(next_admin_order=nxt, is_purchase_phase=purchase_phase, updated_at=now)
        if nxt == level:
            logger.info("Ticket %s passed to purchase approval at level %s", ticket_id, level)
            description = f"Passed to purchase approval at level {level}"
        else:
            logger.info("Ticket %s passed from level %s to level %s", ticket_id, level, nxt)
            description = f"Passed from level {level} to level {nxt}"
        await notify.record(ticket_id, ACTIVITY_PASSED_TO_NEXT_LEVEL, user=actor, description=description)
        await notify.dispatch(background, notify.notify_tier, dict(ticket))
        return {"result": PASSED_TO_NEXT_LEVEL, "ticket": ticket}

    approved_by = actor["id"] if actor else None
    await repo.update_by_id(ticket_id, {"$set": {
        "status": "approved", "approved_at": now, "approved_by": approved_by, "updated_at": now,
    }})
    ticket.update(status="approved", approved_at=now, approved_by=approved_by, updated_at=now)
    logger.info("Ticket %s fully approved at level %s", ticket_id, level)
    await notify.record(ticket_id, ACTIVITY_TICKET_APPROVED, user=actor, description="Final approval")
    await notify.dispatch(background, notify.notify_creator, dict(ticket), "ticket_approved")
    return {"result": FULLY_APPROVED, "ticket": ticket}

async def reject(ticket_id: str, actor: Optional[dict], reason: Optional[str] = None, channel: str = "app",
                 background: Optional[BackgroundTasks] = None) -> Dict[str, Any]:
    ticket = await get_or_404(ticket_id)
    ensure_transition(ticket["status"], "rejected")
    now = datetime.now(timezone.utc)
    reason = (reason or "").strip() or None

    await repo.update_by_id(ticket_id, {"$set": {
        "status": "rejected", "rejected_at": now, "rejection_reason": reason, "updated_at": now,
    }})
    ticket.update(status="rejected", rejected_at=now, rejection_reason=reason, updated_at=now)
    logger.info("Ticket %s rejected at level %s via %s", ticket_id, approval.current_order(ticket), channel)

    activity = ACTIVITY_REJECTED_BY_EMAIL if channel == "email" else ACTIVITY_REJECTED_BY_APP
    await notify.record(ticket_id, activity, user=actor, description=reason or f"Ticket rejected via {channel}")
    await notify.dispatch(background, notify.notify_creator, dict(ticket), "ticket_rejected", reason)
    return ticket

async def close(ticket_id: str, actor: dict, background: Optional[BackgroundTasks] = None) -> Dict[str, Any]:
    ticket = await get_or_404(ticket_id)
    ensure_transition(ticket["status"], "closed")
    now = datetime.now(timezone.utc)
    await repo.update_by_id(ticket_id, {"$set": {"status": "closed", "closed_at": now, "updated_at": now}})
    ticket.update(status="closed", closed_at=now, updated_at=now)
    logger.info("Ticket %s closed by %s", ticket_id, actor["username"])
    await notify.record(ticket_id, ACTIVITY_TICKET_CLOSED, user=actor, description="Ticket closed")
    await notify.dispatch(background, notify.notify_creator, dict(ticket), "ticket_closed")
    return ticket

async def assign(ticket_id: str, to_user: dict, actor: dict, background: Optional[BackgroundTasks] = None) -> Dict[str, Any]:
    ticket = await get_or_404(ticket_id)
    if ticket["status"] in ("rejected", "closed"):
        raise HTTPException(400, f"Cannot assign a {ticket['status']} ticket")
    now = datetime.now(timezone.utc)
    upd = {"assigned_to": to_user["id"], "assigned_to_name": to_user["full_name"], "updated_at": now}
    await repo.update_by_id(ticket_id, {"$set": upd})
    ticket.update(upd)
    await notify.record(ticket_id, ACTIVITY_TICKET_ASSIGNED, user=actor, recipient=to_user,
                        description=f"Assigned to {to_user['full_name']}")
    await notify.dispatch(background, notify.notify_assignee, dict(ticket), to_user)
    return ticket

async def soft_delete(ticket_id: str, actor: dict) -> None:
    ticket = await get_or_404(ticket_id)
    now = datetime.now(timezone.utc)
    await repo.update_by_id(ticket["id"], {"$set": {"is_deleted": True, "deleted_at": now, "deleted_by": actor["id"], "updated_at": now}})
    logger.info("Ticket %s deleted by %s", ticket_id, actor["username"])


# ============================
#   Consultas sobre el roster
# ============================

async def pending_for_user(user_id: str) -> list:
    """Tickets pendientes donde el usuario es el siguiente aprobador."""
    records = await admins_repo.list_by_user(user_id)
    dept_ids = sorted({r["department_id"] for r in records})
    if not dept_ids:
        return []
    tickets = await repo.list_all({"status": "pending", "department_id": {"$in": dept_ids}})
    admins = await admins_repo.list_by_departments(dept_ids)
    out = []
    for t in (normalize(d) for d in tickets):
        if approval.can_user_approve(t, user_id, admins):
            out.append(t)
    return out

async def stalled_tickets() -> list:
    tickets = [normalize(d) for d in await repo.list_all({"status": "pending"})]
    dept_ids = sorted({t["department_id"] for t in tickets})
    admins = await admins_repo.list_by_departments(dept_ids)
    return [t for t in tickets if approval.is_stalled(t, admins)]

async def approval_state(ticket: Dict[str, Any], user: dict) -> Dict[str, Any]:
    admins = await admins_repo.list_by_department(ticket["department_id"])
    eligible = approval.eligible_approvers(ticket, admins)
    names = {}
    if eligible:
        users = await get_db().users.find({"id": {"$in": [a["user_id"] for a in eligible]}}).to_list(length=None)
        names = {u["id"]: u.get("full_name") for u in users}
    is_pending = ticket["status"] == "pending"
    return {
        "current_level": approval.current_order(ticket),
        "is_purchase_phase": approval.in_purchase_phase(ticket),
        "eligible_approvers": [
            {"user_id": a["user_id"], "user_name": names.get(a["user_id"]), "admin_order": a["admin_order"],
             "is_purchase_admin": bool(a.get("is_purchase_admin"))}
            for a in eligible
        ] if is_pending else [],
        "can_approve": is_pending and approval.can_user_approve(ticket, user["id"], admins),
        "requires_cost_center": is_pending and approval.requires_cost_center(ticket, admins),
        "is_stalled": approval.is_stalled(ticket, admins),
    }

async def is_department_member(user_id: str, department_id: str) -> bool:
    records = await admins_repo.list_by_user(user_id)
    return any(r["department_id"] == department_id for r in records)
