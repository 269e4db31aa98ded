# edara/services/report_service.py
from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Literal, Dict, Any, List
from edara.core.db import get_db
from edara.repositories import department_admins_repo as admins_repo
from edara.services import approval

PeriodParam = Literal["daily", "weekly", "monthly"]

NOT_DELETED = {"is_deleted": {"$ne": True}}

def _period_bounds(period: PeriodParam, now: datetime | None = None) -> tuple[datetime, datetime]:
    now = now or datetime.now(timezone.utc)
    if period == "daily":
        start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        end = start + timedelta(days=1)
    elif period == "weekly":
        start = (now - timedelta(days=now.weekday())).replace(hour=0, minute=0, second=0, microsecond=0)
        end = start + timedelta(days=7)
    else:  # monthly
        start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        if start.month == 12:
            end = start.replace(year=start.year + 1, month=1)
        else:
            end = start.replace(month=start.month + 1)
    return start, end

def _avg_approval_hours(docs: List[dict]) -> float:
    hours = [
        (d["approved_at"] - d["created_at"]).total_seconds() / 3600.0
        for d in docs if d.get("approved_at") and d.get("created_at")
    ]
    return round(sum(hours) / len(hours), 2) if hours else 0.0

async def ticket_summary(period: PeriodParam) -> Dict[str, Any]:
    db = get_db()
    start, end = _period_bounds(period)
    in_range = {"$gte": start, "$lt": end}

    new_count = await db.tickets.count_documents({**NOT_DELETED, "created_at": in_range})
    approved_count = await db.tickets.count_documents({**NOT_DELETED, "approved_at": in_range})
    rejected_count = await db.tickets.count_documents({**NOT_DELETED, "status": "rejected", "rejected_at": in_range})
    closed_count = await db.tickets.count_documents({**NOT_DELETED, "status": "closed", "closed_at": in_range})

    approved_docs = await db.tickets.find({**NOT_DELETED, "approved_at": in_range}).to_list(None)

    pending = await db.tickets.find({**NOT_DELETED, "status": "pending"}).to_list(None)
    dept_ids = sorted({t["department_id"] for t in pending})
    admins = await admins_repo.list_by_departments(dept_ids)
    stalled_now = sum(1 for t in pending if approval.is_stalled(t, admins))

    # distribución por departamento de los tickets creados en el periodo
    created = await db.tickets.find({**NOT_DELETED, "created_at": in_range}).to_list(None)
    depts = {d["id"]: d.get("name") for d in await db.departments.find({}).to_list(None)}
    by_dept: Dict[str, Dict[str, Any]] = {}
    for t in created:
        k = t.get("department_id") or "N/A"
        row = by_dept.setdefault(k, {"department_id": k, "department_name": depts.get(k, "N/A"),
                                     "total": 0, "purchase": 0})
        row["total"] += 1
        if t.get("is_purchase_ticket"):
            row["purchase"] += 1

    return {
        "period": period,
        "range": {"start": start.isoformat(), "end": end.isoformat()},
        "new": new_count,
        "approved": approved_count,
        "rejected": rejected_count,
        "closed": closed_count,
        "pending_now": len(pending),
        "stalled_now": stalled_now,
        "avg_approval_hours": _avg_approval_hours(approved_docs),
        "by_department": sorted(by_dept.values(), key=lambda x: (-x["total"], x["department_name"] or "")),
    }
