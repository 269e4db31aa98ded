# edara/api/routes/reports.py
from fastapi import APIRouter, Query, Depends
from edara.api.deps import get_current_user
from edara.services.report_service import ticket_summary

router = APIRouter()

@router.get("/reports/tickets")
async def tickets_report(
    period: str = Query("monthly", pattern="^(daily|weekly|monthly)$"),
    _user=Depends(get_current_user),
):
    return await ticket_summary(period)
