# edara/api/routes/ticket_actions.py
# Enlaces de aprobar/rechazar enviados por correo. Siempre responden HTML.
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request as FastAPIRequest
from fastapi.responses import HTMLResponse

from edara.core.config import settings
from edara.core.db import get_db
from edara.core.rate_limit import limiter, ACTION_LIMIT, action_link_key
from edara.core.security import verify_action_token
from edara.repositories import department_admins_repo as admins_repo
from edara.repositories import tickets_repo as repo
from edara.services import approval
from edara.services import ticket_service as svc
from edara.services.templates import render

logger = logging.getLogger(__name__)

router = APIRouter()


def html_page(title: str, message: str, success: bool) -> HTMLResponse:
    return HTMLResponse(render("result.html", title=title, message=message, success=success,
                               home_url=settings.app_home_url))


def _kind(ticket: dict) -> str:
    return "طلب الشراء" if ticket.get("is_purchase_ticket") else "تذكرة الدعم"


@router.get("/handle-ticket-action", response_class=HTMLResponse)
@limiter.limit(ACTION_LIMIT, key_func=action_link_key)
async def handle_ticket_action(
    request: FastAPIRequest,
    background: BackgroundTasks,
    ticketId: Optional[str] = None,
    action: Optional[str] = None,
    token: Optional[str] = None,
    costCenterId: Optional[str] = None,
):
    if not ticketId or not action or not token:
        return html_page("خطأ", "رابط غير صالح. يرجى المحاولة مرة أخرى.", False)
    if not verify_action_token(ticketId, action, token):
        logger.warning("Invalid action token for ticket %s (%s)", ticketId, action)
        return html_page("خطأ", "رابط غير صالح أو منتهي الصلاحية.", False)
    if action not in ("approve", "reject"):
        return html_page("خطأ", "إجراء غير معروف.", False)

    try:
        doc = await repo.find_by_id(ticketId)
        if not doc:
            return html_page("خطأ", "لم يتم العثور على التذكرة.", False)
        ticket = svc.normalize(doc)

        if ticket.get("approved_at") or ticket["status"] in ("approved", "closed"):
            return html_page("تنبيه", "تمت الموافقة على هذه التذكرة بالفعل.", False)
        if ticket["status"] == "rejected":
            return html_page("تنبيه", "هذه التذكرة مرفوضة بالفعل.", False)

        kind = _kind(ticket)
        number = ticket["ticket_number"]

        if action == "reject":
            await svc.reject(ticketId, None, channel="email", background=background)
            return html_page("تم الرفض", f"تم رفض {kind} رقم {number}.", True)

        admins = await admins_repo.list_by_department(ticket["department_id"])
        if approval.requires_cost_center(ticket, admins) and not costCenterId:
            cost_centers = await get_db().cost_centers.find({"is_active": True}).sort("cost_center_name", 1).to_list(None)
            if cost_centers:
                return HTMLResponse(render(
                    "cost_center_form.html", title="اختر مركز التكلفة", ticket_id=ticketId, token=token,
                    ticket_number=number, cost_centers=cost_centers, home_url=settings.app_home_url,
                ))
            # sin centros de costo activos no hay nada que elegir
            logger.warning("Ticket %s requires a cost center but none is active; approving without one", ticketId)
            outcome = await svc.approve(ticketId, None, channel="email", background=background,
                                        enforce_cost_center=False)
        else:
            outcome = await svc.approve(ticketId, None, channel="email", cost_center_id=costCenterId,
                                        background=background)

        if outcome["result"] == svc.PASSED_TO_NEXT_LEVEL:
            return html_page(
                "تم التمرير للمستوى التالي",
                f"تمت الموافقة على المستوى الحالي لـ {kind} رقم {number}. تم إرسال التذكرة للمستوى التالي للموافقة.",
                True,
            )
        return html_page("تمت الموافقة النهائية", f"تمت الموافقة النهائية على {kind} رقم {number} بنجاح.", True)

    except HTTPException as e:
        logger.warning("Email action %s on ticket %s refused: %s", action, ticketId, e.detail)
        return html_page("خطأ", "تعذر تنفيذ الإجراء على هذه التذكرة.", False)
    except Exception:
        logger.exception("Error in handle-ticket-action for ticket %s", ticketId)
        return html_page("خطأ", "حدث خطأ في النظام. يرجى المحاولة لاحقاً.", False)

