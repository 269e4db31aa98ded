# edara/services/notification_service.py
"""
Efectos secundarios de los tickets: historial, notificaciones in-app, correo y push.

Todo es best-effort: se ejecuta después de escribir el estado del ticket y
cualquier fallo se registra en el log sin propagarse.
"""
from __future__ import annotations

import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Any, Awaitable, Callable, Dict, List, Optional
from urllib.parse import urlencode

import httpx
from fastapi import BackgroundTasks
from starlette.concurrency import run_in_threadpool

from edara.core.config import settings
from edara.core.db import get_db
from edara.core.security import generate_action_token
from edara.models.common import ACTIVITY_EMAIL_SENT, ACTIVITY_NOTIFICATION_SENT
from edara.models.ticket import Notification
from edara.repositories import activity_repo
from edara.repositories import department_admins_repo as admins_repo
from edara.services import approval
from edara.services.templates import render

logger = logging.getLogger(__name__)


async def dispatch(background: Optional[BackgroundTasks], func: Callable[..., Awaitable[Any]], *args, **kwargs):
    """Encola el efecto en las background tasks de la respuesta, o lo ejecuta en línea."""
    if background is not None:
        background.add_task(func, *args, **kwargs)
    else:
        await func(*args, **kwargs)


async def record(ticket_id: str, activity_type: str, user: dict | None = None,
                 recipient: dict | None = None, description: str | None = None) -> None:
    try:
        await activity_repo.log(ticket_id, activity_type, user=user, recipient=recipient, description=description)
        logger.info("Activity logged: %s for ticket %s", activity_type, ticket_id)
    except Exception:
        logger.exception("Failed to log activity %s for ticket %s", activity_type, ticket_id)


# ============================
#          Transportes
# ============================

def _send_email_sync(to: str, subject: str, html: str) -> None:
    msg = EmailMessage()
    msg["From"] = settings.smtp_sender
    msg["To"] = to
    msg["Subject"] = subject
    msg.set_content("هذه الرسالة تتطلب برنامج بريد يدعم HTML.")
    msg.add_alternative(html, subtype="html")

    if settings.smtp_use_ssl:
        server = smtplib.SMTP_SSL(settings.smtp_host, settings.smtp_port,
                                  context=ssl.create_default_context(), timeout=20)
    else:
        server = smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=20)
    with server:
        if not settings.smtp_use_ssl:
            server.starttls(context=ssl.create_default_context())
        if settings.smtp_username:
            server.login(settings.smtp_username, settings.smtp_password or "")
        server.send_message(msg)


async def send_email(to: str | None, subject: str, html: str) -> bool:
    if not to:
        logger.warning("Email '%s' skipped: recipient has no address", subject)
        return False
    if not settings.smtp_host:
        logger.info("Email '%s' to %s skipped: SMTP_HOST not configured", subject, to)
        return False
    try:
        await run_in_threadpool(_send_email_sync, to, subject, html)
        logger.info("Email sent to %s: %s", to, subject)
        return True
    except Exception:
        logger.exception("Failed to send email to %s", to)
        return False


async def send_push(user_id: str, title: str, body: str, data: Dict[str, Any] | None = None) -> bool:
    if not settings.push_webhook_url:
        return False
    payload = {"userId": user_id, "title": title, "body": body, "data": data or {}}
    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            resp = await client.post(settings.push_webhook_url, json=payload)
            resp.raise_for_status()
        return True
    except Exception:
        logger.exception("Failed to send push notification to %s", user_id)
        return False


async def _notify_in_app(user: dict, ticket: dict, title: str, message: str, kind: str) -> None:
    try:
        await activity_repo.add_notification(
            Notification(user_id=user["id"], ticket_id=ticket["id"], title=title, message=message, type=kind)
        )
    except Exception:
        logger.exception("Failed to create notification for %s", user.get("id"))


# ============================
#           Enlaces
# ============================

def action_url(ticket_id: str, action: str) -> str:
    query = urlencode({"ticketId": ticket_id, "action": action, "token": generate_action_token(ticket_id, action)})
    return f"{settings.public_base_url.rstrip('/')}/handle-ticket-action?{query}"


def ticket_url(ticket_id: str) -> str:
    return f"{settings.app_home_url.rstrip('/')}/tickets/{ticket_id}"


def _kind(ticket: dict) -> str:
    return "طلب الشراء" if ticket.get("is_purchase_ticket") else "تذكرة الدعم"


async def _users_by_id(user_ids: List[str]) -> Dict[str, dict]:
    if not user_ids:
        return {}
    users = await get_db().users.find({"id": {"$in": user_ids}}).to_list(length=None)
    return {u["id"]: u for u in users}


# ============================
#        Notificaciones
# ============================

async def notify_tier(ticket: dict) -> None:
    """Avisa a los aprobadores del nivel actual (in-app, correo con enlaces de acción y push)."""
    try:
        admins = await admins_repo.list_by_department(ticket["department_id"])
        targets = approval.eligible_approvers(ticket, admins)
        if not targets:
            logger.warning(
                "Ticket %s is stalled: no eligible approver at level %s in department %s",
                ticket["id"], approval.current_order(ticket), ticket["department_id"],
            )
            return
        users = await _users_by_id(sorted({a["user_id"] for a in targets}))
        level = approval.current_order(ticket)
        kind = _kind(ticket)
        for user in users.values():
            title = f"{kind} بانتظار الموافقة"
            message = f"{ticket['ticket_number']} - {ticket['subject']}"
            await _notify_in_app(user, ticket, title, message, "ticket_created")
            await record(ticket["id"], ACTIVITY_NOTIFICATION_SENT, recipient=user,
                         description=f"Approval request for level {level}")
            html = render(
                "approval_request_email.html",
                kind=kind, recipient_name=user.get("full_name"), level=level, ticket=ticket,
                purchase_phase=approval.in_purchase_phase(ticket),
                approve_url=action_url(ticket["id"], "approve"), reject_url=action_url(ticket["id"], "reject"),
            )
            if await send_email(user.get("email"), f"{title}: {ticket['ticket_number']}", html):
                await record(ticket["id"], ACTIVITY_EMAIL_SENT, recipient=user,
                             description=f"Approval email sent for level {level}")
            await send_push(user["id"], title, message, {"url": f"/tickets/{ticket['id']}", "ticketId": ticket["id"]})
    except Exception:
        logger.exception("notify_tier failed for ticket %s", ticket.get("id"))


# tipo -> (verbo para el log, título, mensaje del correo)
_CREATOR_MESSAGES = {
    "ticket_approved": ("approved", "تمت الموافقة على", "تمت الموافقة النهائية على طلبك وجاري العمل عليه."),
    "ticket_rejected": ("rejected", "تم رفض", "نأسف لإبلاغك بأنه تم رفض طلبك. يمكنك التواصل مع الإدارة للحصول على مزيد من المعلومات."),
    "ticket_closed": ("closed", "تم إغلاق", "تم إغلاق طلبك."),
}


async def notify_creator(ticket: dict, kind: str, reason: str | None = None) -> None:
    try:
        verb, action, message = _CREATOR_MESSAGES[kind]
        creator = await get_db().users.find_one({"id": ticket["user_id"]})
        if not creator:
            logger.warning("Ticket %s creator %s not found; notification skipped", ticket["id"], ticket["user_id"])
            return
        title = f"{action} {_kind(ticket)}"
        short = f"{action} {ticket['ticket_number']} - {ticket['subject']}"
        await _notify_in_app(creator, ticket, title, short, kind)
        html = render(
            "creator_update_email.html",
            headline=title, recipient_name=creator.get("full_name"), message=message,
            ticket=ticket, reason=reason, ticket_url=ticket_url(ticket["id"]),
        )
        if await send_email(creator.get("email"), f"{title}: {ticket['ticket_number']}", html):
            await record(ticket["id"], ACTIVITY_EMAIL_SENT, recipient=creator, description=f"Ticket {verb} email sent")
        await send_push(creator["id"], title, short, {"url": f"/tickets/{ticket['id']}", "ticketId": ticket["id"]})
    except Exception:
        logger.exception("notify_creator(%s) failed for ticket %s", kind, ticket.get("id"))


async def notify_assignee(ticket: dict, assignee: dict) -> None:
    try:
        title = f"تم إسناد {_kind(ticket)} إليك"
        short = f"تم إسناد {ticket['ticket_number']} - {ticket['subject']} إليك"
        await _notify_in_app(assignee, ticket, title, short, "ticket_assigned")
        html = render(
            "creator_update_email.html",
            headline=title, recipient_name=assignee.get("full_name"),
            message="تم إسناد هذا الطلب إليك. يرجى مراجعته والعمل عليه.",
            ticket=ticket, reason=None, ticket_url=ticket_url(ticket["id"]),
        )
        if await send_email(assignee.get("email"), f"{title}: {ticket['ticket_number']}", html):
            await record(ticket["id"], ACTIVITY_EMAIL_SENT, recipient=assignee, description="Assignment email sent")
        await send_push(assignee["id"], title, short, {"url": f"/tickets/{ticket['id']}", "ticketId": ticket["id"]})
    except Exception:
        logger.exception("notify_assignee failed for ticket %s", ticket.get("id"))
