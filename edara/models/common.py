# edara/models/common.py
from typing import Literal

TicketStatus = Literal["pending", "approved", "rejected", "closed"]
TicketPriority = Literal["low", "medium", "high", "urgent"]
UserRole = Literal["admin", "employee"]
TicketAction = Literal["approve", "reject"]

OPEN_STATES = ["pending"]

ALLOWED_TRANSITIONS = {
    "pending": {"approved", "rejected"},
    "approved": {"closed"},
    "rejected": set(),
    "closed": set(),
}

# Tipos de actividad del historial del ticket
ACTIVITY_TICKET_CREATED = "ticket_created"
ACTIVITY_EMAIL_SENT = "email_sent"
ACTIVITY_NOTIFICATION_SENT = "notification_sent"
ACTIVITY_APPROVED_BY_APP = "approved_by_app"
ACTIVITY_APPROVED_BY_EMAIL = "approved_by_email"
ACTIVITY_REJECTED_BY_APP = "rejected_by_app"
ACTIVITY_REJECTED_BY_EMAIL = "rejected_by_email"
ACTIVITY_PASSED_TO_NEXT_LEVEL = "passed_to_next_level"
ACTIVITY_TICKET_APPROVED = "ticket_approved"
ACTIVITY_TICKET_ASSIGNED = "ticket_assigned"
ACTIVITY_TICKET_CLOSED = "ticket_closed"
ACTIVITY_COST_CENTER_ASSIGNED = "cost_center_assigned"

ActivityChannel = Literal["app", "email"]
