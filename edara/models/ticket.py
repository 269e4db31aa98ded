# edara/models/ticket.py
from pydantic import BaseModel, Field
from datetime import datetime, timezone
from typing import Optional, Literal
import uuid
from edara.models.common import TicketStatus, TicketPriority

class TicketInDB(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    ticket_number: str
    subject: str
    description: str
    priority: TicketPriority = "medium"
    status: TicketStatus = "pending"
    user_id: str
    user_name: str
    department_id: str
    is_purchase_ticket: bool = False
    next_admin_order: int = 0
    # tickets de compra: fase de compras dentro del nivel actual
    is_purchase_phase: bool = False
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    closed_at: Optional[datetime] = None
    assigned_to: Optional[str] = None
    assigned_to_name: Optional[str] = None
    cost_center_id: Optional[str] = None
    # detalle de compra (solo tickets de compra)
    purchase_type: Optional[str] = None
    qty: Optional[float] = None
    uom: Optional[str] = None
    budget_value: Optional[float] = None
    external_link: Optional[str] = None
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    deleted_by: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

class TicketCreate(BaseModel):
    subject: str = Field(min_length=1)
    description: str = Field(min_length=1)
    priority: TicketPriority = "medium"
    department_id: str
    is_purchase_ticket: bool = False
    purchase_type: Optional[str] = None
    qty: Optional[float] = Field(default=None, gt=0)
    uom: Optional[str] = None
    budget_value: Optional[float] = Field(default=None, ge=0)
    external_link: Optional[str] = None

class ApprovePayload(BaseModel):
    cost_center_id: Optional[str] = None

class RejectPayload(BaseModel):
    reason: str = Field(min_length=1)

class AssignPayload(BaseModel):
    assigned_to: str

class CommentCreate(BaseModel):
    comment: str = Field(min_length=1)
    is_internal: bool = False

class ActivityLog(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    ticket_id: str
    activity_type: str
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    recipient_id: Optional[str] = None
    recipient_name: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

class Notification(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    user_id: str
    ticket_id: Optional[str] = None
    title: str
    message: str
    type: Literal["ticket_created", "ticket_approved", "ticket_rejected", "ticket_assigned", "ticket_closed"]
    is_read: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
