"""
InvoiceFlow - Admin Schemas
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.activity import EmailStatus, EmailType
from app.models.support import FeedbackStatus, TicketStatus
from app.models.user import UserPlan
from app.schemas.invoice import InvoiceResponse


class AdminStatsResponse(BaseModel):
    total_users: int
    active_users: int
    total_invoices: int
    total_revenue: float
    support_tickets: int
    open_tickets: int
    feedback_submissions: int
    users_by_plan: Dict[str, int]


class AdminUserResponse(BaseModel):
    id: UUID
    email: str
    name: str
    phone: Optional[str] = None
    plan: UserPlan
    effective_plan: UserPlan
    plan_expires_at: Optional[datetime] = None
    is_banned: bool
    created_at: datetime

    class Config:
        from_attributes = True


class AdminInvoiceResponse(BaseModel):
    invoice: InvoiceResponse
    owner_email: str
    owner_name: str


class PlanChangeRequest(BaseModel):
    plan: UserPlan


class TicketUpdateRequest(BaseModel):
    status: Optional[TicketStatus] = None
    assigned_to: Optional[str] = Field(None, max_length=255)
    admin_response: Optional[str] = None


class FeedbackUpdateRequest(BaseModel):
    status: Optional[FeedbackStatus] = None
    admin_notes: Optional[str] = None


class ActivityLogResponse(BaseModel):
    id: UUID
    admin_user_id: UUID
    action: str
    target_type: str
    target_id: Optional[str] = None
    details: Dict[str, Any]
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class EmailLogResponse(BaseModel):
    id: UUID
    user_id: Optional[UUID] = None
    recipient_email: str
    sender_email: Optional[str] = None
    subject: str
    email_type: EmailType
    status: EmailStatus
    error_message: Optional[str] = None
    sent_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AdminUserListResponse(BaseModel):
    users: List[AdminUserResponse]
    total: int
