"""
InvoiceFlow - SQLAlchemy Models Package

This package contains all database models for the application.
"""

from app.models.base import BaseModel, TimestampMixin, OwnedMixin
from app.models.user import User, UserPlan
from app.models.company import CompanyInfo, WhiteLabelSettings, AgencyEmailSettings
from app.models.client import Client
from app.models.invoice import (
    Invoice,
    InvoiceItem,
    InvoiceStatus,
    DiscountType,
    RecurringFrequency,
)
from app.models.payment_method import PaymentMethod, PaymentMethodType
from app.models.proposal import Proposal, ProposalItem, ProposalStatus
from app.models.agency import (
    TeamMember,
    TeamRole,
    TeamMemberStatus,
    ClientPortalAccess,
    RecurringInvoice,
    ApiKey,
)
from app.models.support import (
    SupportTicket,
    TicketCategory,
    TicketPriority,
    TicketStatus,
    FeedbackSubmission,
    FeedbackType,
    FeedbackStatus,
)
from app.models.activity import EmailLog, EmailType, EmailStatus, AdminActivityLog
from app.models.billing import PlanPurchase, BillingCycle, PurchaseStatus

__all__ = [
    "BaseModel",
    "TimestampMixin",
    "OwnedMixin",
    "User",
    "UserPlan",
    "CompanyInfo",
    "WhiteLabelSettings",
    "AgencyEmailSettings",
    "Client",
    "Invoice",
    "InvoiceItem",
    "InvoiceStatus",
    "DiscountType",
    "RecurringFrequency",
    "PaymentMethod",
    "PaymentMethodType",
    "Proposal",
    "ProposalItem",
    "ProposalStatus",
    "TeamMember",
    "TeamRole",
    "TeamMemberStatus",
    "ClientPortalAccess",
    "RecurringInvoice",
    "ApiKey",
    "SupportTicket",
    "TicketCategory",
    "TicketPriority",
    "TicketStatus",
    "FeedbackSubmission",
    "FeedbackType",
    "FeedbackStatus",
    "EmailLog",
    "EmailType",
    "EmailStatus",
    "AdminActivityLog",
    "PlanPurchase",
    "BillingCycle",
    "PurchaseStatus",
]
