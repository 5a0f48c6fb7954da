"""
InvoiceFlow - Support Models

Support tickets and product feedback.
"""

import uuid
from enum import Enum
from typing import Optional

from sqlalchemy import ForeignKey, Integer, String, Text, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel


class TicketCategory(str, Enum):
    BILLING = "billing"
    TECHNICAL = "technical"
    FEATURE = "feature"
    ACCOUNT = "account"
    GENERAL = "general"


class TicketPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TicketStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class FeedbackType(str, Enum):
    GENERAL = "general"
    FEATURE = "feature"
    BUG = "bug"
    IMPROVEMENT = "improvement"
    COMPLIMENT = "compliment"


class FeedbackStatus(str, Enum):
    NEW = "new"
    REVIEWED = "reviewed"
    IMPLEMENTED = "implemented"
    REJECTED = "rejected"


class SupportTicket(BaseModel):
    """Support ticket. user_id is empty for anonymous submissions."""

    __tablename__ = "support_tickets"

    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[TicketCategory] = mapped_column(
        SQLEnum(TicketCategory), default=TicketCategory.GENERAL, nullable=False
    )
    priority: Mapped[TicketPriority] = mapped_column(
        SQLEnum(TicketPriority), default=TicketPriority.MEDIUM, nullable=False
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[TicketStatus] = mapped_column(
        SQLEnum(TicketStatus), default=TicketStatus.OPEN, nullable=False, index=True
    )
    assigned_to: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    admin_response: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class FeedbackSubmission(BaseModel):
    """Product feedback."""

    __tablename__ = "feedback_submissions"

    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[FeedbackType] = mapped_column(
        SQLEnum(FeedbackType), default=FeedbackType.GENERAL, nullable=False
    )
    rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[FeedbackStatus] = mapped_column(
        SQLEnum(FeedbackStatus), default=FeedbackStatus.NEW, nullable=False, index=True
    )
    admin_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
