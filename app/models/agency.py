"""
InvoiceFlow - Agency Models

Agency plan features: team members, client portal links, recurring
invoice templates and API keys.
"""

import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, String, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel, OwnedMixin
from app.models.invoice import RecurringFrequency


class TeamRole(str, Enum):
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"


class TeamMemberStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"


class TeamMember(BaseModel, OwnedMixin):
    """
    Team member invited by an agency owner (user_id).

    member_user_id is filled in once the invitee has a profile.
    """

    __tablename__ = "team_members"

    email: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    member_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    role: Mapped[TeamRole] = mapped_column(SQLEnum(TeamRole), default=TeamRole.MEMBER, nullable=False)
    status: Mapped[TeamMemberStatus] = mapped_column(
        SQLEnum(TeamMemberStatus),
        default=TeamMemberStatus.PENDING,
        nullable=False,
    )
    invited_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)

    @property
    def permissions(self) -> dict:
        """Capabilities granted by role."""
        return {
            "manage_invoices": True,
            "manage_clients": self.role != TeamRole.VIEWER,
            "view_analytics": True,
            "manage_settings": self.role == TeamRole.ADMIN,
        }


class ClientPortalAccess(BaseModel, OwnedMixin):
    """Token-gated, read-only portal link for one client email."""

    __tablename__ = "client_portal_access"

    client_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    access_token: Mapped[str] = mapped_column(String(128), unique=True, nullable=False, index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_accessed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def is_valid(self) -> bool:
        return self.is_active and self.expires_at > datetime.now(timezone.utc)


class RecurringInvoice(BaseModel, OwnedMixin):
    """Schedule that clones a source invoice at a fixed frequency."""

    __tablename__ = "recurring_invoices"

    source_invoice_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
    )
    frequency: Mapped[RecurringFrequency] = mapped_column(SQLEnum(RecurringFrequency), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    next_invoice_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_generated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class ApiKey(BaseModel, OwnedMixin):
    """API key for agency integrations. Only the sha256 hash is stored."""

    __tablename__ = "api_keys"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    key_prefix: Mapped[str] = mapped_column(String(20), nullable=False)
    key_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_used_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
