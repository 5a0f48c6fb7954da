"""
InvoiceFlow - Proposal Model

Proposals (quotes) that can be converted into draft invoices.
"""

import uuid
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from sqlalchemy import Boolean, Date, ForeignKey, Integer, Numeric, String, Text, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel, OwnedMixin
from app.models.invoice import DiscountType


class ProposalStatus(str, Enum):
    DRAFT = "draft"
    CONVERTED = "converted"


class Proposal(BaseModel, OwnedMixin):
    """Proposal with the same modifiers as an invoice."""

    __tablename__ = "proposals"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    client_name: Mapped[str] = mapped_column(String(255), nullable=False)
    client_email: Mapped[str] = mapped_column(String(255), nullable=False)
    client_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    client_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    client_business_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    currency: Mapped[str] = mapped_column(String(10), default="USD", nullable=False)
    valid_until: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    status: Mapped[ProposalStatus] = mapped_column(
        SQLEnum(ProposalStatus),
        default=ProposalStatus.DRAFT,
        nullable=False,
    )

    hours_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    tax_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(precision=5, scale=2), default=Decimal("0.00"), nullable=False)
    discount_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    discount_type: Mapped[DiscountType] = mapped_column(SQLEnum(DiscountType), default=DiscountType.FLAT, nullable=False)
    discount_value: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), default=Decimal("0.00"), nullable=False)

    subtotal: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), default=Decimal("0.00"), nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), default=Decimal("0.00"), nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), default=Decimal("0.00"), nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), default=Decimal("0.00"), nullable=False)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    terms: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    estimated_completion: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    converted_invoice_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("invoices.id", ondelete="SET NULL"),
        nullable=True,
    )

    items: Mapped[List["ProposalItem"]] = relationship(
        "ProposalItem",
        back_populates="proposal",
        cascade="all, delete-orphan",
        order_by="ProposalItem.order_index",
        lazy="selectin",
    )


class ProposalItem(BaseModel):
    """Proposal line item."""

    __tablename__ = "proposal_items"

    proposal_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("proposals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    hours: Mapped[Optional[Decimal]] = mapped_column(Numeric(precision=10, scale=2), nullable=True)
    rate: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    proposal: Mapped["Proposal"] = relationship("Proposal", back_populates="items")
