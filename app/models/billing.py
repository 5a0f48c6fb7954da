"""
InvoiceFlow - Billing Models

Plan purchases made through the payment gateway.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Numeric, String, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel, OwnedMixin
from app.models.user import UserPlan


class BillingCycle(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


class PurchaseStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    EXPIRED = "expired"


class PlanPurchase(BaseModel, OwnedMixin):
    """
    A plan checkout.

    Created pending when the gateway invoice is opened; marked paid by
    the verified gateway callback, which is also what activates the plan.
    """

    __tablename__ = "plan_purchases"

    plan: Mapped[UserPlan] = mapped_column(SQLEnum(UserPlan), nullable=False)
    billing_cycle: Mapped[BillingCycle] = mapped_column(SQLEnum(BillingCycle), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)
    currency: Mapped[str] = mapped_column(String(10), nullable=False)

    order_id: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    track_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    payment_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    status: Mapped[PurchaseStatus] = mapped_column(
        SQLEnum(PurchaseStatus),
        default=PurchaseStatus.PENDING,
        nullable=False,
        index=True,
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    gateway_payload: Mapped[dict] = mapped_column(JSONB, default=dict, nullable=False)

    def __repr__(self) -> str:
        return f"<PlanPurchase(id={self.id}, plan={self.plan}, status={self.status})>"
