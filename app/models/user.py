"""
InvoiceFlow - User Model

User profile. Identity lives with the hosted auth provider; the
profile row shares its id and carries billing defaults and the plan.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, Numeric, String, Text, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel


class UserPlan(str, Enum):
    """Subscription plans."""
    FREE = "free"
    PRO = "pro"
    AGENCY = "agency"


class User(BaseModel):
    """
    User profile model.

    `plan` is what was purchased; `effective_plan` is what the user
    currently gets, which falls back to free once a paid plan expires.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Invoice defaults
    default_currency: Mapped[str] = mapped_column(String(10), default="USD", nullable=False)
    default_tax_rate: Mapped[Decimal] = mapped_column(
        Numeric(precision=5, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )
    default_discount: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )

    # Subscription
    plan: Mapped[UserPlan] = mapped_column(
        SQLEnum(UserPlan),
        default=UserPlan.FREE,
        nullable=False,
    )
    plan_expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    is_banned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    @property
    def effective_plan(self) -> UserPlan:
        """Plan currently in force."""
        if self.plan == UserPlan.FREE:
            return UserPlan.FREE
        if self.plan_expires_at is not None and self.plan_expires_at <= datetime.now(timezone.utc):
            return UserPlan.FREE
        return self.plan

    @property
    def is_agency(self) -> bool:
        return self.effective_plan == UserPlan.AGENCY

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, plan={self.plan})>"
