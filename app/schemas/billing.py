"""
InvoiceFlow - Billing Schemas
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.models.billing import BillingCycle, PurchaseStatus
from app.models.user import UserPlan


class PlanResponse(BaseModel):
    """A plan in the catalogue."""
    id: str
    name: str
    price_monthly_inr: float
    price_monthly_usd: float
    price_yearly_inr: float
    price_yearly_usd: float
    features: List[str]
    trial_days: int = 0
    is_popular: bool = False


class PlanCatalogueResponse(BaseModel):
    plans: List[PlanResponse]
    supported_fiat_currencies: List[str]
    supported_crypto_currencies: List[str]


class PurchaseRequest(BaseModel):
    """Schema for starting a plan purchase."""
    plan: UserPlan
    billing_cycle: BillingCycle = BillingCycle.MONTHLY
    currency: str = Field("USD", min_length=3, max_length=10)

    @field_validator('currency')
    @classmethod
    def currency_upper(cls, v):
        return v.upper()


class PurchaseResponse(BaseModel):
    """Schema for a plan purchase."""
    id: UUID
    plan: UserPlan
    billing_cycle: BillingCycle
    amount: float
    currency: str
    order_id: str
    track_id: Optional[str] = None
    payment_url: Optional[str] = None
    status: PurchaseStatus
    paid_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PurchaseStartResponse(BaseModel):
    """
    Result of starting a purchase.

    For the free plan `purchase` is null and the plan is already active.
    """
    success: bool
    message: str
    plan: UserPlan
    payment_url: Optional[str] = None
    purchase: Optional[PurchaseResponse] = None


class SubscriptionResponse(BaseModel):
    """Caller's current plan."""
    plan: UserPlan
    effective_plan: UserPlan
    plan_expires_at: Optional[datetime] = None
    invoices_this_month: int
    monthly_invoice_limit: Optional[int] = None
