"""
InvoiceFlow - Payment Method Schemas
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from app.models.payment_method import PaymentMethodType


# Details a payment method must carry, by type
REQUIRED_DETAILS = {
    PaymentMethodType.UPI: ("upi_id",),
    PaymentMethodType.BANK: ("account_number", "bank_name"),
    PaymentMethodType.CRYPTO: ("wallet_address",),
    PaymentMethodType.PAYMENT_LINK: ("url",),
    PaymentMethodType.CUSTOM: ("instructions",),
}


class PaymentMethodCreateRequest(BaseModel):
    """Schema for creating a payment method."""
    type: PaymentMethodType
    name: str = Field(..., min_length=1, max_length=255)
    details: Dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True

    @model_validator(mode='after')
    def required_details(self):
        missing = [key for key in REQUIRED_DETAILS[self.type] if not self.details.get(key)]
        if missing:
            raise ValueError(f"{self.type.value} payment method requires: {', '.join(missing)}")
        return self


class PaymentMethodUpdateRequest(BaseModel):
    """Schema for updating a payment method."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    details: Optional[Dict[str, Any]] = None
    is_active: Optional[bool] = None


class PaymentMethodReorderRequest(BaseModel):
    """Payment method ids in their new display order."""
    ordered_ids: List[UUID] = Field(..., min_length=1)


class PaymentMethodResponse(BaseModel):
    """Schema for payment method response."""
    id: UUID
    type: PaymentMethodType
    name: str
    details: Dict[str, Any]
    is_active: bool
    order_index: int
    created_at: datetime

    class Config:
        from_attributes = True
