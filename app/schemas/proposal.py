"""
InvoiceFlow - Proposal Schemas
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.models.invoice import DiscountType
from app.models.proposal import ProposalStatus
from app.schemas.invoice import InvoiceItemResponse, InvoiceModifiers


class ProposalItemCreate(BaseModel):
    """Proposal line item. Rate must be positive."""
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    hours: Optional[Decimal] = Field(None, ge=0)
    rate: Decimal = Field(..., gt=0)


class ProposalCreateRequest(InvoiceModifiers):
    """Schema for creating a proposal."""
    title: str = Field(..., min_length=1, max_length=255)
    client_name: str = Field(..., min_length=1, max_length=255)
    client_email: EmailStr
    client_address: Optional[str] = None
    client_phone: Optional[str] = Field(None, max_length=50)
    client_business_name: Optional[str] = Field(None, max_length=255)
    currency: Optional[str] = Field(None, min_length=3, max_length=10)
    valid_until: Optional[date] = None
    estimated_completion: Optional[date] = None
    items: List[ProposalItemCreate] = Field(..., min_length=1)
    notes: Optional[str] = None
    terms: Optional[str] = None

    @field_validator('currency')
    @classmethod
    def currency_upper(cls, v):
        return v.upper() if v else v


class ProposalUpdateRequest(BaseModel):
    """Schema for updating a draft proposal. Items, when given, replace the list."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    client_name: Optional[str] = Field(None, min_length=1, max_length=255)
    client_email: Optional[EmailStr] = None
    client_address: Optional[str] = None
    client_phone: Optional[str] = Field(None, max_length=50)
    client_business_name: Optional[str] = Field(None, max_length=255)
    currency: Optional[str] = Field(None, min_length=3, max_length=10)
    valid_until: Optional[date] = None
    estimated_completion: Optional[date] = None
    hours_enabled: Optional[bool] = None
    tax_enabled: Optional[bool] = None
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    discount_enabled: Optional[bool] = None
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[Decimal] = Field(None, ge=0)
    items: Optional[List[ProposalItemCreate]] = Field(None, min_length=1)
    notes: Optional[str] = None
    terms: Optional[str] = None


class ProposalResponse(BaseModel):
    """Schema for proposal response."""
    id: UUID
    title: str
    client_name: str
    client_email: str
    client_address: Optional[str] = None
    client_phone: Optional[str] = None
    client_business_name: Optional[str] = None
    currency: str
    valid_until: Optional[date] = None
    estimated_completion: Optional[date] = None
    status: ProposalStatus

    hours_enabled: bool
    tax_enabled: bool
    tax_rate: float
    discount_enabled: bool
    discount_type: DiscountType
    discount_value: float

    subtotal: float
    tax_amount: float
    discount_amount: float
    total: float

    notes: Optional[str] = None
    terms: Optional[str] = None
    converted_invoice_id: Optional[UUID] = None
    items: List[InvoiceItemResponse] = []

    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
