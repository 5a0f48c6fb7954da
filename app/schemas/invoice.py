"""
InvoiceFlow - Invoice Schemas

Pydantic schemas for invoice management.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from app.models.invoice import DiscountType, InvoiceStatus, RecurringFrequency


# ===========================================
# LINE ITEM SCHEMAS
# ===========================================

class InvoiceItemCreate(BaseModel):
    """Schema for an invoice line item."""
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    hours: Optional[Decimal] = Field(None, ge=0, description="Ignored when hours are disabled")
    rate: Decimal = Field(..., ge=0, description="Hourly rate, or line price when hours are disabled")


class InvoiceItemResponse(BaseModel):
    """Schema for invoice line item response."""
    id: UUID
    title: str
    description: Optional[str] = None
    hours: Optional[float] = None
    rate: float
    subtotal: float
    order_index: int

    class Config:
        from_attributes = True


# ===========================================
# INVOICE REQUEST SCHEMAS
# ===========================================

class InvoiceModifiers(BaseModel):
    """Tax and discount toggles shared by invoices and proposals."""
    hours_enabled: bool = True
    tax_enabled: bool = False
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=100, description="Defaults to the profile tax rate")
    discount_enabled: bool = False
    discount_type: DiscountType = DiscountType.FLAT
    discount_value: Optional[Decimal] = Field(None, ge=0, description="Defaults to the profile discount")

    @model_validator(mode='after')
    def percentage_discount_max_100(self):
        if (
            self.discount_enabled
            and self.discount_type == DiscountType.PERCENTAGE
            and self.discount_value is not None
            and self.discount_value > 100
        ):
            raise ValueError('Percentage discount cannot exceed 100')
        return self


class InvoiceCreateRequest(InvoiceModifiers):
    """Schema for creating an invoice."""
    invoice_number: Optional[str] = Field(None, min_length=1, max_length=50, description="Generated when omitted")
    client_id: Optional[UUID] = Field(None, description="Saved client to bill; copies its details")
    client_name: Optional[str] = Field(None, max_length=255)
    client_email: Optional[EmailStr] = None
    client_address: Optional[str] = None
    client_phone: Optional[str] = Field(None, max_length=50)
    client_business_name: Optional[str] = Field(None, max_length=255)

    currency: Optional[str] = Field(None, min_length=3, max_length=10, description="Defaults to the profile currency")
    status: InvoiceStatus = InvoiceStatus.DRAFT

    items: List[InvoiceItemCreate] = Field(..., min_length=1)

    notes: Optional[str] = None
    terms: Optional[str] = None
    estimated_completion: Optional[date] = None
    due_date: Optional[date] = None
    payment_gateway_url: Optional[str] = Field(None, max_length=500)

    is_recurring: bool = False
    recurring_frequency: Optional[RecurringFrequency] = None
    recurring_end_date: Optional[date] = None

    @field_validator('currency')
    @classmethod
    def currency_upper(cls, v):
        return v.upper() if v else v

    @model_validator(mode='after')
    def client_required(self):
        if self.client_id is None and (not self.client_name or not self.client_email):
            raise ValueError('client_name and client_email are required when no client_id is given')
        if self.is_recurring and self.recurring_frequency is None:
            raise ValueError('recurring_frequency is required for recurring invoices')
        return self


class InvoiceUpdateRequest(BaseModel):
    """
    Schema for updating an invoice.

    When `items` is present the item list is replaced wholesale. Totals
    are recomputed on every update.
    """
    invoice_number: Optional[str] = Field(None, min_length=1, max_length=50)
    client_id: Optional[UUID] = None
    client_name: Optional[str] = Field(None, min_length=1, max_length=255)
    client_email: Optional[EmailStr] = None
    client_address: Optional[str] = None
    client_phone: Optional[str] = Field(None, max_length=50)
    client_business_name: Optional[str] = Field(None, max_length=255)

    currency: Optional[str] = Field(None, min_length=3, max_length=10)
    status: Optional[InvoiceStatus] = None

    hours_enabled: Optional[bool] = None
    tax_enabled: Optional[bool] = None
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    discount_enabled: Optional[bool] = None
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[Decimal] = Field(None, ge=0)

    items: Optional[List[InvoiceItemCreate]] = Field(None, min_length=1)

    notes: Optional[str] = None
    terms: Optional[str] = None
    estimated_completion: Optional[date] = None
    due_date: Optional[date] = None
    payment_gateway_url: Optional[str] = Field(None, max_length=500)

    is_recurring: Optional[bool] = None
    recurring_frequency: Optional[RecurringFrequency] = None
    recurring_end_date: Optional[date] = None

    @field_validator('currency')
    @classmethod
    def currency_upper(cls, v):
        return v.upper() if v else v


class InvoiceStatusUpdate(BaseModel):
    """Schema for changing invoice status (mark paid, sent, etc.)."""
    status: InvoiceStatus


class InvoiceSendRequest(BaseModel):
    """Schema for emailing an invoice."""
    recipient_email: Optional[EmailStr] = Field(None, description="Defaults to the invoice client email")
    message: Optional[str] = Field(None, max_length=2000, description="Personal note added above the invoice")


# ===========================================
# INVOICE RESPONSE SCHEMAS
# ===========================================

class InvoiceResponse(BaseModel):
    """Schema for invoice response."""
    id: UUID
    invoice_number: str

    client_id: Optional[UUID] = None
    client_name: str
    client_email: str
    client_address: Optional[str] = None
    client_phone: Optional[str] = None
    client_business_name: Optional[str] = None

    status: InvoiceStatus
    currency: str
    is_overdue: bool = False

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
    estimated_completion: Optional[date] = None
    due_date: Optional[date] = None
    payment_gateway_url: Optional[str] = None

    is_recurring: bool = False
    recurring_frequency: Optional[RecurringFrequency] = None
    recurring_end_date: Optional[date] = None
    parent_recurring_id: Optional[UUID] = None

    items: List[InvoiceItemResponse] = []

    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class InvoiceListResponse(BaseModel):
    """Schema for paginated invoice list."""
    invoices: List[InvoiceResponse]
    total: int
    page: int
    per_page: int


class InvoiceSendResponse(BaseModel):
    """Result of emailing an invoice."""
    success: bool
    message: str
    email_log_id: Optional[UUID] = None
    invoice: InvoiceResponse
