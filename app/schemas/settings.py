"""
InvoiceFlow - Profile & Company Schemas
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.models.user import UserPlan


# ===========================================
# PROFILE
# ===========================================

class ProfileUpsertRequest(BaseModel):
    """
    Create or update the caller's profile.

    email and name are required the first time a profile is created.
    """
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None
    default_currency: Optional[str] = Field(None, min_length=3, max_length=10)
    default_tax_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    default_discount: Optional[Decimal] = Field(None, ge=0)

    @field_validator('default_currency')
    @classmethod
    def currency_upper(cls, v):
        return v.upper() if v else v


class ProfileResponse(BaseModel):
    """Schema for profile response."""
    id: UUID
    email: str
    name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    default_currency: str
    default_tax_rate: float
    default_discount: float
    plan: UserPlan
    effective_plan: UserPlan
    plan_expires_at: Optional[datetime] = None
    is_banned: bool
    created_at: datetime

    class Config:
        from_attributes = True


# ===========================================
# COMPANY INFO
# ===========================================

class CompanyUpsertRequest(BaseModel):
    """Create or update company info. business_name is required on creation."""
    business_name: Optional[str] = Field(None, min_length=1, max_length=255)
    company_email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    website: Optional[str] = Field(None, max_length=255)
    logo_url: Optional[str] = Field(None, max_length=500)
    address_line_1: Optional[str] = Field(None, max_length=255)
    address_line_2: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field(None, max_length=100)
    custom_email_domain: Optional[str] = Field(None, max_length=255)
    email_signature: Optional[str] = None

    @field_validator('custom_email_domain')
    @classmethod
    def bare_domain(cls, v):
        if v is None:
            return v
        v = v.strip().lower()
        if "@" in v or "/" in v or " " in v:
            raise ValueError('custom_email_domain must be a bare domain like example.com')
        return v


class CompanyResponse(BaseModel):
    """Schema for company info response."""
    id: UUID
    business_name: str
    company_email: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None
    address_line_1: Optional[str] = None
    address_line_2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None
    custom_email_domain: Optional[str] = None
    email_signature: Optional[str] = None
    address_lines: List[str] = []
    updated_at: datetime

    class Config:
        from_attributes = True
