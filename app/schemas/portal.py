"""
InvoiceFlow - Client Portal Schemas

Public, read-only view of a client's invoices.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from app.schemas.invoice import InvoiceResponse


class PortalCompany(BaseModel):
    business_name: str
    company_email: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None
    address_lines: List[str] = []

    class Config:
        from_attributes = True


class PortalBranding(BaseModel):
    primary_color: str
    secondary_color: str
    logo_url: Optional[str] = None
    hide_branding: bool = False

    class Config:
        from_attributes = True


class PortalResponse(BaseModel):
    client_email: str
    expires_at: datetime
    company: Optional[PortalCompany] = None
    branding: Optional[PortalBranding] = None
    invoices: List[InvoiceResponse]
    total_outstanding: float
