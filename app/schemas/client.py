"""
InvoiceFlow - Client Schemas

Pydantic schemas for saved client records.
"""

from datetime import datetime
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


# ===========================================
# REQUEST SCHEMAS
# ===========================================

class ClientCreateRequest(BaseModel):
    """Schema for creating a client."""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    business_name: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=1000)


class ClientUpdateRequest(BaseModel):
    """Schema for updating a client."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    business_name: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=1000)


# ===========================================
# RESPONSE SCHEMAS
# ===========================================

class ClientResponse(BaseModel):
    """Schema for client response."""
    id: UUID
    name: str
    email: str
    business_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ClientListResponse(BaseModel):
    """List of clients response."""
    clients: List[ClientResponse]
    total: int


class ClientStatsResponse(BaseModel):
    """Invoice totals billed to a client."""
    client: ClientResponse
    invoice_count: int
    total_invoiced: float
    total_paid: float
    outstanding_balance: float
