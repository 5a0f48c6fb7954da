"""
InvoiceFlow - Support & Feedback Schemas
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.models.support import (
    FeedbackStatus,
    FeedbackType,
    TicketCategory,
    TicketPriority,
    TicketStatus,
)


class TicketCreateRequest(BaseModel):
    """Support ticket. name and email fall back to the profile when signed in."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    subject: str = Field(..., min_length=1, max_length=255)
    category: TicketCategory = TicketCategory.GENERAL
    priority: TicketPriority = TicketPriority.MEDIUM
    message: str = Field(..., min_length=1, max_length=10000)


class TicketResponse(BaseModel):
    id: UUID
    name: str
    email: str
    phone: Optional[str] = None
    subject: str
    category: TicketCategory
    priority: TicketPriority
    message: str
    status: TicketStatus
    assigned_to: Optional[str] = None
    admin_response: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class FeedbackCreateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    type: FeedbackType = FeedbackType.GENERAL
    rating: Optional[int] = Field(None, ge=1, le=5)
    message: str = Field(..., min_length=1, max_length=10000)


class FeedbackResponse(BaseModel):
    id: UUID
    name: str
    email: str
    type: FeedbackType
    rating: Optional[int] = None
    message: str
    status: FeedbackStatus
    admin_notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
