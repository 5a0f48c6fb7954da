"""
InvoiceFlow - Agency Schemas

Team, client portal access, white label, branded email, recurring
invoices and API keys.
"""

import re
from datetime import date, datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.models.agency import TeamMemberStatus, TeamRole
from app.models.invoice import RecurringFrequency

HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")


# ===========================================
# TEAM
# ===========================================

class TeamInviteRequest(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=255)
    role: TeamRole = TeamRole.MEMBER


class TeamMemberUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    role: Optional[TeamRole] = None
    status: Optional[TeamMemberStatus] = None


class TeamMemberResponse(BaseModel):
    id: UUID
    email: str
    name: Optional[str] = None
    role: TeamRole
    status: TeamMemberStatus
    member_user_id: Optional[UUID] = None
    permissions: Dict[str, bool]
    created_at: datetime

    class Config:
        from_attributes = True


class TeamListResponse(BaseModel):
    members: List[TeamMemberResponse]
    seats_used: int
    seat_limit: int


# ===========================================
# CLIENT PORTAL ACCESS
# ===========================================

class PortalAccessCreateRequest(BaseModel):
    client_email: EmailStr
    valid_days: Optional[int] = Field(None, ge=1, le=3650, description="Defaults to one year")
    send_email: bool = True


class PortalAccessResponse(BaseModel):
    id: UUID
    client_email: str
    access_token: str
    portal_url: str
    expires_at: datetime
    is_active: bool
    last_accessed_at: Optional[datetime] = None
    created_at: datetime


# ===========================================
# WHITE LABEL
# ===========================================

class WhiteLabelRequest(BaseModel):
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    logo_url: Optional[str] = Field(None, max_length=500)
    custom_domain: Optional[str] = Field(None, max_length=255)
    hide_branding: Optional[bool] = None

    @field_validator('primary_color', 'secondary_color')
    @classmethod
    def hex_color(cls, v):
        if v is not None and not HEX_COLOR.match(v):
            raise ValueError('Colors must be hex values like #3B82F6')
        return v


class WhiteLabelResponse(BaseModel):
    primary_color: str
    secondary_color: str
    logo_url: Optional[str] = None
    custom_domain: Optional[str] = None
    hide_branding: bool

    class Config:
        from_attributes = True


# ===========================================
# BRANDED EMAIL
# ===========================================

class EmailSettingsRequest(BaseModel):
    """
    SMTP settings. Choosing gmail, sendinblue or hostinger fills host,
    port and secure flag unless given.
    """
    provider: str = Field("custom", max_length=50)
    smtp_host: Optional[str] = Field(None, max_length=255)
    smtp_port: Optional[int] = Field(None, ge=1, le=65535)
    smtp_secure: Optional[bool] = None
    smtp_username: Optional[str] = Field(None, max_length=255)
    smtp_password: Optional[str] = Field(None, max_length=255)
    from_name: Optional[str] = Field(None, max_length=255)
    from_email: Optional[EmailStr] = None
    reply_to: Optional[EmailStr] = None
    is_active: Optional[bool] = None


class EmailSettingsResponse(BaseModel):
    """SMTP settings. The password is never returned."""
    provider: str
    smtp_host: str
    smtp_port: int
    smtp_secure: bool
    smtp_username: str
    has_password: bool
    from_name: str
    from_email: str
    reply_to: Optional[str] = None
    is_active: bool


# ===========================================
# RECURRING INVOICES
# ===========================================

class RecurringCreateRequest(BaseModel):
    source_invoice_id: UUID
    frequency: RecurringFrequency
    start_date: date
    end_date: Optional[date] = None


class RecurringResponse(BaseModel):
    id: UUID
    source_invoice_id: UUID
    frequency: RecurringFrequency
    start_date: date
    end_date: Optional[date] = None
    next_invoice_date: date
    is_active: bool
    last_generated_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


# ===========================================
# API KEYS
# ===========================================

class ApiKeyCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class ApiKeyResponse(BaseModel):
    id: UUID
    name: str
    key_prefix: str
    is_active: bool
    last_used_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ApiKeyCreatedResponse(ApiKeyResponse):
    """Returned once on creation; `key` is not retrievable later."""
    key: str
