"""
InvoiceFlow - Company Models

Business identity shown on invoices, plus the agency branding and
outgoing mail settings.
"""

from typing import Optional

from sqlalchemy import Boolean, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel, OwnedMixin


class CompanyInfo(BaseModel, OwnedMixin):
    """Company details printed on invoices and emails. One row per user."""

    __tablename__ = "company_info"
    __table_args__ = (UniqueConstraint("user_id"),)

    business_name: Mapped[str] = mapped_column(String(255), nullable=False)
    company_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    website: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    logo_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    address_line_1: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    address_line_2: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    zip_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Agency only
    custom_email_domain: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email_signature: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    @property
    def address_lines(self) -> list:
        """Non-empty address lines in print order."""
        city_line = ", ".join(p for p in [self.city, self.state, self.zip_code] if p)
        lines = [self.address_line_1, self.address_line_2, city_line, self.country]
        return [line for line in lines if line]

    def __repr__(self) -> str:
        return f"<CompanyInfo(id={self.id}, business_name={self.business_name})>"


class WhiteLabelSettings(BaseModel, OwnedMixin):
    """Agency white-label branding."""

    __tablename__ = "white_label_settings"
    __table_args__ = (UniqueConstraint("user_id"),)

    primary_color: Mapped[str] = mapped_column(String(20), default="#3B82F6", nullable=False)
    secondary_color: Mapped[str] = mapped_column(String(20), default="#1E40AF", nullable=False)
    logo_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    custom_domain: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    hide_branding: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class AgencyEmailSettings(BaseModel, OwnedMixin):
    """Agency outgoing SMTP configuration."""

    __tablename__ = "agency_email_settings"
    __table_args__ = (UniqueConstraint("user_id"),)

    provider: Mapped[str] = mapped_column(String(50), default="custom", nullable=False)
    smtp_host: Mapped[str] = mapped_column(String(255), nullable=False)
    smtp_port: Mapped[int] = mapped_column(Integer, default=587, nullable=False)
    smtp_secure: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    smtp_username: Mapped[str] = mapped_column(String(255), nullable=False)
    smtp_password: Mapped[str] = mapped_column(String(255), nullable=False)
    from_name: Mapped[str] = mapped_column(String(255), nullable=False)
    from_email: Mapped[str] = mapped_column(String(255), nullable=False)
    reply_to: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
