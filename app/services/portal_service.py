"""
InvoiceFlow - Client Portal Service

Token-gated, read-only access for a client to every invoice an agency
user has issued to their email address.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.agency import ClientPortalAccess
from app.models.company import CompanyInfo, WhiteLabelSettings
from app.models.invoice import Invoice
from app.utils.security import generate_portal_token

logger = logging.getLogger(__name__)


@dataclass
class PortalView:
    """Everything the public portal page shows."""
    access: ClientPortalAccess
    invoices: List[Invoice]
    company: Optional[CompanyInfo]
    white_label: Optional[WhiteLabelSettings]


def build_portal_url(access_token: str) -> str:
    return f"{settings.frontend_url}/client/{access_token}"


class PortalService:
    """Client portal access management and public lookup."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ===========================================
    # OWNER SIDE
    # ===========================================

    async def list_access(self, user_id: uuid.UUID) -> List[ClientPortalAccess]:
        result = await self.db.execute(
            select(ClientPortalAccess)
            .where(ClientPortalAccess.user_id == user_id)
            .order_by(ClientPortalAccess.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_access_by_id(
        self,
        access_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> Optional[ClientPortalAccess]:
        result = await self.db.execute(
            select(ClientPortalAccess)
            .where(ClientPortalAccess.id == access_id)
            .where(ClientPortalAccess.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def create_access(
        self,
        user_id: uuid.UUID,
        client_email: str,
        valid_days: Optional[int] = None,
    ) -> ClientPortalAccess:
        """Issue a new portal link for a client email."""
        days = valid_days or settings.portal_access_days
        access = ClientPortalAccess(
            user_id=user_id,
            client_email=client_email.lower(),
            access_token=generate_portal_token(),
            expires_at=datetime.now(timezone.utc) + timedelta(days=days),
            is_active=True,
        )

        self.db.add(access)
        await self.db.commit()
        await self.db.refresh(access)

        logger.info(f"Issued portal access {access.id} for {access.client_email} (user {user_id})")
        return access

    async def toggle_access(self, access: ClientPortalAccess) -> ClientPortalAccess:
        access.is_active = not access.is_active
        await self.db.commit()
        await self.db.refresh(access)
        return access

    async def revoke_access(self, access: ClientPortalAccess) -> bool:
        await self.db.delete(access)
        await self.db.commit()
        return True

    # ===========================================
    # PUBLIC SIDE
    # ===========================================

    async def resolve_token(self, access_token: str) -> Optional[ClientPortalAccess]:
        """Return the access row for a token only while it is active and unexpired."""
        result = await self.db.execute(
            select(ClientPortalAccess).where(ClientPortalAccess.access_token == access_token)
        )
        access = result.scalar_one_or_none()

        if access is None or not access.is_valid:
            return None
        return access

    async def get_portal_view(self, access_token: str) -> Optional[PortalView]:
        """
        Load the portal for a token.

        Invoices are the owner's invoices for the client email, newest
        first; items are already ordered by order_index.
        """
        access = await self.resolve_token(access_token)
        if access is None:
            return None

        result = await self.db.execute(
            select(Invoice)
            .where(Invoice.user_id == access.user_id)
            .where(func.lower(Invoice.client_email) == access.client_email.lower())
            .order_by(Invoice.created_at.desc())
        )
        invoices = list(result.scalars().all())

        company = (await self.db.execute(
            select(CompanyInfo).where(CompanyInfo.user_id == access.user_id)
        )).scalar_one_or_none()
        white_label = (await self.db.execute(
            select(WhiteLabelSettings).where(WhiteLabelSettings.user_id == access.user_id)
        )).scalar_one_or_none()

        access.last_accessed_at = datetime.now(timezone.utc)
        await self.db.commit()

        return PortalView(access=access, invoices=invoices, company=company, white_label=white_label)

    async def get_portal_invoice(
        self,
        access_token: str,
        invoice_id: uuid.UUID,
    ) -> Optional[Invoice]:
        """A single invoice, only if it belongs to the token's client."""
        access = await self.resolve_token(access_token)
        if access is None:
            return None

        result = await self.db.execute(
            select(Invoice)
            .where(Invoice.id == invoice_id)
            .where(Invoice.user_id == access.user_id)
            .where(func.lower(Invoice.client_email) == access.client_email.lower())
        )
        return result.scalar_one_or_none()
