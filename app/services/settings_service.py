"""
InvoiceFlow - Settings Service

Profile and company details used as invoice defaults and on rendered
invoices.
"""

import logging
import uuid
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.company import CompanyInfo
from app.models.user import User

logger = logging.getLogger(__name__)


class SettingsService:
    """Profile and company info operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ===========================================
    # PROFILE
    # ===========================================

    async def get_profile(self, user_id: uuid.UUID) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def upsert_profile(
        self,
        user_id: uuid.UUID,
        email: Optional[str] = None,
        **fields,
    ) -> Tuple[User, bool]:
        """
        Create the profile for an identity on first use, or update it.

        Returns (user, created). Email is only taken on creation; after
        that it follows the identity provider.

        Raises:
            ValueError: missing email/name on creation, or email taken
        """
        user = await self.db.get(User, user_id)
        created = False

        if user is None:
            if not email or not fields.get("name"):
                raise ValueError("Email and name are required to create a profile")

            result = await self.db.execute(select(User).where(User.email == email.lower()))
            if result.scalar_one_or_none() is not None:
                raise ValueError("A profile with this email already exists")

            user = User(id=user_id, email=email.lower(), name=fields.pop("name"))
            self.db.add(user)
            created = True

        for key, value in fields.items():
            if value is not None and hasattr(user, key):
                setattr(user, key, value)

        await self.db.commit()
        await self.db.refresh(user)

        if created:
            logger.info(f"Created profile for {user.email} ({user.id})")

        return user, created

    # ===========================================
    # COMPANY INFO
    # ===========================================

    async def get_company(self, user_id: uuid.UUID) -> Optional[CompanyInfo]:
        result = await self.db.execute(
            select(CompanyInfo).where(CompanyInfo.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def upsert_company(self, user_id: uuid.UUID, **fields) -> CompanyInfo:
        """
        Create or update company info.

        Raises:
            ValueError: business name missing on creation
        """
        company = await self.get_company(user_id)

        if company is None:
            if not fields.get("business_name"):
                raise ValueError("Business name is required")
            company = CompanyInfo(user_id=user_id, business_name=fields.pop("business_name"))
            self.db.add(company)

        for key, value in fields.items():
            if value is not None and hasattr(company, key):
                setattr(company, key, value)

        await self.db.commit()
        await self.db.refresh(company)

        return company
