"""
InvoiceFlow - Agency Service

Agency plan features:
- Team members with role-based permissions
- White-label branding
- Branded outgoing email (SMTP settings with provider presets)
- Recurring invoice schedules
- API keys for integrations
"""

import calendar
import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.agency import (
    ApiKey,
    RecurringInvoice,
    TeamMember,
    TeamMemberStatus,
    TeamRole,
)
from app.models.company import AgencyEmailSettings, WhiteLabelSettings
from app.models.invoice import Invoice, RecurringFrequency
from app.models.user import User
from app.utils.security import generate_api_key, hash_api_key

logger = logging.getLogger(__name__)


# SMTP presets: (host, port, secure)
EMAIL_PRESETS = {
    "gmail": ("smtp.gmail.com", 587, False),
    "sendinblue": ("smtp-relay.sendinblue.com", 587, False),
    "hostinger": ("smtp.hostinger.com", 465, True),
}

FREQUENCY_MONTHS = {
    RecurringFrequency.MONTHLY: 1,
    RecurringFrequency.QUARTERLY: 3,
    RecurringFrequency.YEARLY: 12,
}


def add_months(value: date, months: int) -> date:
    """Shift a date by whole months, clamping to the last day of the month."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def occurrence_date(anchor: date, frequency: RecurringFrequency, periods: int) -> date:
    """The schedule date `periods` whole periods after `anchor`."""
    if frequency == RecurringFrequency.WEEKLY:
        return anchor + timedelta(days=7 * periods)
    return add_months(anchor, FREQUENCY_MONTHS[frequency] * periods)


def advance_date(value: date, frequency: RecurringFrequency, anchor: Optional[date] = None) -> date:
    """
    First occurrence later than `value`.

    Occurrences are counted from `anchor` (a schedule's start date,
    defaulting to `value`), so a day clamped in a short month returns to
    the anchor's day afterwards: 31 Jan, 28 Feb, 31 Mar.
    """
    anchor = anchor or value
    if frequency == RecurringFrequency.WEEKLY:
        periods = (value - anchor).days // 7
    else:
        elapsed = (value.year - anchor.year) * 12 + value.month - anchor.month
        periods = elapsed // FREQUENCY_MONTHS[frequency]
    periods = max(periods, 0)

    candidate = occurrence_date(anchor, frequency, periods)
    while candidate <= value:
        periods += 1
        candidate = occurrence_date(anchor, frequency, periods)
    return candidate


class AgencyService:
    """Agency feature operations. Callers gate on the agency plan."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ===========================================
    # TEAM MEMBERS
    # ===========================================

    async def list_team(self, owner_id: uuid.UUID) -> List[TeamMember]:
        result = await self.db.execute(
            select(TeamMember)
            .where(TeamMember.user_id == owner_id)
            .order_by(TeamMember.created_at)
        )
        return list(result.scalars().all())

    async def get_member(self, member_id: uuid.UUID, owner_id: uuid.UUID) -> Optional[TeamMember]:
        result = await self.db.execute(
            select(TeamMember)
            .where(TeamMember.id == member_id)
            .where(TeamMember.user_id == owner_id)
        )
        return result.scalar_one_or_none()

    async def invite_member(
        self,
        owner: User,
        email: str,
        name: Optional[str] = None,
        role: TeamRole = TeamRole.MEMBER,
    ) -> TeamMember:
        """
        Add a pending team member.

        The team size limit counts the owner.

        Raises:
            ValueError: limit reached, self-invite or duplicate email
        """
        email = email.lower()
        if email == owner.email.lower():
            raise ValueError("You are already the owner of this team")

        count_result = await self.db.execute(
            select(func.count(TeamMember.id)).where(TeamMember.user_id == owner.id)
        )
        current = count_result.scalar() or 0
        limit = settings.agency_team_size_limit
        if current + 1 >= limit:
            raise ValueError(f"Team size limit reached ({limit} users including you)")

        existing = await self.db.execute(
            select(TeamMember)
            .where(TeamMember.user_id == owner.id)
            .where(func.lower(TeamMember.email) == email)
        )
        if existing.scalar_one_or_none() is not None:
            raise ValueError(f"{email} is already on your team")

        profile = await self.db.execute(select(User).where(func.lower(User.email) == email))
        member_profile = profile.scalar_one_or_none()

        member = TeamMember(
            user_id=owner.id,
            email=email,
            name=name,
            role=role,
            status=TeamMemberStatus.PENDING,
            invited_by=owner.id,
            member_user_id=member_profile.id if member_profile else None,
        )

        self.db.add(member)
        await self.db.commit()
        await self.db.refresh(member)

        logger.info(f"User {owner.id} invited {email} as {role.value}")
        return member

    async def update_member(
        self,
        member: TeamMember,
        role: Optional[TeamRole] = None,
        status: Optional[TeamMemberStatus] = None,
        name: Optional[str] = None,
    ) -> TeamMember:
        if role is not None:
            member.role = role
        if status is not None:
            member.status = status
        if name is not None:
            member.name = name

        await self.db.commit()
        await self.db.refresh(member)
        return member

    async def remove_member(self, member: TeamMember) -> bool:
        await self.db.delete(member)
        await self.db.commit()
        return True

    # ===========================================
    # WHITE LABEL
    # ===========================================

    async def get_white_label(self, user_id: uuid.UUID) -> Optional[WhiteLabelSettings]:
        result = await self.db.execute(
            select(WhiteLabelSettings).where(WhiteLabelSettings.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def upsert_white_label(self, user_id: uuid.UUID, **fields) -> WhiteLabelSettings:
        white_label = await self.get_white_label(user_id)
        if white_label is None:
            white_label = WhiteLabelSettings(user_id=user_id)
            self.db.add(white_label)

        for key, value in fields.items():
            if value is not None and hasattr(white_label, key):
                setattr(white_label, key, value)

        await self.db.commit()
        await self.db.refresh(white_label)
        return white_label

    # ===========================================
    # BRANDED EMAIL SETTINGS
    # ===========================================

    async def get_email_settings(self, user_id: uuid.UUID) -> Optional[AgencyEmailSettings]:
        result = await self.db.execute(
            select(AgencyEmailSettings).where(AgencyEmailSettings.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def upsert_email_settings(
        self,
        user_id: uuid.UUID,
        provider: str = "custom",
        **fields,
    ) -> AgencyEmailSettings:
        """
        Create or update SMTP settings.

        A known provider fills host, port and secure flag unless they
        are given explicitly.

        Raises:
            ValueError: required fields missing on creation
        """
        provider = (provider or "custom").lower()
        preset = EMAIL_PRESETS.get(provider)
        if preset is not None:
            host, port, secure = preset
            if not fields.get("smtp_host"):
                fields["smtp_host"] = host
            if fields.get("smtp_port") is None:
                fields["smtp_port"] = port
            if fields.get("smtp_secure") is None:
                fields["smtp_secure"] = secure

        email_settings = await self.get_email_settings(user_id)
        if email_settings is None:
            required = ("smtp_host", "smtp_username", "smtp_password", "from_name", "from_email")
            missing = [name for name in required if not fields.get(name)]
            if missing:
                raise ValueError(f"Missing required email settings: {', '.join(missing)}")
            email_settings = AgencyEmailSettings(user_id=user_id, provider=provider)
            self.db.add(email_settings)
        else:
            email_settings.provider = provider

        for key, value in fields.items():
            if value is not None and hasattr(email_settings, key):
                setattr(email_settings, key, value)

        await self.db.commit()
        await self.db.refresh(email_settings)
        return email_settings

    async def delete_email_settings(self, email_settings: AgencyEmailSettings) -> bool:
        await self.db.delete(email_settings)
        await self.db.commit()
        return True

    # ===========================================
    # RECURRING INVOICES
    # ===========================================

    async def list_recurring(self, user_id: uuid.UUID) -> List[RecurringInvoice]:
        result = await self.db.execute(
            select(RecurringInvoice)
            .where(RecurringInvoice.user_id == user_id)
            .order_by(RecurringInvoice.next_invoice_date)
        )
        return list(result.scalars().all())

    async def get_recurring(self, recurring_id: uuid.UUID, user_id: uuid.UUID) -> Optional[RecurringInvoice]:
        result = await self.db.execute(
            select(RecurringInvoice)
            .where(RecurringInvoice.id == recurring_id)
            .where(RecurringInvoice.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def create_recurring(
        self,
        user_id: uuid.UUID,
        source_invoice_id: uuid.UUID,
        frequency: RecurringFrequency,
        start_date: date,
        end_date: Optional[date] = None,
    ) -> RecurringInvoice:
        """
        Schedule a source invoice to be cloned every period from start_date.

        Raises:
            ValueError: unknown source invoice or end before start
        """
        result = await self.db.execute(
            select(Invoice)
            .where(Invoice.id == source_invoice_id)
            .where(Invoice.user_id == user_id)
        )
        source = result.scalar_one_or_none()
        if source is None:
            raise ValueError("Source invoice not found")
        if end_date is not None and end_date < start_date:
            raise ValueError("End date must be on or after start date")

        recurring = RecurringInvoice(
            user_id=user_id,
            source_invoice_id=source.id,
            frequency=frequency,
            start_date=start_date,
            end_date=end_date,
            next_invoice_date=start_date,
            is_active=True,
        )
        source.is_recurring = True
        source.recurring_frequency = frequency
        source.recurring_end_date = end_date

        self.db.add(recurring)
        await self.db.commit()
        await self.db.refresh(recurring)

        logger.info(f"Scheduled {frequency.value} recurrence of invoice {source.invoice_number} from {start_date}")
        return recurring

    async def toggle_recurring(self, recurring: RecurringInvoice) -> RecurringInvoice:
        recurring.is_active = not recurring.is_active
        await self.db.commit()
        await self.db.refresh(recurring)
        return recurring

    async def delete_recurring(self, recurring: RecurringInvoice) -> bool:
        await self.db.delete(recurring)
        await self.db.commit()
        return True

    # ===========================================
    # API KEYS
    # ===========================================

    async def list_api_keys(self, user_id: uuid.UUID) -> List[ApiKey]:
        result = await self.db.execute(
            select(ApiKey)
            .where(ApiKey.user_id == user_id)
            .order_by(ApiKey.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_api_key(self, key_id: uuid.UUID, user_id: uuid.UUID) -> Optional[ApiKey]:
        result = await self.db.execute(
            select(ApiKey)
            .where(ApiKey.id == key_id)
            .where(ApiKey.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def create_api_key(self, user_id: uuid.UUID, name: str) -> Tuple[ApiKey, str]:
        """Create an API key. The raw key is returned once and never stored."""
        raw_key, prefix, key_hash = generate_api_key()
        api_key = ApiKey(
            user_id=user_id,
            name=name,
            key_prefix=prefix,
            key_hash=key_hash,
            is_active=True,
        )

        self.db.add(api_key)
        await self.db.commit()
        await self.db.refresh(api_key)

        logger.info(f"Created API key {prefix}... for user {user_id}")
        return api_key, raw_key

    async def revoke_api_key(self, api_key: ApiKey) -> ApiKey:
        api_key.is_active = False
        await self.db.commit()
        await self.db.refresh(api_key)
        return api_key

    async def authenticate_api_key(self, raw_key: str) -> Optional[User]:
        """Owner of an active API key, touching last_used_at."""
        result = await self.db.execute(
            select(ApiKey)
            .where(ApiKey.key_hash == hash_api_key(raw_key))
            .where(ApiKey.is_active == True)  # noqa: E712
        )
        api_key = result.scalar_one_or_none()
        if api_key is None:
            return None

        api_key.last_used_at = datetime.now(timezone.utc)
        await self.db.commit()

        return await self.db.get(User, api_key.user_id)
