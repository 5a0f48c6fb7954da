"""
InvoiceFlow - Invoice Service

Business logic for invoice management. Amounts always come from
app.services.invoice_totals.
"""

import logging
import time
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, List, Optional, Tuple

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.client import Client
from app.models.invoice import Invoice, InvoiceItem, InvoiceStatus, DiscountType
from app.models.user import User, UserPlan
from app.services.invoice_totals import (
    MONEY_FIELDS,
    ZERO,
    apply_totals,
    calculate_invoice_totals,
    normalize_items,
    to_money,
)
from app.utils.error_handling import PlanLimitException

logger = logging.getLogger(__name__)


# Fields copied when cloning an invoice (duplicate, recurring generation)
CLONE_FIELDS = (
    "client_id", "client_name", "client_email", "client_address",
    "client_phone", "client_business_name", "currency",
    "hours_enabled", "tax_enabled", "tax_rate", "discount_enabled",
    "discount_type", "discount_value", "notes", "terms",
    "payment_gateway_url",
)

CLIENT_FIELDS = {
    "client_name": "name",
    "client_email": "email",
    "client_address": "address",
    "client_phone": "phone",
    "client_business_name": "business_name",
}


class InvoiceService:
    """Service for invoice operations. Every query is scoped to the owner."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ===========================================
    # INVOICE NUMBER GENERATION
    # ===========================================

    async def generate_invoice_number(self, user_id: uuid.UUID) -> str:
        """
        Generate a unique invoice number for a user.
        Format: INV-<epoch milliseconds> (e.g., INV-1760868000000)
        """
        stamp = int(time.time() * 1000)
        while True:
            candidate = f"INV-{stamp}"
            if await self.get_invoice_by_number(candidate, user_id) is None:
                return candidate
            stamp += 1

    # ===========================================
    # QUERIES
    # ===========================================

    async def get_invoices_for_user(
        self,
        user_id: uuid.UUID,
        status: Optional[InvoiceStatus] = None,
        search: Optional[str] = None,
        client_email: Optional[str] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[List[Invoice], int]:
        """Get invoices for a user with filters, newest first."""
        filters = [Invoice.user_id == user_id]

        if status:
            filters.append(Invoice.status == status)

        if client_email:
            filters.append(func.lower(Invoice.client_email) == client_email.lower())

        if search:
            search_term = f"%{search}%"
            filters.append(
                or_(
                    Invoice.invoice_number.ilike(search_term),
                    Invoice.client_name.ilike(search_term),
                    Invoice.client_email.ilike(search_term),
                )
            )

        count_result = await self.db.execute(
            select(func.count(Invoice.id)).where(*filters)
        )
        total = count_result.scalar() or 0

        offset = (page - 1) * per_page
        result = await self.db.execute(
            select(Invoice)
            .where(*filters)
            .order_by(Invoice.created_at.desc())
            .limit(per_page)
            .offset(offset)
        )
        invoices = list(result.scalars().all())

        return invoices, total

    async def get_invoice_by_id(
        self,
        invoice_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> Optional[Invoice]:
        """Get invoice by ID."""
        result = await self.db.execute(
            select(Invoice)
            .where(Invoice.id == invoice_id)
            .where(Invoice.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_invoice_by_number(
        self,
        invoice_number: str,
        user_id: uuid.UUID,
    ) -> Optional[Invoice]:
        """Get invoice by invoice number."""
        result = await self.db.execute(
            select(Invoice)
            .where(Invoice.invoice_number == invoice_number)
            .where(Invoice.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def count_invoices_this_month(self, user_id: uuid.UUID) -> int:
        """Invoices created since the start of the current calendar month (UTC)."""
        now = datetime.now(timezone.utc)
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        result = await self.db.execute(
            select(func.count(Invoice.id))
            .where(Invoice.user_id == user_id)
            .where(Invoice.created_at >= month_start)
        )
        return result.scalar() or 0

    async def check_invoice_quota(self, user: User) -> None:
        """Raise when a free-plan user has used up this month's invoices."""
        if user.effective_plan != UserPlan.FREE:
            return
        limit = settings.free_plan_monthly_invoice_limit
        used = await self.count_invoices_this_month(user.id)
        if used >= limit:
            raise PlanLimitException(plan=UserPlan.FREE.value, limit=limit)

    # ===========================================
    # CRUD OPERATIONS
    # ===========================================

    async def _get_client(self, client_id: uuid.UUID, user_id: uuid.UUID) -> Client:
        result = await self.db.execute(
            select(Client)
            .where(Client.id == client_id)
            .where(Client.user_id == user_id)
        )
        client = result.scalar_one_or_none()
        if client is None:
            raise ValueError("Client not found")
        return client

    @staticmethod
    def _set_items(invoice: Invoice, items: List[Any]) -> None:
        invoice.items = [
            InvoiceItem(**row) for row in normalize_items(items, invoice.hours_enabled)
        ]

    @staticmethod
    def _recalculate(invoice: Invoice) -> None:
        """Recompute and store totals. Rejects negative totals."""
        if (
            invoice.discount_enabled
            and invoice.discount_type == DiscountType.PERCENTAGE
            and invoice.discount_value > 100
        ):
            raise ValueError("Percentage discount cannot exceed 100")
        totals = calculate_invoice_totals(
            invoice.items,
            hours_enabled=invoice.hours_enabled,
            tax_enabled=invoice.tax_enabled,
            tax_rate=invoice.tax_rate,
            discount_enabled=invoice.discount_enabled,
            discount_type=invoice.discount_type,
            discount_value=invoice.discount_value,
        )
        if totals.total < ZERO:
            raise ValueError("Discount cannot exceed the invoice subtotal plus tax")
        apply_totals(invoice, totals)

    async def create_invoice(
        self,
        user: User,
        items: List[Any],
        client_id: Optional[uuid.UUID] = None,
        invoice_number: Optional[str] = None,
        currency: Optional[str] = None,
        tax_rate: Optional[Decimal] = None,
        discount_value: Optional[Decimal] = None,
        enforce_quota: bool = True,
        **fields,
    ) -> Invoice:
        """
        Create a new invoice with items.

        Currency, tax rate and discount default to the user's profile.
        A saved client fills any client field not given explicitly.
        """
        if enforce_quota:
            await self.check_invoice_quota(user)

        if invoice_number:
            if await self.get_invoice_by_number(invoice_number, user.id):
                raise ValueError(f"Invoice number {invoice_number} already exists")
        else:
            invoice_number = await self.generate_invoice_number(user.id)

        if client_id:
            client = await self._get_client(client_id, user.id)
            for field, attr in CLIENT_FIELDS.items():
                if not fields.get(field):
                    fields[field] = getattr(client, attr)

        invoice = Invoice(
            user_id=user.id,
            invoice_number=invoice_number,
            client_id=client_id,
            currency=(currency or user.default_currency or "USD").upper(),
            tax_rate=to_money(tax_rate if tax_rate is not None else user.default_tax_rate),
            discount_value=to_money(discount_value if discount_value is not None else user.default_discount),
            **{k: v for k, v in fields.items() if v is not None},
        )
        if invoice.hours_enabled is None:
            invoice.hours_enabled = True
        for flag in ("tax_enabled", "discount_enabled", "is_recurring"):
            if getattr(invoice, flag) is None:
                setattr(invoice, flag, False)
        if invoice.discount_type is None:
            invoice.discount_type = DiscountType.FLAT
        if invoice.status is None:
            invoice.status = InvoiceStatus.DRAFT

        self._set_items(invoice, items)
        self._recalculate(invoice)

        self.db.add(invoice)
        await self.db.commit()
        await self.db.refresh(invoice)

        logger.info(f"Created invoice {invoice.invoice_number} for user {user.id} (total {invoice.total})")
        return invoice

    async def update_invoice(
        self,
        invoice: Invoice,
        items: Optional[List[Any]] = None,
        **fields,
    ) -> Invoice:
        """
        Update an invoice.

        Items, when given, replace the existing items. Totals are
        recomputed from whatever items the invoice ends up with.
        """
        new_number = fields.pop("invoice_number", None)
        if new_number and new_number != invoice.invoice_number:
            if await self.get_invoice_by_number(new_number, invoice.user_id):
                raise ValueError(f"Invoice number {new_number} already exists")
            invoice.invoice_number = new_number

        client_id = fields.pop("client_id", None)
        if client_id:
            client = await self._get_client(client_id, invoice.user_id)
            invoice.client_id = client.id
            for field, attr in CLIENT_FIELDS.items():
                if not fields.get(field):
                    fields[field] = getattr(client, attr)

        for key in MONEY_FIELDS:
            if fields.get(key) is not None:
                fields[key] = to_money(fields[key])

        for key, value in fields.items():
            if value is not None and hasattr(invoice, key):
                setattr(invoice, key, value)

        if items is not None:
            self._set_items(invoice, items)
        elif "hours_enabled" in fields and fields["hours_enabled"] is not None:
            # Re-normalize stored items under the new hours setting
            self._set_items(invoice, list(invoice.items))

        self._recalculate(invoice)

        await self.db.commit()
        await self.db.refresh(invoice)

        return invoice

    async def update_status(self, invoice: Invoice, status: InvoiceStatus) -> Invoice:
        """Change invoice status (mark paid, sent, overdue or back to draft)."""
        old_status = invoice.status
        invoice.status = status
        await self.db.commit()
        await self.db.refresh(invoice)

        logger.info(f"Invoice {invoice.invoice_number} status {old_status.value} -> {status.value}")
        return invoice

    async def delete_invoice(self, invoice: Invoice) -> bool:
        """Delete an invoice and its items."""
        await self.db.delete(invoice)
        await self.db.commit()
        return True

    async def clone_invoice(
        self,
        source: Invoice,
        due_date: Optional[date] = None,
        parent_recurring_id: Optional[uuid.UUID] = None,
    ) -> Invoice:
        """Copy an invoice as a new draft with a fresh number. Flushed, not committed."""
        invoice = Invoice(
            user_id=source.user_id,
            invoice_number=await self.generate_invoice_number(source.user_id),
            status=InvoiceStatus.DRAFT,
            due_date=due_date,
            parent_recurring_id=parent_recurring_id,
            is_recurring=False,
            **{field: getattr(source, field) for field in CLONE_FIELDS},
        )
        self._set_items(invoice, list(source.items))
        self._recalculate(invoice)
        self.db.add(invoice)
        await self.db.flush()
        return invoice

    async def duplicate_invoice(self, invoice: Invoice, user: User) -> Invoice:
        """Duplicate an invoice as a new draft."""
        await self.check_invoice_quota(user)
        copy = await self.clone_invoice(invoice, due_date=invoice.due_date)
        await self.db.commit()
        await self.db.refresh(copy)
        return copy
