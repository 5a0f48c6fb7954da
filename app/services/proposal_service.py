"""
InvoiceFlow - Proposal Service

Proposals share the invoice modifiers and total computation, and convert
into draft invoices.
"""

import logging
import uuid
from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.invoice import DiscountType, Invoice, InvoiceStatus
from app.models.proposal import Proposal, ProposalItem, ProposalStatus
from app.models.user import User
from app.services.invoice_service import InvoiceService
from app.services.invoice_totals import (
    MONEY_FIELDS,
    ZERO,
    apply_totals,
    calculate_invoice_totals,
    normalize_items,
    to_money,
)

logger = logging.getLogger(__name__)


def _value(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def validate_proposal(client_name: Optional[str], client_email: Optional[str], items: List[Any]) -> None:
    """
    Raise ValueError unless the proposal can become an invoice.

    Client name and email are required, and every item needs a title
    and a positive rate.
    """
    if not client_name or not client_email:
        raise ValueError("Please select a client or add client information")
    if not items:
        raise ValueError("A proposal needs at least one item")
    for item in items:
        rate = _value(item, "rate")
        if not _value(item, "title") or rate is None or rate <= 0:
            raise ValueError("All items must have a title and rate")


class ProposalService:
    """Service for proposal operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_proposals_for_user(self, user_id: uuid.UUID) -> List[Proposal]:
        result = await self.db.execute(
            select(Proposal)
            .where(Proposal.user_id == user_id)
            .order_by(Proposal.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_proposal_by_id(self, proposal_id: uuid.UUID, user_id: uuid.UUID) -> Optional[Proposal]:
        result = await self.db.execute(
            select(Proposal)
            .where(Proposal.id == proposal_id)
            .where(Proposal.user_id == user_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _apply_items_and_totals(proposal: Proposal, items: List[Any]) -> None:
        proposal.items = [
            ProposalItem(**row) for row in normalize_items(items, proposal.hours_enabled)
        ]
        totals = calculate_invoice_totals(
            proposal.items,
            hours_enabled=proposal.hours_enabled,
            tax_enabled=proposal.tax_enabled,
            tax_rate=proposal.tax_rate,
            discount_enabled=proposal.discount_enabled,
            discount_type=proposal.discount_type,
            discount_value=proposal.discount_value,
        )
        if totals.total < ZERO:
            raise ValueError("Discount cannot exceed the proposal subtotal plus tax")
        apply_totals(proposal, totals)

    async def create_proposal(
        self,
        user: User,
        title: str,
        client_name: str,
        client_email: str,
        items: List[Any],
        currency: Optional[str] = None,
        tax_rate=None,
        discount_value=None,
        **fields,
    ) -> Proposal:
        """Create a proposal. Defaults follow the user's profile like invoices."""
        validate_proposal(client_name, client_email, items)

        proposal = Proposal(
            user_id=user.id,
            title=title,
            client_name=client_name,
            client_email=client_email,
            currency=(currency or user.default_currency or "USD").upper(),
            tax_rate=to_money(tax_rate if tax_rate is not None else user.default_tax_rate),
            discount_value=to_money(discount_value if discount_value is not None else user.default_discount),
            status=ProposalStatus.DRAFT,
            **{k: v for k, v in fields.items() if v is not None},
        )
        if proposal.hours_enabled is None:
            proposal.hours_enabled = True
        for flag in ("tax_enabled", "discount_enabled"):
            if getattr(proposal, flag) is None:
                setattr(proposal, flag, False)
        if proposal.discount_type is None:
            proposal.discount_type = DiscountType.FLAT

        self._apply_items_and_totals(proposal, items)

        self.db.add(proposal)
        await self.db.commit()
        await self.db.refresh(proposal)

        return proposal

    async def update_proposal(
        self,
        proposal: Proposal,
        items: Optional[List[Any]] = None,
        **fields,
    ) -> Proposal:
        """Update a draft proposal. Converted proposals are frozen."""
        if proposal.status == ProposalStatus.CONVERTED:
            raise ValueError("Converted proposals cannot be edited")

        for key in MONEY_FIELDS:
            if fields.get(key) is not None:
                fields[key] = to_money(fields[key])

        for key, value in fields.items():
            if value is not None and hasattr(proposal, key):
                setattr(proposal, key, value)

        self._apply_items_and_totals(proposal, items if items is not None else list(proposal.items))

        await self.db.commit()
        await self.db.refresh(proposal)
        return proposal

    async def delete_proposal(self, proposal: Proposal) -> bool:
        await self.db.delete(proposal)
        await self.db.commit()
        return True

    async def convert_to_invoice(self, proposal: Proposal, user: User) -> Invoice:
        """
        Create a draft invoice from a proposal.

        Items and modifiers are copied and totals recomputed by the
        invoice service. The proposal is marked converted.
        """
        if proposal.status == ProposalStatus.CONVERTED:
            raise ValueError("Proposal has already been converted")

        validate_proposal(proposal.client_name, proposal.client_email, list(proposal.items))

        invoice = await InvoiceService(self.db).create_invoice(
            user,
            items=list(proposal.items),
            currency=proposal.currency,
            tax_rate=proposal.tax_rate,
            discount_value=proposal.discount_value,
            client_name=proposal.client_name,
            client_email=proposal.client_email,
            client_address=proposal.client_address,
            client_phone=proposal.client_phone,
            client_business_name=proposal.client_business_name,
            status=InvoiceStatus.DRAFT,
            hours_enabled=proposal.hours_enabled,
            tax_enabled=proposal.tax_enabled,
            discount_enabled=proposal.discount_enabled,
            discount_type=proposal.discount_type,
            notes=proposal.notes,
            terms=proposal.terms,
            estimated_completion=proposal.estimated_completion,
        )

        proposal.status = ProposalStatus.CONVERTED
        proposal.converted_invoice_id = invoice.id
        await self.db.commit()

        logger.info(f"Converted proposal {proposal.id} into invoice {invoice.invoice_number}")
        return invoice
