"""
InvoiceFlow - Payment Method Service

Payment instructions shown on invoices, PDFs and emails.
"""

import uuid
from typing import Any, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.payment_method import PaymentMethod, PaymentMethodType


def describe_payment_method(method: Any) -> List[str]:
    """
    Human-readable lines for a payment method's details.

    Used by both the PDF and the invoice email so they show the same text.
    """
    details = method.details or {}
    method_type = PaymentMethodType(method.type)
    lines: List[str] = []

    if method_type == PaymentMethodType.UPI:
        if details.get("upi_id"):
            lines.append(f"UPI ID: {details['upi_id']}")
        if details.get("merchant_name"):
            lines.append(f"Merchant: {details['merchant_name']}")
    elif method_type == PaymentMethodType.BANK:
        if details.get("account_number"):
            lines.append(f"Account: {details['account_number']}")
        if details.get("bank_name"):
            lines.append(f"Bank: {details['bank_name']}")
        if details.get("ifsc_code"):
            lines.append(f"IFSC: {details['ifsc_code']}")
    elif method_type == PaymentMethodType.CRYPTO:
        if details.get("wallet_address"):
            currency = details.get("currency") or "Wallet"
            lines.append(f"{currency}: {details['wallet_address']}")
        if details.get("network"):
            lines.append(f"Network: {details['network']}")
    elif method_type == PaymentMethodType.PAYMENT_LINK:
        if details.get("url"):
            lines.append(details["url"])

    if details.get("instructions"):
        lines.append(details["instructions"])

    return lines


class PaymentMethodService:
    """Service for payment method operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_methods_for_user(
        self,
        user_id: uuid.UUID,
        active_only: bool = False,
    ) -> List[PaymentMethod]:
        """Payment methods in display order."""
        query = select(PaymentMethod).where(PaymentMethod.user_id == user_id)
        if active_only:
            query = query.where(PaymentMethod.is_active == True)  # noqa: E712
        query = query.order_by(PaymentMethod.order_index, PaymentMethod.created_at)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_method_by_id(
        self,
        method_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> Optional[PaymentMethod]:
        result = await self.db.execute(
            select(PaymentMethod)
            .where(PaymentMethod.id == method_id)
            .where(PaymentMethod.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def create_method(
        self,
        user_id: uuid.UUID,
        type: PaymentMethodType,
        name: str,
        details: Optional[dict] = None,
        is_active: bool = True,
    ) -> PaymentMethod:
        """Create a payment method at the end of the list."""
        result = await self.db.execute(
            select(func.coalesce(func.max(PaymentMethod.order_index), -1))
            .where(PaymentMethod.user_id == user_id)
        )
        next_index = result.scalar() + 1

        method = PaymentMethod(
            user_id=user_id,
            type=type,
            name=name,
            details=details or {},
            is_active=is_active,
            order_index=next_index,
        )

        self.db.add(method)
        await self.db.commit()
        await self.db.refresh(method)

        return method

    async def update_method(self, method: PaymentMethod, **kwargs) -> PaymentMethod:
        for key, value in kwargs.items():
            if value is not None and hasattr(method, key):
                setattr(method, key, value)

        await self.db.commit()
        await self.db.refresh(method)

        return method

    async def toggle_method(self, method: PaymentMethod) -> PaymentMethod:
        """Flip is_active."""
        method.is_active = not method.is_active
        await self.db.commit()
        await self.db.refresh(method)
        return method

    async def reorder_methods(
        self,
        user_id: uuid.UUID,
        ordered_ids: List[uuid.UUID],
    ) -> List[PaymentMethod]:
        """
        Set order_index from the position of each id in ordered_ids.

        Raises ValueError if an id does not belong to the user.
        """
        methods = {m.id: m for m in await self.get_methods_for_user(user_id)}

        for method_id in ordered_ids:
            if method_id not in methods:
                raise ValueError(f"Payment method {method_id} not found")

        for index, method_id in enumerate(ordered_ids):
            methods[method_id].order_index = index

        await self.db.commit()
        return await self.get_methods_for_user(user_id)

    async def delete_method(self, method: PaymentMethod) -> bool:
        await self.db.delete(method)
        await self.db.commit()
        return True
