"""
InvoiceFlow - Payment Method Model

Payment instructions a user shows on invoices (UPI, bank, crypto, links).
"""

from enum import Enum

from sqlalchemy import Boolean, Integer, String, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel, OwnedMixin


class PaymentMethodType(str, Enum):
    UPI = "upi"
    BANK = "bank"
    CRYPTO = "crypto"
    PAYMENT_LINK = "payment_link"
    CUSTOM = "custom"


class PaymentMethod(BaseModel, OwnedMixin):
    """
    Payment method.

    `details` keys depend on type: upi_id/merchant_name for UPI,
    account_number/bank_name/ifsc_code for bank, currency/wallet_address/network
    for crypto, url for payment links and instructions for custom.
    """

    __tablename__ = "payment_methods"

    type: Mapped[PaymentMethodType] = mapped_column(SQLEnum(PaymentMethodType), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    details: Mapped[dict] = mapped_column(JSONB, default=dict, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<PaymentMethod(id={self.id}, type={self.type}, name={self.name})>"
