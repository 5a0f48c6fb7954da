"""
InvoiceFlow - Invoice Totals

The one place invoice amounts are computed. Create, edit, PDF, email,
client portal and proposal conversion all call into this module, so a
given set of items and modifiers always yields the same totals.

Order of operations:
    line subtotal = hours * rate (hours enabled) or rate
    subtotal      = sum(line subtotals)
    tax           = subtotal * tax_rate / 100
    discount      = subtotal * value / 100 (percentage) or value (flat)
    total         = subtotal + tax - discount

Tax and percentage discount are both taken on the pre-tax subtotal.
Inputs are first rounded to the two decimal places their columns store
(hours, rate, tax rate, discount value), so totals recomputed from a
saved row match the totals saved with it. Missing or zero hours bill as 1.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, List, Optional, Union

from app.models.invoice import DiscountType


ZERO = Decimal("0.00")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")

Number = Union[Decimal, int, float, str]

# Invoice and proposal columns stored at two decimal places
MONEY_FIELDS = ("tax_rate", "discount_value")


def to_money(value: Optional[Number]) -> Decimal:
    """Coerce to Decimal and round to cents (half up)."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class LineItemInput:
    """Minimal line item shape accepted by the calculator."""
    rate: Decimal
    hours: Optional[Decimal] = None
    title: str = ""
    description: Optional[str] = None


@dataclass(frozen=True)
class InvoiceTotals:
    """Computed invoice amounts."""
    subtotal: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total: Decimal

    def as_dict(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "tax_amount": self.tax_amount,
            "discount_amount": self.discount_amount,
            "total": self.total,
        }


def calculate_line_subtotal(
    hours: Optional[Number],
    rate: Number,
    hours_enabled: bool = True,
) -> Decimal:
    """
    Calculate a single line's subtotal.

    Args:
        hours: Hours worked; missing or zero counts as 1 when hours are enabled
        rate: Hourly rate, or the fixed line price when hours are disabled
        hours_enabled: Whether the invoice bills by the hour

    Returns:
        Line subtotal rounded to cents
    """
    rate = to_money(rate)
    if not hours_enabled:
        return rate
    return to_money(billable_hours(hours) * rate)


def billable_hours(hours: Optional[Number]) -> Decimal:
    """
    Hours as stored and billed: two decimal places, with a missing or
    zero value billed as one hour.
    """
    qty = to_money(hours)
    return qty if qty else Decimal("1.00")


def _item_value(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def calculate_invoice_totals(
    items: Iterable[Any],
    hours_enabled: bool = True,
    tax_enabled: bool = False,
    tax_rate: Number = ZERO,
    discount_enabled: bool = False,
    discount_type: Union[DiscountType, str] = DiscountType.FLAT,
    discount_value: Number = ZERO,
) -> InvoiceTotals:
    """
    Calculate invoice totals.

    Items can be ORM rows, pydantic models, LineItemInput or dicts; only
    `hours` and `rate` are read.
    """
    subtotal = ZERO
    for item in items:
        subtotal += calculate_line_subtotal(
            _item_value(item, "hours"),
            _item_value(item, "rate") or ZERO,
            hours_enabled,
        )
    subtotal = to_money(subtotal)

    tax_amount = ZERO
    if tax_enabled:
        tax_amount = to_money(subtotal * to_money(tax_rate) / HUNDRED)

    discount_amount = ZERO
    if discount_enabled:
        value = to_money(discount_value)
        if DiscountType(discount_type) == DiscountType.PERCENTAGE:
            discount_amount = to_money(subtotal * value / HUNDRED)
        else:
            discount_amount = to_money(value)

    total = to_money(subtotal + tax_amount - discount_amount)

    return InvoiceTotals(
        subtotal=subtotal,
        tax_amount=tax_amount,
        discount_amount=discount_amount,
        total=total,
    )


def infer_hours_enabled(items: Iterable[Any]) -> bool:
    """Hours are enabled when any stored item carries an hours value."""
    return any(_item_value(item, "hours") is not None for item in items)


def normalize_items(items: Iterable[Any], hours_enabled: bool) -> List[dict]:
    """
    Prepare items for storage.

    Assigns order_index in the given order, computes each line subtotal
    and drops hours when they are disabled, so that infer_hours_enabled
    recovers the flag from stored rows.
    """
    normalized = []
    for index, item in enumerate(items):
        hours = _item_value(item, "hours")
        hours = billable_hours(hours) if hours_enabled else None
        rate = to_money(_item_value(item, "rate"))
        normalized.append({
            "title": _item_value(item, "title"),
            "description": _item_value(item, "description"),
            "hours": hours,
            "rate": rate,
            "subtotal": calculate_line_subtotal(hours, rate, hours_enabled),
            "order_index": index,
        })
    return normalized


def totals_for_invoice(invoice: Any) -> InvoiceTotals:
    """Recompute totals from a stored invoice (or proposal) and its items."""
    hours_enabled = getattr(invoice, "hours_enabled", None)
    if hours_enabled is None:
        hours_enabled = infer_hours_enabled(invoice.items)
    return calculate_invoice_totals(
        invoice.items,
        hours_enabled=hours_enabled,
        tax_enabled=invoice.tax_enabled,
        tax_rate=invoice.tax_rate,
        discount_enabled=invoice.discount_enabled,
        discount_type=invoice.discount_type,
        discount_value=invoice.discount_value,
    )


def apply_totals(target: Any, totals: InvoiceTotals) -> None:
    """Write computed totals onto an invoice or proposal row."""
    target.subtotal = totals.subtotal
    target.tax_amount = totals.tax_amount
    target.discount_amount = totals.discount_amount
    target.total = totals.total
