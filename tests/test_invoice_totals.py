"""
InvoiceFlow - Invoice Totals Tests

Tests for the invoice amount calculator.
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.models.invoice import DiscountType
from app.services.invoice_totals import (
    LineItemInput,
    calculate_invoice_totals,
    calculate_line_subtotal,
    infer_hours_enabled,
    normalize_items,
    to_money,
    totals_for_invoice,
)


class TestLineSubtotal:
    """Test single line subtotals."""

    def test_hours_times_rate(self):
        assert calculate_line_subtotal(Decimal("2.5"), Decimal("40")) == Decimal("100.00")

    def test_missing_hours_counts_as_one(self):
        assert calculate_line_subtotal(None, Decimal("75")) == Decimal("75.00")

    def test_hours_disabled_uses_rate_only(self):
        assert calculate_line_subtotal(Decimal("10"), Decimal("75"), hours_enabled=False) == Decimal("75.00")

    def test_rounds_half_up_to_cents(self):
        assert calculate_line_subtotal(Decimal("1"), Decimal("0.125")) == Decimal("0.13")
        assert calculate_line_subtotal(Decimal("3"), Decimal("33.335")) == Decimal("100.02")

    def test_hours_rounded_to_stored_precision(self):
        # Hours are stored at two decimal places; bill what is stored
        assert calculate_line_subtotal(Decimal("0.333"), Decimal("10")) == Decimal("3.30")
        assert calculate_line_subtotal(Decimal("1.005"), Decimal("100")) == Decimal("101.00")

    def test_zero_hours_counts_as_one(self):
        assert calculate_line_subtotal(Decimal("0"), Decimal("75")) == Decimal("75.00")


class TestInvoiceTotals:
    """Test invoice-level totals."""

    ITEMS = [
        LineItemInput(hours=Decimal("2"), rate=Decimal("50")),
        LineItemInput(hours=Decimal("1"), rate=Decimal("25")),
    ]

    def test_plain_subtotal(self):
        totals = calculate_invoice_totals(self.ITEMS)

        assert totals.subtotal == Decimal("125.00")
        assert totals.tax_amount == Decimal("0.00")
        assert totals.discount_amount == Decimal("0.00")
        assert totals.total == Decimal("125.00")

    def test_tax_only_when_enabled(self):
        disabled = calculate_invoice_totals(self.ITEMS, tax_enabled=False, tax_rate=Decimal("18"))
        enabled = calculate_invoice_totals(self.ITEMS, tax_enabled=True, tax_rate=Decimal("18"))

        assert disabled.tax_amount == Decimal("0.00")
        assert enabled.tax_amount == Decimal("22.50")
        assert enabled.total == Decimal("147.50")

    def test_flat_discount(self):
        totals = calculate_invoice_totals(
            self.ITEMS,
            discount_enabled=True,
            discount_type=DiscountType.FLAT,
            discount_value=Decimal("20"),
        )
        assert totals.discount_amount == Decimal("20.00")
        assert totals.total == Decimal("105.00")

    def test_percentage_discount_on_pre_tax_subtotal(self):
        totals = calculate_invoice_totals(
            self.ITEMS,
            tax_enabled=True,
            tax_rate=Decimal("10"),
            discount_enabled=True,
            discount_type=DiscountType.PERCENTAGE,
            discount_value=Decimal("10"),
        )
        # 125 + 12.50 - 12.50
        assert totals.tax_amount == Decimal("12.50")
        assert totals.discount_amount == Decimal("12.50")
        assert totals.total == Decimal("125.00")

    def test_discount_ignored_when_disabled(self):
        totals = calculate_invoice_totals(
            self.ITEMS,
            discount_enabled=False,
            discount_value=Decimal("50"),
        )
        assert totals.total == Decimal("125.00")

    def test_discount_type_accepts_string(self):
        totals = calculate_invoice_totals(
            self.ITEMS,
            discount_enabled=True,
            discount_type="percentage",
            discount_value=Decimal("50"),
        )
        assert totals.discount_amount == Decimal("62.50")

    def test_dict_items(self):
        totals = calculate_invoice_totals(
            [{"hours": "3", "rate": "33.33"}],
        )
        assert totals.subtotal == Decimal("99.99")

    def test_hours_disabled_sums_rates(self):
        totals = calculate_invoice_totals(self.ITEMS, hours_enabled=False)
        assert totals.subtotal == Decimal("75.00")

    def test_empty_items(self):
        totals = calculate_invoice_totals([])
        assert totals.total == Decimal("0.00")

    def test_overdiscount_yields_negative_total(self):
        """The calculator reports the negative total; callers reject it."""
        totals = calculate_invoice_totals(
            self.ITEMS,
            discount_enabled=True,
            discount_value=Decimal("200"),
        )
        assert totals.total == Decimal("-75.00")


class TestNormalizeItems:
    """Test item preparation for storage."""

    def test_assigns_order_and_subtotals(self):
        rows = normalize_items(
            [
                {"title": "A", "hours": Decimal("2"), "rate": Decimal("10")},
                {"title": "B", "hours": None, "rate": Decimal("5")},
            ],
            hours_enabled=True,
        )

        assert [r["order_index"] for r in rows] == [0, 1]
        assert rows[0]["subtotal"] == Decimal("20.00")
        assert rows[1]["hours"] == Decimal("1")
        assert rows[1]["subtotal"] == Decimal("5.00")

    def test_drops_hours_when_disabled(self):
        rows = normalize_items(
            [{"title": "Flat fee", "hours": Decimal("4"), "rate": Decimal("300")}],
            hours_enabled=False,
        )

        assert rows[0]["hours"] is None
        assert rows[0]["subtotal"] == Decimal("300.00")
        assert infer_hours_enabled(rows) is False

    def test_infer_hours_enabled(self):
        assert infer_hours_enabled([{"hours": Decimal("1")}, {"hours": None}]) is True
        assert infer_hours_enabled([{"hours": None}]) is False


class TestTotalsForInvoice:
    """Test recomputation from stored rows."""

    def test_matches_stored_invoice(self):
        invoice = SimpleNamespace(
            hours_enabled=True,
            tax_enabled=True,
            tax_rate=Decimal("5"),
            discount_enabled=True,
            discount_type=DiscountType.FLAT,
            discount_value=Decimal("10"),
            items=[SimpleNamespace(hours=Decimal("4"), rate=Decimal("25"))],
        )

        totals = totals_for_invoice(invoice)

        assert totals.subtotal == Decimal("100.00")
        assert totals.tax_amount == Decimal("5.00")
        assert totals.total == Decimal("95.00")

    def test_proposal_without_flag_infers_hours(self):
        proposal = SimpleNamespace(
            tax_enabled=False,
            tax_rate=Decimal("0"),
            discount_enabled=False,
            discount_type=DiscountType.FLAT,
            discount_value=Decimal("0"),
            items=[SimpleNamespace(hours=None, rate=Decimal("500"))],
        )

        assert totals_for_invoice(proposal).total == Decimal("500.00")


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, Decimal("0.00")),
        (1, Decimal("1.00")),
        (0.1, Decimal("0.10")),
        ("2.005", Decimal("2.01")),
    ],
)
def test_to_money(value, expected):
    assert to_money(value) == expected
