"""
InvoiceFlow - CSV Export Tests
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.models.invoice import InvoiceStatus
from app.services.admin_service import EXPORT_COLUMNS, row_to_dict, rows_to_csv


class TestRowsToCsv:
    """Test CSV rendering."""

    def test_header_unquoted_values_quoted(self):
        content = rows_to_csv([
            {"id": 1, "name": "Acme, Inc.", "note": 'Said "hi"'},
        ])

        assert content == 'id,name,note\n"1","Acme, Inc.","Said ""hi"""\n'

    def test_value_formatting(self):
        content = rows_to_csv([{
            "status": InvoiceStatus.PAID,
            "total": Decimal("12.5"),
            "due_date": date(2026, 10, 19),
            "created_at": datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc),
            "assigned_to": None,
        }])

        assert content.splitlines()[1] == '"paid","12.50","2026-10-19","2026-10-19T09:00:00+00:00",""'

    def test_empty_rows(self):
        with pytest.raises(ValueError, match="No data to export"):
            rows_to_csv([])


class TestRowToDict:
    """Test column extraction."""

    def test_follows_export_columns(self):
        user = SimpleNamespace(
            id="u1", email="pro@example.com", name="Pro", phone=None,
            plan="pro", plan_expires_at=None, is_banned=False, created_at=None,
        )

        data = row_to_dict(user, EXPORT_COLUMNS["users"])

        assert list(data) == EXPORT_COLUMNS["users"]
        assert data["email"] == "pro@example.com"

    def test_missing_attribute_is_none(self):
        assert row_to_dict(SimpleNamespace(), ["missing"]) == {"missing": None}
