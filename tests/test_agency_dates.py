"""
InvoiceFlow - Recurring Date Tests
"""

from datetime import date

import pytest

from app.models.invoice import RecurringFrequency
from app.services.agency_service import add_months, advance_date


class TestAddMonths:
    """Test month arithmetic."""

    def test_simple(self):
        assert add_months(date(2026, 3, 15), 1) == date(2026, 4, 15)

    def test_clamps_to_month_end(self):
        assert add_months(date(2026, 1, 31), 1) == date(2026, 2, 28)
        assert add_months(date(2028, 1, 31), 1) == date(2028, 2, 29)

    def test_crosses_year(self):
        assert add_months(date(2026, 11, 30), 3) == date(2027, 2, 28)

    def test_negative(self):
        assert add_months(date(2026, 10, 1), -9) == date(2026, 1, 1)
        assert add_months(date(2026, 3, 31), -13) == date(2025, 2, 28)


@pytest.mark.parametrize(
    "frequency,expected",
    [
        (RecurringFrequency.WEEKLY, date(2026, 11, 7)),
        (RecurringFrequency.MONTHLY, date(2026, 11, 30)),
        (RecurringFrequency.QUARTERLY, date(2027, 1, 31)),
        (RecurringFrequency.YEARLY, date(2027, 10, 31)),
    ],
)
def test_advance_date(frequency, expected):
    assert advance_date(date(2026, 10, 31), frequency) == expected


class TestScheduleAnchor:
    """Occurrences are counted from the schedule start, not the last run."""

    def _chain(self, start: date, frequency: RecurringFrequency, runs: int):
        dates = [start]
        for _ in range(runs):
            dates.append(advance_date(dates[-1], frequency, anchor=start))
        return dates

    def test_monthly_returns_to_month_end(self):
        assert self._chain(date(2026, 1, 31), RecurringFrequency.MONTHLY, 4) == [
            date(2026, 1, 31),
            date(2026, 2, 28),
            date(2026, 3, 31),
            date(2026, 4, 30),
            date(2026, 5, 31),
        ]

    def test_quarterly_returns_to_anchor_day(self):
        assert self._chain(date(2026, 11, 30), RecurringFrequency.QUARTERLY, 2) == [
            date(2026, 11, 30),
            date(2027, 2, 28),
            date(2027, 5, 30),
        ]

    def test_yearly_leap_day(self):
        assert self._chain(date(2028, 2, 29), RecurringFrequency.YEARLY, 4) == [
            date(2028, 2, 29),
            date(2029, 2, 28),
            date(2030, 2, 28),
            date(2031, 2, 28),
            date(2032, 2, 29),
        ]

    def test_weekly_stays_on_grid(self):
        assert advance_date(date(2026, 10, 10), RecurringFrequency.WEEKLY, anchor=date(2026, 10, 5)) == date(
            2026, 10, 12
        )

    def test_next_occurrence_after_late_value(self):
        assert advance_date(date(2026, 3, 15), RecurringFrequency.MONTHLY, anchor=date(2026, 1, 31)) == date(
            2026, 3, 31
        )
