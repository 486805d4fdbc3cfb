"""Tests for the recurrence calculator."""

from datetime import date

import pytest

from finance_tracker.ledger import (
    InvalidIntervalError,
    next_occurrence,
    next_recurring_date,
)
from finance_tracker.models.ledger import LedgerErrorKind, RecurringInterval


class TestNextOccurrence:
    """Tests for next_occurrence."""

    def test_daily(self):
        """Test DAILY adds one day, across a month boundary."""
        assert next_occurrence(date(2024, 1, 31), RecurringInterval.DAILY) == date(2024, 2, 1)

    def test_weekly(self):
        """Test WEEKLY adds seven days."""
        assert next_occurrence(date(2024, 2, 15), RecurringInterval.WEEKLY) == date(2024, 2, 22)

    def test_weekly_across_leap_day(self):
        """Test WEEKLY counts Feb 29 in a leap year."""
        assert next_occurrence(date(2024, 2, 26), RecurringInterval.WEEKLY) == date(2024, 3, 4)

    def test_monthly(self):
        """Test MONTHLY keeps the day of month."""
        assert next_occurrence(date(2024, 3, 15), RecurringInterval.MONTHLY) == date(2024, 4, 15)

    def test_monthly_clamps_to_leap_february(self):
        """Test Jan 31 + 1 month is Feb 29 in a leap year."""
        assert next_occurrence(date(2024, 1, 31), RecurringInterval.MONTHLY) == date(2024, 2, 29)

    def test_monthly_clamps_to_short_february(self):
        """Test Jan 31 + 1 month is Feb 28 outside a leap year."""
        assert next_occurrence(date(2023, 1, 31), RecurringInterval.MONTHLY) == date(2023, 2, 28)

    def test_monthly_clamps_to_thirty_day_month(self):
        """Test Mar 31 + 1 month is Apr 30."""
        assert next_occurrence(date(2024, 3, 31), RecurringInterval.MONTHLY) == date(2024, 4, 30)

    def test_monthly_rolls_year(self):
        """Test December rolls into January of the next year."""
        assert next_occurrence(date(2024, 12, 10), RecurringInterval.MONTHLY) == date(2025, 1, 10)

    def test_yearly(self):
        """Test YEARLY keeps month and day."""
        assert next_occurrence(date(2024, 3, 1), RecurringInterval.YEARLY) == date(2025, 3, 1)

    def test_yearly_from_leap_day(self):
        """Test Feb 29 + 1 year clamps to Feb 28."""
        assert next_occurrence(date(2024, 2, 29), RecurringInterval.YEARLY) == date(2025, 2, 28)

    def test_accepts_interval_string(self):
        """Test the interval may be given as its string value."""
        assert next_occurrence(date(2024, 2, 15), "WEEKLY") == date(2024, 2, 22)

    def test_unknown_interval_raises(self):
        """Test unknown intervals raise InvalidIntervalError."""
        with pytest.raises(InvalidIntervalError) as exc_info:
            next_occurrence(date(2024, 1, 1), "FORTNIGHTLY")
        assert exc_info.value.kind == LedgerErrorKind.INVALID_INTERVAL

    def test_is_deterministic(self):
        """Test the same inputs always give the same date."""
        results = {
            next_occurrence(date(2024, 1, 31), RecurringInterval.MONTHLY)
            for _ in range(10)
        }
        assert results == {date(2024, 2, 29)}


class TestNextRecurringDate:
    """Tests for next_recurring_date."""

    def test_not_recurring_returns_none(self):
        """Test non-recurring transactions have no next date."""
        assert next_recurring_date(date(2024, 3, 1), False, RecurringInterval.MONTHLY) is None

    def test_recurring_without_interval_returns_none(self):
        """Test a recurring flag without an interval has no next date."""
        assert next_recurring_date(date(2024, 3, 1), True, None) is None

    def test_recurring_with_interval(self):
        """Test recurring with an interval gives the next occurrence."""
        assert next_recurring_date(
            date(2024, 3, 1), True, RecurringInterval.YEARLY
        ) == date(2025, 3, 1)

    def test_invalid_interval_ignored_when_not_recurring(self):
        """Test the interval is not checked when the transaction does not recur."""
        assert next_recurring_date(date(2024, 3, 1), False, "FORTNIGHTLY") is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
