"""
Recurrence Calculator

Computes the next occurrence of a repeating transaction from its anchor date.

DESIGN DECISION: MONTHLY and YEARLY clamp to the end of a short month.
Jan 31 + 1 month is Feb 29 in a leap year (Feb 28 otherwise), never Mar 2.
Feb 29 + 1 year is Feb 28. A bill that lands on the last day of the month
keeps landing inside the month it belongs to.
"""

import calendar
from datetime import date, timedelta
from typing import Optional, Union

from finance_tracker.ledger.errors import InvalidIntervalError
from finance_tracker.models.ledger import RecurringInterval


def _coerce_interval(interval: Union[RecurringInterval, str]) -> RecurringInterval:
    if isinstance(interval, RecurringInterval):
        return interval
    try:
        return RecurringInterval(interval)
    except ValueError:
        raise InvalidIntervalError(interval) from None


def _add_months(anchor: date, months: int) -> date:
    month_index = anchor.month - 1 + months
    year = anchor.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(anchor.day, last_day))


def next_occurrence(anchor: date, interval: Union[RecurringInterval, str]) -> date:
    """
    Return the next date a recurring transaction falls due.

    Raises:
        InvalidIntervalError: interval is not a known RecurringInterval
    """
    interval = _coerce_interval(interval)

    if interval == RecurringInterval.DAILY:
        return anchor + timedelta(days=1)
    if interval == RecurringInterval.WEEKLY:
        return anchor + timedelta(days=7)
    if interval == RecurringInterval.MONTHLY:
        return _add_months(anchor, 1)
    return _add_months(anchor, 12)


def next_recurring_date(
    anchor: date,
    is_recurring: bool,
    interval: Optional[Union[RecurringInterval, str]],
) -> Optional[date]:
    """Next due date, or None unless the transaction recurs on an interval."""
    if not is_recurring or interval is None:
        return None
    return next_occurrence(anchor, interval)
