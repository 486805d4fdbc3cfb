"""
Ledger Package

The transaction ledger consistency engine: recurrence, balance deltas,
the atomic write coordinator, and owner-scoped reads.
"""

from finance_tracker.ledger.accounts import AccountRegistry
from finance_tracker.ledger.balance import (
    delta_for_create,
    delta_for_update,
    deltas_for_update,
    signed_amount,
    validate_amount,
)
from finance_tracker.ledger.coordinator import LedgerTransactionCoordinator
from finance_tracker.ledger.errors import (
    AccountNotFoundError,
    InvalidAmountError,
    InvalidIntervalError,
    LedgerError,
    PersistenceFailureError,
    TransactionNotFoundError,
)
from finance_tracker.ledger.reader import LedgerReader
from finance_tracker.ledger.recurrence import next_occurrence, next_recurring_date

__all__ = [
    # Components
    "AccountRegistry",
    "LedgerReader",
    "LedgerTransactionCoordinator",
    # Pure functions
    "delta_for_create",
    "delta_for_update",
    "deltas_for_update",
    "next_occurrence",
    "next_recurring_date",
    "signed_amount",
    "validate_amount",
    # Errors
    "AccountNotFoundError",
    "InvalidAmountError",
    "InvalidIntervalError",
    "LedgerError",
    "PersistenceFailureError",
    "TransactionNotFoundError",
]
