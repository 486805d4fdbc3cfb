"""
Data Models Package

This package contains all Pydantic models used in the Finance Tracker.
All data flowing through the ledger must conform to these schemas.
"""

from finance_tracker.models.ledger import (
    CENT,
    Account,
    AccountInput,
    AccountType,
    BalanceReconciliation,
    LedgerErrorKind,
    LedgerResult,
    RecurringInterval,
    Transaction,
    TransactionInput,
    TransactionType,
)
from finance_tracker.models.receipt import (
    ReceiptCategory,
    ScannedReceipt,
)
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "CENT",
    "Account",
    "AccountInput",
    "AccountType",
    "BalanceReconciliation",
    "LedgerErrorKind",
    "LedgerResult",
    "RecurringInterval",
    "Transaction",
    "TransactionInput",
    "TransactionType",
    # Receipt models
    "ReceiptCategory",
    "ScannedReceipt",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
