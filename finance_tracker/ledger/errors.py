"""
Ledger Error Taxonomy

Every failure a ledger operation can report has its own class and a
LedgerErrorKind. All of them are terminal for the current operation:
the ledger never retries, because re-applying a balance delta is not
idempotent.
"""

from typing import ClassVar, Optional
from uuid import UUID

from finance_tracker.models.ledger import LedgerErrorKind


class LedgerError(Exception):
    """Base exception for ledger operations."""

    kind: ClassVar[LedgerErrorKind]


class AccountNotFoundError(LedgerError):
    """No account with this id is owned by the acting user."""

    kind = LedgerErrorKind.ACCOUNT_NOT_FOUND

    def __init__(self, account_id: UUID):
        self.account_id = account_id
        super().__init__(f"Account {account_id} not found or does not belong to user")


class TransactionNotFoundError(LedgerError):
    """No transaction with this id is owned by the acting user."""

    kind = LedgerErrorKind.TRANSACTION_NOT_FOUND

    def __init__(self, transaction_id: UUID):
        self.transaction_id = transaction_id
        super().__init__(
            f"Transaction {transaction_id} not found or does not belong to user"
        )


class InvalidAmountError(LedgerError):
    """Amount is negative, non-finite, or finer than one cent."""

    kind = LedgerErrorKind.INVALID_AMOUNT

    def __init__(self, amount: object, reason: str):
        self.amount = amount
        super().__init__(f"Invalid amount {amount!r}: {reason}")


class InvalidIntervalError(LedgerError):
    """Recurrence interval is not one of DAILY, WEEKLY, MONTHLY, YEARLY."""

    kind = LedgerErrorKind.INVALID_INTERVAL

    def __init__(self, interval: object):
        self.interval = interval
        super().__init__(f"Unknown recurring interval: {interval!r}")


class PersistenceFailureError(LedgerError):
    """
    The storage layer failed; nothing from this operation was committed.

    The original StorageError is chained as __cause__.
    """

    kind = LedgerErrorKind.PERSISTENCE_FAILURE

    def __init__(self, operation: str, detail: Optional[str] = None):
        self.operation = operation
        message = f"Failed to persist {operation}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
