"""
Ledger Reader

Owner-scoped, read-only lookups. Nothing here writes or locks.

A transaction or account that exists but belongs to someone else is
reported exactly like one that does not exist, so a lookup never
reveals another user's data.
"""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from finance_tracker.ledger.errors import (
    AccountNotFoundError,
    PersistenceFailureError,
    TransactionNotFoundError,
)
from finance_tracker.models.ledger import Account, BalanceReconciliation, Transaction
from finance_tracker.services.storage import LedgerStorageInterface, StorageError


class LedgerReader:
    """Fetch-and-authorize access to accounts and transactions."""

    def __init__(self, storage: LedgerStorageInterface):
        self._storage = storage

    async def get(self, owner_id: str, transaction_id: UUID) -> Transaction:
        """
        Raises:
            TransactionNotFoundError: missing or owned by someone else
            PersistenceFailureError: storage fault
        """
        try:
            transaction = await self._storage.get_owned_transaction(owner_id, transaction_id)
        except StorageError as e:
            raise PersistenceFailureError("transaction read", str(e)) from e
        if transaction is None:
            raise TransactionNotFoundError(transaction_id)
        return transaction

    async def get_account(self, owner_id: str, account_id: UUID) -> Account:
        """
        Raises:
            AccountNotFoundError: missing or owned by someone else
            PersistenceFailureError: storage fault
        """
        try:
            account = await self._storage.get_owned_account(owner_id, account_id)
        except StorageError as e:
            raise PersistenceFailureError("account read", str(e)) from e
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    async def list_transactions(
        self,
        owner_id: str,
        account_id: UUID,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        """Transactions of one owned account, newest first."""
        await self.get_account(owner_id, account_id)
        try:
            return await self._storage.list_owned_transactions(
                owner_id,
                account_id,
                date_from=date_from,
                date_to=date_to,
                limit=limit,
            )
        except StorageError as e:
            raise PersistenceFailureError("transaction list", str(e)) from e

    async def reconcile(self, owner_id: str, account_id: UUID) -> BalanceReconciliation:
        """
        Compare the stored balance with opening balance + ledger sum.

        The two reads are not taken in one snapshot; run this while the
        account is quiet for an exact answer.
        """
        account = await self.get_account(owner_id, account_id)
        transactions = await self.list_transactions(owner_id, account_id)
        return BalanceReconciliation(
            account_id=account.id,
            stored_balance=account.balance,
            opening_balance=account.opening_balance,
            ledger_total=sum((t.signed_amount for t in transactions), Decimal("0.00")),
            transaction_count=len(transactions),
        )
