"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap SQLite for PostgreSQL (or anything with ACID transactions)
2. Keep the ledger logic decoupled from SQL
3. Inject faults in tests to prove atomicity

Every write goes through a LedgerUnitOfWork. A unit of work is one
storage transaction: it commits when the `async with` block exits
cleanly and rolls back on any exception. Nothing is visible to other
readers until commit.

Every lookup takes the owner id. There is no way to fetch an account or
a transaction without stating who is asking.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from finance_tracker.models.audit import AuditEvent
from finance_tracker.models.ledger import Account, Transaction


class LedgerUnitOfWork(ABC):
    """
    Operations available inside one atomic storage transaction.
    """

    @abstractmethod
    async def find_owned_account(
        self,
        owner_id: str,
        account_id: UUID,
    ) -> Optional[Account]:
        """
        Load an account only if it belongs to owner_id.

        Returns:
            The account, or None when it does not exist or is foreign
        """
        pass

    @abstractmethod
    async def find_owned_transaction(
        self,
        owner_id: str,
        transaction_id: UUID,
        for_update: bool = False,
    ) -> Optional[Transaction]:
        """
        Load a transaction only if it belongs to owner_id.

        Args:
            owner_id: Acting user
            transaction_id: Transaction to load
            for_update: Lock the row until this unit of work ends
                (where the backend supports row locks)

        Returns:
            The transaction, or None when it does not exist or is foreign
        """
        pass

    @abstractmethod
    async def insert_transaction(self, transaction: Transaction) -> Transaction:
        """
        Insert a new transaction row.

        Returns:
            The transaction as stored

        Raises:
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    async def update_transaction(self, transaction: Transaction) -> Transaction:
        """
        Replace the mutable fields of an existing transaction.

        Returns:
            The transaction as stored

        Raises:
            NotFoundError: If the row vanished
            StorageError: If the update fails
        """
        pass

    @abstractmethod
    async def increment_balance(
        self,
        owner_id: str,
        account_id: UUID,
        delta: Decimal,
    ) -> None:
        """
        Atomically add delta to the account balance in storage.

        Must be an in-place increment (balance = balance + delta),
        never a read followed by a write.

        Raises:
            NotFoundError: If the account vanished
            StorageError: If the update fails
        """
        pass

    @abstractmethod
    async def insert_account(self, account: Account) -> Account:
        """Insert a new account row."""
        pass

    @abstractmethod
    async def clear_default_accounts(self, owner_id: str) -> None:
        """Unset is_default on every account of owner_id."""
        pass

    @abstractmethod
    async def set_default_account(self, owner_id: str, account_id: UUID) -> None:
        """Set is_default on one account of owner_id."""
        pass

    @abstractmethod
    async def count_owned_accounts(self, owner_id: str) -> int:
        """Number of accounts owned by owner_id."""
        pass


class LedgerStorageInterface(ABC):
    """
    Abstract interface for ledger storage.

    Any storage implementation (SQLite, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    def unit_of_work(self) -> AbstractAsyncContextManager[LedgerUnitOfWork]:
        """
        Open an atomic unit of work.

        Usage:
            async with storage.unit_of_work() as uow:
                await uow.insert_transaction(tx)
                await uow.increment_balance(owner_id, account_id, delta)

        Raises:
            StorageError: If begin, any statement, or commit fails.
                Everything done in the block is rolled back.
        """
        pass

    @abstractmethod
    async def get_owned_account(
        self,
        owner_id: str,
        account_id: UUID,
    ) -> Optional[Account]:
        """Read-only account lookup scoped to owner_id."""
        pass

    @abstractmethod
    async def get_owned_transaction(
        self,
        owner_id: str,
        transaction_id: UUID,
    ) -> Optional[Transaction]:
        """Read-only transaction lookup scoped to owner_id."""
        pass

    @abstractmethod
    async def list_owned_transactions(
        self,
        owner_id: str,
        account_id: UUID,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        """
        List an account's transactions, newest first.

        Args:
            owner_id: Acting user
            account_id: Account to list
            date_from: Only transactions on or after this date
            date_to: Only transactions on or before this date
            limit: Maximum number of results (None for all)

        Returns:
            Matching transactions (empty for foreign accounts)
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one API request).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Returns:
            List of events in chronological order
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
