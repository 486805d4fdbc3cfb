"""
SQL Storage Implementation

Implements the storage interfaces on SQLAlchemy's asyncio ORM.
SQLite (via aiosqlite) is the default; any async SQLAlchemy URL works.

IMPORTANT:
- One unit of work is one AsyncSession and one database transaction.
- Balances change only through `UPDATE accounts SET balance = balance + :delta`.
- Every SQLAlchemy error is rolled back and re-raised as StorageError.
"""

from contextlib import asynccontextmanager
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import AsyncIterator, Optional
from uuid import UUID

import structlog
from sqlalchemy import event, func, select, update
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from finance_tracker.config import DatabaseSettings, get_settings
from finance_tracker.models.audit import AuditEvent, AuditEventType, AuditSeverity
from finance_tracker.models.ledger import (
    Account,
    AccountType,
    RecurringInterval,
    Transaction,
    TransactionType,
)
from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    LedgerStorageInterface,
    LedgerUnitOfWork,
    NotFoundError,
    StorageError,
)
from finance_tracker.services.storage.tables import (
    AccountRow,
    AuditEventRow,
    Base,
    TransactionRow,
)


logger = structlog.get_logger(__name__)


# =============================================================================
# ENGINE
# =============================================================================

def _configure_sqlite_connection(dbapi_connection, connection_record) -> None:
    # The driver must not open transactions itself; _begin_immediate does
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _begin_immediate(conn) -> None:
    # Write lock is held from the first read until commit or rollback
    conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_engine_from_settings(settings: Optional[DatabaseSettings] = None) -> AsyncEngine:
    """
    Build the async engine for the configured database.

    For file-backed SQLite the parent directory is created, foreign keys
    are switched on for every connection, and every transaction starts
    with BEGIN IMMEDIATE: SQLite has no row locks, and units of work on
    one database run one after another.
    """
    settings = settings or get_settings().database
    url = make_url(settings.url)
    connect_args = {}

    is_sqlite = url.get_backend_name() == "sqlite"
    if is_sqlite:
        connect_args["timeout"] = 30
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    try:
        engine = create_async_engine(
            url,
            echo=settings.echo,
            connect_args=connect_args,
        )
    except (SQLAlchemyError, ImportError) as e:
        raise ConnectionError(f"Failed to create database engine: {e}") from e

    if is_sqlite:
        event.listen(engine.sync_engine, "connect", _configure_sqlite_connection)
        event.listen(engine.sync_engine, "begin", _begin_immediate)

    return engine


def _session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


# =============================================================================
# ROW <-> MODEL CONVERSION
# =============================================================================

def _account_from_row(row: AccountRow) -> Account:
    return Account(
        id=row.id,
        owner_id=row.owner_id,
        name=row.name,
        type=AccountType(row.type),
        balance=row.balance,
        opening_balance=row.opening_balance,
        is_default=row.is_default,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _transaction_from_row(row: TransactionRow) -> Transaction:
    return Transaction(
        id=row.id,
        owner_id=row.owner_id,
        account_id=row.account_id,
        amount=row.amount,
        type=TransactionType(row.type),
        date=row.date,
        is_recurring=row.is_recurring,
        recurring_interval=(
            RecurringInterval(row.recurring_interval)
            if row.recurring_interval else None
        ),
        next_recurring_date=row.next_recurring_date,
        description=row.description,
        category=row.category,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _transaction_values(transaction: Transaction) -> dict:
    """Mutable transaction columns."""
    return {
        "account_id": transaction.account_id,
        "amount": transaction.amount,
        "type": transaction.type.value,
        "date": transaction.date,
        "is_recurring": transaction.is_recurring,
        "recurring_interval": (
            transaction.recurring_interval.value
            if transaction.recurring_interval else None
        ),
        "next_recurring_date": transaction.next_recurring_date,
        "description": transaction.description,
        "category": transaction.category,
        "updated_at": transaction.updated_at,
    }


# =============================================================================
# LEDGER STORAGE
# =============================================================================

class SqlLedgerUnitOfWork(LedgerUnitOfWork):
    """
    Ledger operations bound to one AsyncSession.

    Updates use synchronize_session=False: rows loaded earlier in the
    unit are converted to Pydantic immediately and never reused.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()

    async def find_owned_account(
        self,
        owner_id: str,
        account_id: UUID,
    ) -> Optional[Account]:
        stmt = select(AccountRow).where(
            AccountRow.id == account_id,
            AccountRow.owner_id == owner_id,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _account_from_row(row) if row else None

    async def find_owned_transaction(
        self,
        owner_id: str,
        transaction_id: UUID,
        for_update: bool = False,
    ) -> Optional[Transaction]:
        stmt = select(TransactionRow).where(
            TransactionRow.id == transaction_id,
            TransactionRow.owner_id == owner_id,
        )
        if for_update:
            stmt = stmt.with_for_update()
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _transaction_from_row(row) if row else None

    async def insert_transaction(self, transaction: Transaction) -> Transaction:
        row = TransactionRow(
            id=transaction.id,
            owner_id=transaction.owner_id,
            created_at=transaction.created_at,
            **_transaction_values(transaction),
        )
        self._session.add(row)
        await self._session.flush()
        return transaction

    async def update_transaction(self, transaction: Transaction) -> Transaction:
        stmt = (
            update(TransactionRow)
            .where(
                TransactionRow.id == transaction.id,
                TransactionRow.owner_id == transaction.owner_id,
            )
            .values(**_transaction_values(transaction))
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        if result.rowcount != 1:
            raise NotFoundError(f"Transaction {transaction.id} vanished during update")
        return transaction

    async def increment_balance(
        self,
        owner_id: str,
        account_id: UUID,
        delta: Decimal,
    ) -> None:
        stmt = (
            update(AccountRow)
            .where(
                AccountRow.id == account_id,
                AccountRow.owner_id == owner_id,
            )
            .values(
                balance=AccountRow.balance + delta,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        if result.rowcount != 1:
            raise NotFoundError(f"Account {account_id} vanished during balance update")

    async def insert_account(self, account: Account) -> Account:
        row = AccountRow(
            id=account.id,
            owner_id=account.owner_id,
            name=account.name,
            type=account.type.value,
            balance=account.balance,
            opening_balance=account.opening_balance,
            is_default=account.is_default,
            created_at=account.created_at,
            updated_at=account.updated_at,
        )
        self._session.add(row)
        await self._session.flush()
        return account

    async def clear_default_accounts(self, owner_id: str) -> None:
        stmt = (
            update(AccountRow)
            .where(AccountRow.owner_id == owner_id, AccountRow.is_default.is_(True))
            .values(is_default=False, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(stmt)

    async def set_default_account(self, owner_id: str, account_id: UUID) -> None:
        stmt = (
            update(AccountRow)
            .where(AccountRow.id == account_id, AccountRow.owner_id == owner_id)
            .values(is_default=True, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        if result.rowcount != 1:
            raise NotFoundError(f"Account {account_id} not found")

    async def count_owned_accounts(self, owner_id: str) -> int:
        stmt = select(func.count()).select_from(AccountRow).where(
            AccountRow.owner_id == owner_id
        )
        return (await self._session.execute(stmt)).scalar_one()


class SqlLedgerStorage(LedgerStorageInterface):
    """
    Ledger storage on an async SQLAlchemy engine.

    Usage:
        storage = SqlLedgerStorage.from_settings()
        await storage.create_schema()
    """

    def __init__(self, engine: AsyncEngine):
        self._engine = engine
        self._session_factory = _session_factory(engine)

    @classmethod
    def from_settings(cls, settings: Optional[DatabaseSettings] = None) -> "SqlLedgerStorage":
        return cls(create_engine_from_settings(settings))

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def create_schema(self) -> None:
        """Create all tables that do not exist yet."""
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            raise ConnectionError(f"Failed to create schema: {e}") from e

    async def dispose(self) -> None:
        await self._engine.dispose()

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator[SqlLedgerUnitOfWork]:
        async with self._session_factory() as session:
            uow = SqlLedgerUnitOfWork(session)
            try:
                yield uow
                await uow.commit()
            except SQLAlchemyError as e:
                await uow.rollback()
                logger.error("unit_of_work_rolled_back", error=str(e))
                raise StorageError(f"Storage transaction failed: {e}") from e
            except BaseException:
                await uow.rollback()
                raise

    async def get_owned_account(
        self,
        owner_id: str,
        account_id: UUID,
    ) -> Optional[Account]:
        try:
            async with self._session_factory() as session:
                return await SqlLedgerUnitOfWork(session).find_owned_account(
                    owner_id, account_id
                )
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read account: {e}") from e

    async def get_owned_transaction(
        self,
        owner_id: str,
        transaction_id: UUID,
    ) -> Optional[Transaction]:
        try:
            async with self._session_factory() as session:
                return await SqlLedgerUnitOfWork(session).find_owned_transaction(
                    owner_id, transaction_id
                )
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read transaction: {e}") from e

    async def list_owned_transactions(
        self,
        owner_id: str,
        account_id: UUID,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        stmt = (
            select(TransactionRow)
            .where(
                TransactionRow.owner_id == owner_id,
                TransactionRow.account_id == account_id,
            )
            .order_by(TransactionRow.date.desc(), TransactionRow.created_at.desc())
        )
        if date_from:
            stmt = stmt.where(TransactionRow.date >= date_from)
        if date_to:
            stmt = stmt.where(TransactionRow.date <= date_to)
        if limit:
            stmt = stmt.limit(limit)

        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list transactions: {e}") from e
        return [_transaction_from_row(row) for row in rows]


# =============================================================================
# AUDIT STORAGE
# =============================================================================

def _event_from_row(row: AuditEventRow) -> AuditEvent:
    return AuditEvent(
        event_id=row.event_id,
        timestamp=row.timestamp,
        event_type=AuditEventType(row.event_type),
        severity=AuditSeverity(row.severity),
        owner_id=row.owner_id,
        entity_type=row.entity_type,
        entity_id=row.entity_id,
        correlation_id=row.correlation_id,
        description=row.description,
        details=row.details or {},
        error_code=row.error_code,
        error_message=row.error_message,
        is_user_action=row.is_user_action,
    )


class SqlAuditStorage(AuditStorageInterface):
    """
    Append-only audit log in the same database as the ledger.

    Each append is its own transaction, separate from ledger writes.
    """

    def __init__(self, engine: AsyncEngine):
        self._session_factory = _session_factory(engine)

    async def append_event(self, event: AuditEvent) -> bool:
        row = AuditEventRow(
            event_id=event.event_id,
            timestamp=event.timestamp,
            event_type=event.event_type.value,
            severity=event.severity.value,
            owner_id=event.owner_id,
            entity_type=event.entity_type,
            entity_id=event.entity_id,
            correlation_id=event.correlation_id,
            description=event.description,
            details=event.details,
            error_code=event.error_code,
            error_message=event.error_message,
            is_user_action=event.is_user_action,
        )
        try:
            async with self._session_factory() as session:
                session.add(row)
                await session.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to append audit event: {e}") from e
        return True

    async def _select(self, *criteria) -> list[AuditEvent]:
        stmt = select(AuditEventRow).where(*criteria).order_by(AuditEventRow.timestamp)
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read audit events: {e}") from e
        return [_event_from_row(row) for row in rows]

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return await self._select(AuditEventRow.correlation_id == correlation_id)

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        return await self._select(
            AuditEventRow.entity_type == entity_type,
            AuditEventRow.entity_id == entity_id,
        )
