"""
SQL Table Definitions

SQLAlchemy declarative rows for the ledger and the audit log.
These never leave the storage package; callers get Pydantic models.

DESIGN DECISION: Money is stored as integer cents (see Money below).
SQLite has no exact decimal type, and `balance = balance + :delta`
must be exact in SQL, not only in Python.
"""

import datetime as dt
import uuid
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from finance_tracker.models.ledger import (
    CENT,
    AccountType,
    RecurringInterval,
    TransactionType,
)


class Money(TypeDecorator):
    """
    Store Decimal amounts as integer minor units (cents).

    Values bound in expressions against a Money column (for example the
    delta in `balance + delta`) are converted the same way.
    """

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value: Optional[Decimal], dialect) -> Optional[int]:
        if value is None:
            return None
        cents = Decimal(value) / CENT
        if cents != cents.to_integral_value():
            raise ValueError(f"Amount {value} is finer than one cent")
        return int(cents)

    def process_result_value(self, value: Optional[int], dialect) -> Optional[Decimal]:
        if value is None:
            return None
        return (Decimal(value) * CENT).quantize(CENT)

    def coerce_compared_value(self, op, value):
        return self


class Base(DeclarativeBase):
    pass


TransactionTypeColumn = Enum(
    *[t.value for t in TransactionType], name="transaction_type"
)
RecurringIntervalColumn = Enum(
    *[i.value for i in RecurringInterval], name="recurring_interval"
)
AccountTypeColumn = Enum(*[t.value for t in AccountType], name="account_type")


class AccountRow(Base):
    __tablename__ = "accounts"
    __table_args__ = (Index("ix_accounts_owner", "owner_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[str] = mapped_column(AccountTypeColumn, nullable=False)
    balance: Mapped[Decimal] = mapped_column(Money, nullable=False)
    opening_balance: Mapped[Decimal] = mapped_column(Money, nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)


class TransactionRow(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        Index("ix_transactions_owner", "owner_id"),
        Index("ix_transactions_account_date", "account_id", "date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False)
    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accounts.id"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    type: Mapped[str] = mapped_column(TransactionTypeColumn, nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    recurring_interval: Mapped[Optional[str]] = mapped_column(RecurringIntervalColumn)
    next_recurring_date: Mapped[Optional[dt.date]] = mapped_column(Date)
    description: Mapped[Optional[str]] = mapped_column(Text)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)


class AuditEventRow(Base):
    __tablename__ = "audit_events"
    __table_args__ = (
        Index("ix_audit_correlation", "correlation_id"),
        Index("ix_audit_entity", "entity_type", "entity_id"),
    )

    event_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    timestamp: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    severity: Mapped[str] = mapped_column(String(16), nullable=False)
    owner_id: Mapped[Optional[str]] = mapped_column(String(128))
    entity_type: Mapped[Optional[str]] = mapped_column(String(32))
    entity_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    correlation_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    error_code: Mapped[Optional[str]] = mapped_column(String(64))
    error_message: Mapped[Optional[str]] = mapped_column(Text)
    is_user_action: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
