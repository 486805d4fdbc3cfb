"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Currently implements SQLAlchemy (async) as the backend, but designed to be swappable.
"""

from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    LedgerStorageInterface,
    LedgerUnitOfWork,
    NotFoundError,
    StorageError,
)
from finance_tracker.services.storage.sql import (
    SqlAuditStorage,
    SqlLedgerStorage,
    SqlLedgerUnitOfWork,
    create_engine_from_settings,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "LedgerStorageInterface",
    "LedgerUnitOfWork",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # SQL implementation
    "SqlAuditStorage",
    "SqlLedgerStorage",
    "SqlLedgerUnitOfWork",
    "create_engine_from_settings",
]
