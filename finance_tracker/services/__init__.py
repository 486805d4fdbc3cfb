"""Services package."""

from finance_tracker.services.receipts import (
    ExtractionFormatError,
    ExtractionServiceError,
    ReceiptRejectedError,
    ReceiptScanError,
    ReceiptScanner,
    create_gemini_model,
)
from finance_tracker.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    LedgerStorageInterface,
    LedgerUnitOfWork,
    NotFoundError,
    SqlAuditStorage,
    SqlLedgerStorage,
    StorageError,
)

__all__ = [
    # Receipt services
    "ExtractionFormatError",
    "ExtractionServiceError",
    "ReceiptRejectedError",
    "ReceiptScanError",
    "ReceiptScanner",
    "create_gemini_model",
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "LedgerStorageInterface",
    "LedgerUnitOfWork",
    "NotFoundError",
    "SqlAuditStorage",
    "SqlLedgerStorage",
    "StorageError",
]
