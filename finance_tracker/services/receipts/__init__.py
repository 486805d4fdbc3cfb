"""Receipt scanning services package."""

from finance_tracker.services.receipts.gemini_scanner import (
    ExtractionFormatError,
    ExtractionServiceError,
    ReceiptRejectedError,
    ReceiptScanError,
    ReceiptScanner,
    create_gemini_model,
    parse_receipt_response,
)

__all__ = [
    "ExtractionFormatError",
    "ExtractionServiceError",
    "ReceiptRejectedError",
    "ReceiptScanError",
    "ReceiptScanner",
    "create_gemini_model",
    "parse_receipt_response",
]
