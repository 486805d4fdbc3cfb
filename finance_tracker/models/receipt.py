"""
Receipt Scan Models

CRITICAL: A ScannedReceipt is a PROPOSAL, not a transaction.
It pre-fills the transaction form; nothing reaches the ledger
until the user submits a TransactionInput.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class ReceiptCategory(str, Enum):
    """Expense categories the extractor may suggest."""
    HOUSING = "housing"
    TRANSPORTATION = "transportation"
    GROCERIES = "groceries"
    UTILITIES = "utilities"
    ENTERTAINMENT = "entertainment"
    FOOD = "food"
    SHOPPING = "shopping"
    HEALTHCARE = "healthcare"
    EDUCATION = "education"
    PERSONAL = "personal"
    TRAVEL = "travel"
    INSURANCE = "insurance"
    GIFTS = "gifts"
    BILLS = "bills"
    OTHER_EXPENSE = "other-expense"


class ScannedReceipt(BaseModel):
    """Fields the extractor read off a receipt image."""
    model_config = ConfigDict(str_strip_whitespace=True)

    scan_id: UUID = Field(
        default_factory=uuid4,
        description="Unique ID for this scan attempt"
    )
    scanned_at: datetime = Field(
        default_factory=datetime.utcnow
    )

    amount: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
        description="Receipt total"
    )
    date: date
    description: Optional[str] = Field(default=None, max_length=500)
    merchant_name: Optional[str] = Field(default=None, max_length=200)
    category: ReceiptCategory = ReceiptCategory.OTHER_EXPENSE
