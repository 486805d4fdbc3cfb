"""
Core Data Models for the Ledger

These models define the strict schemas for accounts and transactions.
They are designed to:
1. Keep money as Decimal everywhere inside the system
2. Provide clear validation error messages
3. Be serializable at the outer boundary (amounts become plain numbers there)
4. Carry the typed error kind back to callers

DESIGN DECISION: Domain models are Pydantic, storage rows are SQLAlchemy.
The storage layer converts between them, so nothing above it ever sees
an ORM object or a float.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


CENT = Decimal("0.01")

# Largest amount (and opening balance) the ledger books; balances are
# stored as 64-bit integer cents.
MAX_AMOUNT = Decimal("9999999999999.99")


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction relative to the account balance."""
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class RecurringInterval(str, Enum):
    """How often a recurring transaction repeats."""
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class AccountType(str, Enum):
    """Supported account types."""
    CURRENT = "CURRENT"
    SAVINGS = "SAVINGS"


class LedgerErrorKind(str, Enum):
    """
    Machine-readable failure kinds.

    Callers branch on these, never on error message text.
    """
    ACCOUNT_NOT_FOUND = "account_not_found"
    TRANSACTION_NOT_FOUND = "transaction_not_found"
    INVALID_AMOUNT = "invalid_amount"
    INVALID_INTERVAL = "invalid_interval"
    PERSISTENCE_FAILURE = "persistence_failure"


# =============================================================================
# ACCOUNT MODELS
# =============================================================================

class AccountInput(BaseModel):
    """Fields a user supplies when opening an account."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name, e.g. 'Main Checking'"
    )
    type: AccountType = Field(
        default=AccountType.CURRENT,
        description="Account type"
    )
    opening_balance: Decimal = Field(
        default=Decimal("0.00"),
        decimal_places=2,
        ge=-MAX_AMOUNT,
        le=MAX_AMOUNT,
        description="Balance before any recorded transaction"
    )
    is_default: bool = Field(
        default=False,
        description="Make this the owner's default account"
    )


class Account(BaseModel):
    """
    A money account owned by exactly one user.

    CRITICAL: balance is only ever changed by the ledger coordinator.
    balance == opening_balance + sum of signed transaction amounts.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique account ID"
    )
    owner_id: str = Field(
        ...,
        min_length=1,
        description="Identity of the owning user"
    )
    name: str = Field(..., min_length=1, max_length=100)
    type: AccountType = AccountType.CURRENT
    balance: Decimal = Field(
        ...,
        decimal_places=2,
        description="Running balance"
    )
    opening_balance: Decimal = Field(
        default=Decimal("0.00"),
        decimal_places=2,
        description="Balance the account was opened with"
    )
    is_default: bool = False

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def serialize(self) -> dict[str, Any]:
        """JSON-ready dict with balances as plain numbers."""
        data = self.model_dump(mode="json")
        data["balance"] = float(self.balance)
        data["opening_balance"] = float(self.opening_balance)
        return data


# =============================================================================
# TRANSACTION MODELS
# =============================================================================

class TransactionInput(BaseModel):
    """
    The full set of mutable transaction fields.

    Used for both create and update: an update replaces every field.
    Amount sign and precision are checked by the balance resolver,
    which raises InvalidAmountError, so no bounds are declared here.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    account_id: UUID
    amount: Decimal = Field(
        ...,
        description="Non-negative amount; the type decides the sign"
    )
    type: TransactionType
    date: date
    is_recurring: bool = False
    recurring_interval: Optional[RecurringInterval] = None
    description: Optional[str] = Field(default=None, max_length=500)
    category: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Category slug, e.g. 'groceries'"
    )


class Transaction(BaseModel):
    """
    A persisted ledger entry.

    next_recurring_date is derived: it is set exactly when the transaction
    is recurring and has an interval.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    owner_id: str = Field(..., min_length=1)
    account_id: UUID
    amount: Decimal = Field(..., ge=0, decimal_places=2)
    type: TransactionType
    date: date
    is_recurring: bool = False
    recurring_interval: Optional[RecurringInterval] = None
    next_recurring_date: Optional[date] = None
    description: Optional[str] = None
    category: str

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def signed_amount(self) -> Decimal:
        """Amount as it affects the account balance."""
        return -self.amount if self.type == TransactionType.EXPENSE else self.amount

    def serialize(self) -> dict[str, Any]:
        """
        JSON-ready dict for callers.

        This is the only place the amount leaves Decimal.
        """
        data = self.model_dump(mode="json")
        data["amount"] = float(self.amount)
        return data


class BalanceReconciliation(BaseModel):
    """Stored balance compared against what the ledger says it should be."""

    account_id: UUID
    stored_balance: Decimal
    opening_balance: Decimal
    ledger_total: Decimal = Field(
        ...,
        description="Sum of signed amounts of all transactions on the account"
    )
    transaction_count: int = Field(ge=0)

    @property
    def expected_balance(self) -> Decimal:
        return self.opening_balance + self.ledger_total

    @property
    def drift(self) -> Decimal:
        return self.stored_balance - self.expected_balance

    @property
    def is_consistent(self) -> bool:
        return self.drift == 0


# =============================================================================
# RESULT MODEL
# =============================================================================

class LedgerResult(BaseModel):
    """
    Outcome of a ledger operation as seen by the caller.

    Either success with the affected entity, or failure with an error kind.
    """

    success: bool
    transaction: Optional[Transaction] = None
    account: Optional[Account] = None
    error_kind: Optional[LedgerErrorKind] = None
    error_message: Optional[str] = None

    @classmethod
    def ok(
        cls,
        transaction: Optional[Transaction] = None,
        account: Optional[Account] = None,
    ) -> "LedgerResult":
        return cls(success=True, transaction=transaction, account=account)

    @classmethod
    def failure(cls, kind: LedgerErrorKind, message: str) -> "LedgerResult":
        return cls(success=False, error_kind=kind, error_message=message)

    def to_response(self) -> dict[str, Any]:
        """Shape returned to the UI/API layer."""
        if not self.success:
            return {
                "success": False,
                "error": {
                    "kind": self.error_kind.value if self.error_kind else None,
                    "message": self.error_message,
                },
            }
        entity = self.transaction or self.account
        return {
            "success": True,
            "data": entity.serialize() if entity else None,
        }
