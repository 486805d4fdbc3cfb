"""
Balance Delta Resolver

Turns a transaction (or a transaction edit) into the signed amount that
must be ADDED to an account balance.

DESIGN DECISION: We only ever compute deltas, never new balances.
The storage layer applies them as an in-place increment, so two
operations on one account cannot overwrite each other's result.
"""

from decimal import Decimal
from uuid import UUID

from finance_tracker.ledger.errors import InvalidAmountError
from finance_tracker.models.ledger import (
    CENT,
    MAX_AMOUNT,
    Transaction,
    TransactionInput,
    TransactionType,
)


def validate_amount(amount: Decimal) -> Decimal:
    """
    Check an amount can be booked and return it at cent precision.

    Raises:
        InvalidAmountError: not a Decimal, non-finite, negative, above
            MAX_AMOUNT, or carrying more than two decimal places
    """
    if isinstance(amount, bool) or not isinstance(amount, (Decimal, int)):
        raise InvalidAmountError(amount, "must be a Decimal")
    amount = Decimal(amount)
    if not amount.is_finite():
        raise InvalidAmountError(amount, "must be finite")
    if amount < 0:
        raise InvalidAmountError(amount, "must not be negative")
    if amount > MAX_AMOUNT:
        raise InvalidAmountError(amount, f"must not exceed {MAX_AMOUNT}")
    quantized = amount.quantize(CENT)
    if quantized != amount:
        raise InvalidAmountError(amount, "must not have more than two decimal places")
    return quantized


def signed_amount(transaction_type: TransactionType, amount: Decimal) -> Decimal:
    """EXPENSE lowers the balance, INCOME raises it."""
    amount = validate_amount(amount)
    if TransactionType(transaction_type) == TransactionType.EXPENSE:
        return -amount
    return amount


def delta_for_create(transaction_type: TransactionType, amount: Decimal) -> Decimal:
    return signed_amount(transaction_type, amount)


def delta_for_update(
    old_type: TransactionType,
    old_amount: Decimal,
    new_type: TransactionType,
    new_amount: Decimal,
) -> Decimal:
    """
    Delta that moves a balance from reflecting the old transaction
    to reflecting the new one.

    Zero when type and amount are unchanged.
    """
    return signed_amount(new_type, new_amount) - signed_amount(old_type, old_amount)


def deltas_for_update(
    existing: Transaction,
    data: TransactionInput,
) -> dict[UUID, Decimal]:
    """
    Per-account deltas for replacing `existing` with `data`.

    When the transaction stays on its account this is a single
    delta_for_update entry. When it moves, the old account gives back
    the old signed amount and the new account takes the new one.
    """
    if existing.account_id == data.account_id:
        return {
            data.account_id: delta_for_update(
                existing.type, existing.amount, data.type, data.amount
            )
        }
    return {
        existing.account_id: -signed_amount(existing.type, existing.amount),
        data.account_id: signed_amount(data.type, data.amount),
    }
