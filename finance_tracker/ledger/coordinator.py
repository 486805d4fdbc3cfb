"""
Ledger Transaction Coordinator

The only code path that writes transactions or moves account balances.

Flow for every write:
1. Pure checks (amount, interval) - no storage touched yet
2. Open a unit of work
3. Ownership checks inside the unit, before the first write
4. Write the transaction row, then increment the balance(s) in place
5. Commit - or roll everything back

CRITICAL: The transaction row and its balance delta are never committed
separately. A storage fault anywhere in steps 2-5 surfaces as
PersistenceFailureError with nothing changed. We do NOT retry here:
the caller cannot tell a lost commit from a lost acknowledgement, and a
blindly re-applied delta corrupts the balance.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from finance_tracker.audit import AuditLogger, create_correlation_id
from finance_tracker.ledger.balance import (
    delta_for_create,
    deltas_for_update,
    validate_amount,
)
from finance_tracker.ledger.errors import (
    AccountNotFoundError,
    PersistenceFailureError,
    TransactionNotFoundError,
)
from finance_tracker.ledger.recurrence import next_recurring_date
from finance_tracker.models.ledger import Transaction, TransactionInput
from finance_tracker.services.storage import LedgerStorageInterface, StorageError


class LedgerTransactionCoordinator:
    """
    Creates and updates transactions while keeping balances in step.

    Args:
        storage: Ledger storage providing atomic units of work
        audit_logger: Optional audit trail for committed changes and
            storage failures
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger

    async def create(
        self,
        owner_id: str,
        data: TransactionInput,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Record a new transaction and apply its delta to the account.

        Raises:
            InvalidAmountError: amount negative, non-finite, or sub-cent
            InvalidIntervalError: unknown recurring interval
            AccountNotFoundError: account missing or owned by someone else
            PersistenceFailureError: storage fault; nothing was written
        """
        correlation_id = correlation_id or create_correlation_id()

        delta = delta_for_create(data.type, data.amount)
        transaction = Transaction(
            **data.model_dump(exclude={"amount"}),
            amount=validate_amount(data.amount),
            owner_id=owner_id,
            next_recurring_date=next_recurring_date(
                data.date, data.is_recurring, data.recurring_interval
            ),
        )

        try:
            async with self._storage.unit_of_work() as uow:
                account = await uow.find_owned_account(owner_id, data.account_id)
                if account is None:
                    raise AccountNotFoundError(data.account_id)

                await uow.insert_transaction(transaction)
                await uow.increment_balance(owner_id, account.id, delta)
        except StorageError as e:
            await self._report_persistence_failure(
                owner_id, "transaction create", e, correlation_id
            )
            raise PersistenceFailureError("transaction create", str(e)) from e

        if self._audit_logger:
            await self._audit_logger.log_transaction_created(
                owner_id=owner_id,
                transaction_id=transaction.id,
                transaction_type=transaction.type.value,
                amount=transaction.amount,
                correlation_id=correlation_id,
            )
            await self._audit_logger.log_balance_adjusted(
                owner_id=owner_id,
                account_id=transaction.account_id,
                delta=delta,
                transaction_id=transaction.id,
                correlation_id=correlation_id,
            )

        return transaction

    async def update(
        self,
        owner_id: str,
        transaction_id: UUID,
        data: TransactionInput,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Replace a transaction's mutable fields and rebalance.

        Moving a transaction to another account gives the old account
        back the old signed amount and charges the new account the new one.

        Raises:
            InvalidAmountError: amount negative, non-finite, or sub-cent
            InvalidIntervalError: unknown recurring interval
            TransactionNotFoundError: missing or owned by someone else
            AccountNotFoundError: target account missing or foreign
            PersistenceFailureError: storage fault; nothing was written
        """
        correlation_id = correlation_id or create_correlation_id()

        amount = validate_amount(data.amount)
        next_date = next_recurring_date(
            data.date, data.is_recurring, data.recurring_interval
        )

        try:
            async with self._storage.unit_of_work() as uow:
                existing = await uow.find_owned_transaction(
                    owner_id, transaction_id, for_update=True
                )
                if existing is None:
                    raise TransactionNotFoundError(transaction_id)

                if data.account_id != existing.account_id:
                    target = await uow.find_owned_account(owner_id, data.account_id)
                    if target is None:
                        raise AccountNotFoundError(data.account_id)

                deltas = deltas_for_update(existing, data)
                updated = existing.model_copy(update={
                    **data.model_dump(exclude={"amount"}),
                    "amount": amount,
                    "next_recurring_date": next_date,
                    "updated_at": datetime.utcnow(),
                })

                await uow.update_transaction(updated)
                for account_id, delta in deltas.items():
                    if delta:
                        await uow.increment_balance(owner_id, account_id, delta)
        except StorageError as e:
            await self._report_persistence_failure(
                owner_id, "transaction update", e, correlation_id
            )
            raise PersistenceFailureError("transaction update", str(e)) from e

        if self._audit_logger:
            await self._audit_logger.log_transaction_updated(
                owner_id=owner_id,
                transaction_id=updated.id,
                transaction_type=updated.type.value,
                amount=updated.amount,
                correlation_id=correlation_id,
            )
            for account_id, delta in deltas.items():
                if delta:
                    await self._audit_logger.log_balance_adjusted(
                        owner_id=owner_id,
                        account_id=account_id,
                        delta=delta,
                        transaction_id=updated.id,
                        correlation_id=correlation_id,
                    )

        return updated

    async def _report_persistence_failure(
        self,
        owner_id: str,
        operation: str,
        error: StorageError,
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_persistence_failed(
                owner_id=owner_id,
                operation=operation,
                error_message=str(error),
                correlation_id=correlation_id,
            )
