"""
Main Orchestrator for Finance Tracker

This module ties together all the components and defines the
operations callers (UI, API handlers) use:
1. Transactions (create, update, get)
2. Accounts (open, set default, read, reconcile)
3. Receipt scanning (image → proposed transaction fields)

DESIGN DECISION: The orchestrator is the error boundary.
- Ledger components raise typed LedgerError subclasses
- This layer turns them into a LedgerResult carrying the error kind
- Callers branch on LedgerResult.error_kind, never on message text
- Anything that is not a LedgerError propagates untouched

A scanned receipt never reaches the ledger from here: the caller shows
it to the user, and only a submitted TransactionInput is booked.
"""

from typing import Any, Optional, Union
from uuid import UUID

import structlog
from pydantic import ValidationError

from finance_tracker.audit import AuditLogger, create_correlation_id
from finance_tracker.ledger import (
    AccountRegistry,
    InvalidAmountError,
    InvalidIntervalError,
    LedgerError,
    LedgerReader,
    LedgerTransactionCoordinator,
)
from finance_tracker.models.ledger import (
    AccountInput,
    BalanceReconciliation,
    LedgerErrorKind,
    LedgerResult,
    Transaction,
    TransactionInput,
)
from finance_tracker.models.receipt import ScannedReceipt
from finance_tracker.services.receipts import (
    ExtractionFormatError,
    ExtractionServiceError,
    ReceiptRejectedError,
    ReceiptScanner,
    create_gemini_model,
)
from finance_tracker.services.storage import (
    LedgerStorageInterface,
    SqlAuditStorage,
    SqlLedgerStorage,
)


logger = structlog.get_logger(__name__)


def _coerce_transaction_input(data: Union[TransactionInput, dict[str, Any]]) -> TransactionInput:
    """
    Accept a validated TransactionInput or a raw form payload.

    Schema failures on amount or recurring_interval are reported with
    their ledger error kinds. Any other schema failure propagates.
    """
    if isinstance(data, TransactionInput):
        return data
    try:
        return TransactionInput.model_validate(data)
    except ValidationError as e:
        for error in e.errors():
            field = error["loc"][0] if error["loc"] else None
            if field == "amount":
                raise InvalidAmountError(error.get("input"), error["msg"]) from e
            if field == "recurring_interval":
                raise InvalidIntervalError(error.get("input")) from e
        raise


class LedgerService:
    """
    External interface to the ledger.

    Every write returns a LedgerResult. Rejections caused by the request
    (bad amount, unknown account, ...) are audited as rejected
    operations; storage failures are audited by the coordinator itself.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        receipt_scanner: Optional[ReceiptScanner] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._coordinator = LedgerTransactionCoordinator(storage, audit_logger)
        self._reader = LedgerReader(storage)
        self._accounts = AccountRegistry(storage, audit_logger)
        self._receipt_scanner = receipt_scanner
        self._audit_logger = audit_logger

    async def _reject(
        self,
        owner_id: str,
        operation: str,
        error: LedgerError,
        correlation_id: UUID,
    ) -> LedgerResult:
        if self._audit_logger and error.kind != LedgerErrorKind.PERSISTENCE_FAILURE:
            await self._audit_logger.log_operation_rejected(
                owner_id=owner_id,
                operation=operation,
                error_kind=error.kind.value,
                error_message=str(error),
                correlation_id=correlation_id,
            )
        return LedgerResult.failure(error.kind, str(error))

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    async def create_transaction(
        self,
        owner_id: str,
        data: Union[TransactionInput, dict[str, Any]],
        correlation_id: Optional[UUID] = None,
    ) -> LedgerResult:
        """Book a new transaction and move the account balance with it."""
        correlation_id = correlation_id or create_correlation_id()
        try:
            transaction = await self._coordinator.create(
                owner_id, _coerce_transaction_input(data), correlation_id
            )
        except LedgerError as e:
            return await self._reject(owner_id, "create transaction", e, correlation_id)
        return LedgerResult.ok(transaction=transaction)

    async def update_transaction(
        self,
        owner_id: str,
        transaction_id: UUID,
        data: Union[TransactionInput, dict[str, Any]],
        correlation_id: Optional[UUID] = None,
    ) -> LedgerResult:
        """Replace a transaction's fields and rebalance the affected account(s)."""
        correlation_id = correlation_id or create_correlation_id()
        try:
            transaction = await self._coordinator.update(
                owner_id, transaction_id, _coerce_transaction_input(data), correlation_id
            )
        except LedgerError as e:
            return await self._reject(owner_id, "update transaction", e, correlation_id)
        return LedgerResult.ok(transaction=transaction)

    async def get_transaction(self, owner_id: str, transaction_id: UUID) -> LedgerResult:
        try:
            transaction = await self._reader.get(owner_id, transaction_id)
        except LedgerError as e:
            return LedgerResult.failure(e.kind, str(e))
        return LedgerResult.ok(transaction=transaction)

    async def list_transactions(self, owner_id: str, account_id: UUID, **filters) -> list[Transaction]:
        """
        Transactions of one owned account, newest first.

        Raises:
            AccountNotFoundError: account missing or foreign
            PersistenceFailureError: storage fault
        """
        return await self._reader.list_transactions(owner_id, account_id, **filters)

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    async def open_account(
        self,
        owner_id: str,
        data: AccountInput,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerResult:
        correlation_id = correlation_id or create_correlation_id()
        try:
            account = await self._accounts.open_account(owner_id, data, correlation_id)
        except LedgerError as e:
            return await self._reject(owner_id, "open account", e, correlation_id)
        return LedgerResult.ok(account=account)

    async def set_default_account(
        self,
        owner_id: str,
        account_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerResult:
        correlation_id = correlation_id or create_correlation_id()
        try:
            account = await self._accounts.set_default(owner_id, account_id, correlation_id)
        except LedgerError as e:
            return await self._reject(owner_id, "set default account", e, correlation_id)
        return LedgerResult.ok(account=account)

    async def get_account(self, owner_id: str, account_id: UUID) -> LedgerResult:
        try:
            account = await self._reader.get_account(owner_id, account_id)
        except LedgerError as e:
            return LedgerResult.failure(e.kind, str(e))
        return LedgerResult.ok(account=account)

    async def reconcile_account(self, owner_id: str, account_id: UUID) -> BalanceReconciliation:
        """
        Check balance == opening balance + sum of signed amounts.

        Raises:
            AccountNotFoundError: account missing or foreign
            PersistenceFailureError: storage fault
        """
        reconciliation = await self._reader.reconcile(owner_id, account_id)
        if not reconciliation.is_consistent:
            logger.warning(
                "balance_drift_detected",
                account_id=str(account_id),
                stored_balance=str(reconciliation.stored_balance),
                expected_balance=str(reconciliation.expected_balance),
                drift=str(reconciliation.drift),
            )
        return reconciliation

    # =========================================================================
    # RECEIPTS
    # =========================================================================

    async def scan_receipt(
        self,
        image_bytes: bytes,
        mime_type: str,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[ScannedReceipt]:
        """
        Propose transaction fields from a receipt image.

        Returns:
            ScannedReceipt, or None when the image is not a receipt

        Raises:
            ReceiptRejectedError: upload failed the type/size check
            ExtractionFormatError: the model reply could not be parsed
            ExtractionServiceError: scanning unavailable or Gemini failed
        """
        correlation_id = correlation_id or create_correlation_id()

        if not self._receipt_scanner:
            raise ExtractionServiceError("Receipt scanning is not configured")

        try:
            receipt = await self._receipt_scanner.scan(image_bytes, mime_type)
        except (ReceiptRejectedError, ExtractionFormatError) as e:
            if self._audit_logger:
                await self._audit_logger.log_receipt_rejected(
                    reason=str(e),
                    correlation_id=correlation_id,
                )
            raise
        except ExtractionServiceError as e:
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    service="gemini",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_receipt_scanned(
                mime_type=mime_type,
                size_bytes=len(image_bytes),
                found=receipt is not None,
                correlation_id=correlation_id,
            )

        return receipt


async def create_app_components(
    use_receipt_scanner: bool = True,
) -> tuple[LedgerService, SqlLedgerStorage]:
    """
    Factory function to create all application components.

    Args:
        use_receipt_scanner: Whether to build the Gemini receipt scanner.
                    Set to False for running without a Gemini key.

    Returns:
        (ledger_service, ledger_storage) - dispose the storage on shutdown
    """
    storage = SqlLedgerStorage.from_settings()
    await storage.create_schema()
    audit_logger = AuditLogger(SqlAuditStorage(storage.engine))

    receipt_scanner = None
    if use_receipt_scanner:
        try:
            receipt_scanner = ReceiptScanner(create_gemini_model())
        except ValidationError as e:
            # GEMINI_API_KEY missing - run without scanning
            logger.warning("receipt_scanning_disabled", error=str(e))

    service = LedgerService(
        storage,
        receipt_scanner=receipt_scanner,
        audit_logger=audit_logger,
    )
    return service, storage
