"""
Audit Logger

DESIGN DECISION: Every ledger mutation and every rejected operation is logged.
This provides:
1. Complete traceability of balance changes
2. Debugging capability when a balance looks wrong
3. User can see the history of their accounts

The audit logger:
- Is async to match the ledger flow
- Gracefully handles failures (a failed audit write never undoes or
  fails a committed ledger operation)
- Supports correlation IDs to trace related events
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from finance_tracker.models.audit import AuditEvent, AuditEventBuilder
from finance_tracker.services.storage import AuditStorageInterface, StorageError


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("finance_tracker.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except StorageError as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_account_opened(
        self,
        owner_id: str,
        account_id: UUID,
        name: str,
        opening_balance: Decimal,
        is_default: bool,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.account_opened(
            owner_id=owner_id,
            account_id=account_id,
            name=name,
            opening_balance=opening_balance,
            is_default=is_default,
            correlation_id=correlation_id,
        ))

    async def log_default_account_changed(
        self,
        owner_id: str,
        account_id: UUID,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.default_account_changed(
            owner_id=owner_id,
            account_id=account_id,
            correlation_id=correlation_id,
        ))

    async def log_transaction_created(
        self,
        owner_id: str,
        transaction_id: UUID,
        transaction_type: str,
        amount: Decimal,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_created(
            owner_id=owner_id,
            transaction_id=transaction_id,
            transaction_type=transaction_type,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_transaction_updated(
        self,
        owner_id: str,
        transaction_id: UUID,
        transaction_type: str,
        amount: Decimal,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_updated(
            owner_id=owner_id,
            transaction_id=transaction_id,
            transaction_type=transaction_type,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_balance_adjusted(
        self,
        owner_id: str,
        account_id: UUID,
        delta: Decimal,
        transaction_id: UUID,
        correlation_id: UUID,
    ) -> None:
        """Log one per-account balance change of a committed operation."""
        await self.log(AuditEventBuilder.balance_adjusted(
            owner_id=owner_id,
            account_id=account_id,
            delta=delta,
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        ))

    async def log_operation_rejected(
        self,
        owner_id: str,
        operation: str,
        error_kind: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.operation_rejected(
            owner_id=owner_id,
            operation=operation,
            error_kind=error_kind,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_persistence_failed(
        self,
        owner_id: str,
        operation: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.persistence_failed(
            owner_id=owner_id,
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_receipt_scanned(
        self,
        mime_type: str,
        size_bytes: int,
        found: bool,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.receipt_scanned(
            mime_type=mime_type,
            size_bytes=size_bytes,
            found=found,
            correlation_id=correlation_id,
        ))

    async def log_receipt_rejected(
        self,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.receipt_rejected(
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., one API request).
    Pass it through all subsequent operations.
    """
    return uuid4()
