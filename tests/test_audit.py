"""Tests for the audit logger and SQL audit storage."""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from conftest import OWNER, make_input
from finance_tracker.audit import AuditLogger, create_correlation_id
from finance_tracker.ledger import LedgerTransactionCoordinator, PersistenceFailureError
from finance_tracker.models.audit import AuditEventBuilder, AuditEventType
from finance_tracker.services.storage import (
    AuditStorageInterface,
    SqlLedgerUnitOfWork,
    StorageError,
)


class BrokenAuditStorage(AuditStorageInterface):
    """Audit storage whose writes always fail."""

    async def append_event(self, event):
        raise StorageError("audit table locked")

    async def get_events_by_correlation_id(self, correlation_id):
        return []

    async def get_events_by_entity(self, entity_type, entity_id):
        return []


class TestAuditLogger:
    """Tests for AuditLogger."""

    @pytest.mark.asyncio
    async def test_local_only_logging(self):
        """Test logging without storage succeeds."""
        logger = AuditLogger()
        event = AuditEventBuilder.receipt_rejected("too large", uuid4())
        assert await logger.log(event) is True

    @pytest.mark.asyncio
    async def test_storage_failure_is_reported_not_raised(self):
        """Test a failing audit store returns False instead of raising."""
        logger = AuditLogger(BrokenAuditStorage())
        event = AuditEventBuilder.receipt_rejected("too large", uuid4())
        assert await logger.log(event) is False

    @pytest.mark.asyncio
    async def test_round_trip_through_sql(self, audit_logger, audit_storage):
        """Test events are persisted and read back by entity."""
        account_id = uuid4()
        await audit_logger.log_account_opened(
            owner_id=OWNER,
            account_id=account_id,
            name="Main",
            opening_balance=Decimal("10.00"),
            is_default=True,
            correlation_id=create_correlation_id(),
        )

        events = await audit_storage.get_events_by_entity("account", account_id)

        assert len(events) == 1
        assert events[0].event_type == AuditEventType.ACCOUNT_OPENED
        assert events[0].details == {"opening_balance": "10.00", "is_default": True}


class TestLedgerAuditTrail:
    """Ledger operations leave an audit trail."""

    @pytest.mark.asyncio
    async def test_create_logs_transaction_and_balance(self, coordinator, audit_storage, account):
        """Test a create logs the transaction and the balance change."""
        correlation_id = create_correlation_id()
        transaction = await coordinator.create(
            OWNER, make_input(account.id), correlation_id=correlation_id
        )

        events = await audit_storage.get_events_by_correlation_id(correlation_id)

        assert [e.event_type for e in events] == [
            AuditEventType.TRANSACTION_CREATED,
            AuditEventType.BALANCE_ADJUSTED,
        ]
        assert events[0].entity_id == transaction.id
        assert events[1].entity_id == account.id
        assert events[1].details["delta"] == "-50.00"

    @pytest.mark.asyncio
    async def test_persistence_failure_logged(
        self, coordinator, audit_storage, account, monkeypatch
    ):
        """Test a rolled-back write is recorded as a persistence failure."""
        async def failing_commit(self):
            raise OperationalError("COMMIT", None, Exception("disk I/O error"))

        monkeypatch.setattr(SqlLedgerUnitOfWork, "commit", failing_commit)
        correlation_id = create_correlation_id()

        with pytest.raises(PersistenceFailureError):
            await coordinator.create(OWNER, make_input(account.id), correlation_id=correlation_id)

        events = await audit_storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_type for e in events] == [AuditEventType.PERSISTENCE_FAILED]
        assert events[0].error_code == "persistence_failure"

    @pytest.mark.asyncio
    async def test_audit_failure_does_not_fail_ledger(self, storage, reader, account):
        """Test a broken audit store never undoes a committed write."""
        coordinator = LedgerTransactionCoordinator(storage, AuditLogger(BrokenAuditStorage()))

        transaction = await coordinator.create(OWNER, make_input(account.id))

        assert (await reader.get(OWNER, transaction.id)).id == transaction.id
        assert (await reader.get_account(OWNER, account.id)).balance == Decimal("950.00")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
