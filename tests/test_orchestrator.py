"""
Tests for LedgerService, the caller-facing interface.

Callers branch on LedgerResult.error_kind, so these tests check kinds
and response shapes rather than messages.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import OperationalError

from conftest import OTHER_OWNER, OWNER, FakeGeminiModel, make_input
from finance_tracker.audit import create_correlation_id
from finance_tracker.models.audit import AuditEventType
from finance_tracker.models.ledger import (
    AccountInput,
    LedgerErrorKind,
    TransactionType,
)
from finance_tracker.orchestrator import LedgerService
from finance_tracker.services.receipts import (
    ExtractionFormatError,
    ExtractionServiceError,
    ReceiptRejectedError,
    ReceiptScanner,
)
from finance_tracker.services.storage import SqlLedgerUnitOfWork


def _form(account_id, **overrides) -> dict:
    """Raw form payload as a UI would submit it."""
    payload = {
        "account_id": str(account_id),
        "amount": "50.00",
        "type": "EXPENSE",
        "date": "2024-03-01",
        "category": "groceries",
    }
    payload.update(overrides)
    return payload


class TestTransactions:
    """Tests for transaction operations."""

    @pytest.mark.asyncio
    async def test_create_and_update_scenario(self, service, account):
        """Test 1000.00 -> EXPENSE 50 -> 950.00 -> INCOME 50 -> 1050.00."""
        created = await service.create_transaction(OWNER, make_input(account.id))
        assert created.success
        assert (await service.get_account(OWNER, account.id)).account.balance == Decimal("950.00")

        updated = await service.update_transaction(
            OWNER, created.transaction.id, make_input(account.id, type=TransactionType.INCOME)
        )
        assert updated.success
        assert (await service.get_account(OWNER, account.id)).account.balance == Decimal("1050.00")

    @pytest.mark.asyncio
    async def test_response_amount_is_number(self, service, account):
        """Test the response carries the amount as a plain number."""
        result = await service.create_transaction(OWNER, make_input(account.id))

        response = result.to_response()

        assert response["success"] is True
        assert response["data"]["amount"] == 50.0
        assert isinstance(response["data"]["amount"], float)
        assert response["data"]["type"] == "EXPENSE"

    @pytest.mark.asyncio
    async def test_accepts_form_payload(self, service, account):
        """Test a raw dict is validated into a transaction."""
        result = await service.create_transaction(OWNER, _form(account.id))
        assert result.success
        assert result.transaction.amount == Decimal("50.00")

    @pytest.mark.asyncio
    async def test_unknown_account_kind(self, service, account, other_account):
        """Test another user's account gives account_not_found."""
        result = await service.create_transaction(OWNER, make_input(other_account.id))

        assert not result.success
        assert result.error_kind == LedgerErrorKind.ACCOUNT_NOT_FOUND
        assert result.to_response()["error"]["kind"] == "account_not_found"

    @pytest.mark.asyncio
    async def test_negative_amount_kind(self, service, account):
        """Test a negative amount gives invalid_amount."""
        result = await service.create_transaction(
            OWNER, make_input(account.id, amount=Decimal("-1.00"))
        )
        assert result.error_kind == LedgerErrorKind.INVALID_AMOUNT

    @pytest.mark.asyncio
    async def test_unparseable_amount_kind(self, service, account):
        """Test a non-numeric form amount gives invalid_amount."""
        result = await service.create_transaction(OWNER, _form(account.id, amount="lots"))
        assert result.error_kind == LedgerErrorKind.INVALID_AMOUNT

    @pytest.mark.asyncio
    async def test_unknown_interval_kind(self, service, account):
        """Test an unknown form interval gives invalid_interval."""
        result = await service.create_transaction(
            OWNER,
            _form(account.id, is_recurring=True, recurring_interval="FORTNIGHTLY"),
        )
        assert result.error_kind == LedgerErrorKind.INVALID_INTERVAL

    @pytest.mark.asyncio
    async def test_other_schema_errors_propagate(self, service, account):
        """Test schema errors without a ledger kind are not swallowed."""
        with pytest.raises(ValidationError):
            await service.create_transaction(OWNER, _form(account.id, category=""))

    @pytest.mark.asyncio
    async def test_persistence_failure_kind(self, service, account, monkeypatch):
        """Test a failed commit gives persistence_failure."""
        async def failing_commit(self):
            raise OperationalError("COMMIT", None, Exception("disk I/O error"))

        monkeypatch.setattr(SqlLedgerUnitOfWork, "commit", failing_commit)

        result = await service.create_transaction(OWNER, make_input(account.id))

        assert result.error_kind == LedgerErrorKind.PERSISTENCE_FAILURE

    @pytest.mark.asyncio
    async def test_get_foreign_transaction(self, service, account):
        """Test get_transaction(B, tx of A) gives transaction_not_found."""
        created = await service.create_transaction(OWNER, make_input(account.id))

        result = await service.get_transaction(OTHER_OWNER, created.transaction.id)

        assert result.error_kind == LedgerErrorKind.TRANSACTION_NOT_FOUND

    @pytest.mark.asyncio
    async def test_update_missing_transaction(self, service, account):
        """Test updating an unknown id gives transaction_not_found."""
        result = await service.update_transaction(OWNER, uuid4(), make_input(account.id))
        assert result.error_kind == LedgerErrorKind.TRANSACTION_NOT_FOUND

    @pytest.mark.asyncio
    async def test_rejection_is_audited(self, service, audit_storage, other_account):
        """Test a rejected request is logged as a rejected operation."""
        correlation_id = create_correlation_id()

        await service.create_transaction(
            OWNER, make_input(other_account.id), correlation_id=correlation_id
        )

        events = await audit_storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_type for e in events] == [AuditEventType.OPERATION_REJECTED]
        assert events[0].error_code == "account_not_found"


class TestAccounts:
    """Tests for account operations."""

    @pytest.mark.asyncio
    async def test_open_account(self, service):
        """Test opening an account returns it in the result."""
        result = await service.open_account(
            OWNER, AccountInput(name="Main", opening_balance=Decimal("12.50"))
        )

        assert result.success
        response = result.to_response()
        assert response["data"]["balance"] == 12.5
        assert response["data"]["is_default"] is True

    @pytest.mark.asyncio
    async def test_set_default_foreign_account(self, service, other_account):
        """Test making another user's account default gives account_not_found."""
        result = await service.set_default_account(OWNER, other_account.id)
        assert result.error_kind == LedgerErrorKind.ACCOUNT_NOT_FOUND

    @pytest.mark.asyncio
    async def test_list_and_reconcile(self, service, account):
        """Test listing and reconciling after a few writes."""
        await service.create_transaction(OWNER, make_input(account.id, date=date(2024, 3, 1)))
        await service.create_transaction(
            OWNER,
            make_input(account.id, date=date(2024, 3, 2), type=TransactionType.INCOME),
        )

        transactions = await service.list_transactions(OWNER, account.id)
        reconciliation = await service.reconcile_account(OWNER, account.id)

        assert [t.date for t in transactions] == [date(2024, 3, 2), date(2024, 3, 1)]
        assert reconciliation.is_consistent
        assert reconciliation.stored_balance == Decimal("1000.00")


class TestScanReceipt:
    """Tests for LedgerService.scan_receipt."""

    def _service(self, storage, audit_logger, app_settings, replies) -> LedgerService:
        scanner = ReceiptScanner(FakeGeminiModel(replies), app_settings)
        return LedgerService(storage, receipt_scanner=scanner, audit_logger=audit_logger)

    @pytest.mark.asyncio
    async def test_scan_returns_proposal(self, storage, audit_logger, audit_storage, app_settings):
        """Test a receipt is scanned, audited, and not booked."""
        service = self._service(
            storage, audit_logger, app_settings,
            ['{"amount": 9.99, "date": "2024-05-01", "merchantName": "Cafe"}'],
        )
        correlation_id = create_correlation_id()

        receipt = await service.scan_receipt(b"img", "image/png", correlation_id=correlation_id)

        assert receipt.amount == Decimal("9.99")
        events = await audit_storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_type for e in events] == [AuditEventType.RECEIPT_SCANNED]
        assert events[0].details["found"] is True

    @pytest.mark.asyncio
    async def test_not_a_receipt(self, storage, audit_logger, app_settings):
        """Test {} from the model gives None."""
        service = self._service(storage, audit_logger, app_settings, ["{}"])
        assert await service.scan_receipt(b"img", "image/png") is None

    @pytest.mark.asyncio
    async def test_malformed_reply_raises(self, storage, audit_logger, audit_storage, app_settings):
        """Test a malformed reply raises and is audited as rejected."""
        service = self._service(storage, audit_logger, app_settings, ["<html>oops</html>"])
        correlation_id = create_correlation_id()

        with pytest.raises(ExtractionFormatError):
            await service.scan_receipt(b"img", "image/png", correlation_id=correlation_id)

        events = await audit_storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_type for e in events] == [AuditEventType.RECEIPT_REJECTED]

    @pytest.mark.asyncio
    async def test_bad_upload_raises(self, storage, audit_logger, app_settings):
        """Test an unsupported upload raises ReceiptRejectedError."""
        service = self._service(storage, audit_logger, app_settings, ["{}"])
        with pytest.raises(ReceiptRejectedError):
            await service.scan_receipt(b"GIF89a", "image/gif")

    @pytest.mark.asyncio
    async def test_scanner_not_configured(self, service):
        """Test scanning without a scanner raises ExtractionServiceError."""
        with pytest.raises(ExtractionServiceError, match="not configured"):
            await service.scan_receipt(b"img", "image/png")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
