"""
Shared fixtures for Finance Tracker tests.

Every test gets its own SQLite file under tmp_path, so tests never
share ledger state and no external service is contacted.
"""

from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest
import pytest_asyncio

from finance_tracker.audit import AuditLogger
from finance_tracker.config import AppSettings, DatabaseSettings
from finance_tracker.ledger import (
    AccountRegistry,
    LedgerReader,
    LedgerTransactionCoordinator,
)
from finance_tracker.models.ledger import (
    AccountInput,
    TransactionInput,
    TransactionType,
)
from finance_tracker.orchestrator import LedgerService
from finance_tracker.services.receipts import ReceiptScanner
from finance_tracker.services.storage import SqlAuditStorage, SqlLedgerStorage


OWNER = "user_a"
OTHER_OWNER = "user_b"


class FakeGeminiModel:
    """Stands in for genai.GenerativeModel; records every request."""

    def __init__(self, replies=None):
        # Each reply is either response text or an exception to raise
        self._replies = list(replies or [])
        self.calls = []

    async def generate_content_async(self, contents):
        self.calls.append(contents)
        reply = self._replies.pop(0) if len(self._replies) > 1 else self._replies[0]
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(text=reply)


def make_input(account_id, **overrides) -> TransactionInput:
    """TransactionInput with sensible defaults for tests."""
    fields = {
        "account_id": account_id,
        "amount": Decimal("50.00"),
        "type": TransactionType.EXPENSE,
        "date": date(2024, 3, 1),
        "category": "groceries",
        "description": "Weekly shop",
    }
    fields.update(overrides)
    return TransactionInput(**fields)


@pytest_asyncio.fixture
async def storage(tmp_path):
    """Fresh ledger database for one test."""
    settings = DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    ledger_storage = SqlLedgerStorage.from_settings(settings)
    await ledger_storage.create_schema()
    yield ledger_storage
    await ledger_storage.dispose()


@pytest.fixture
def audit_storage(storage):
    return SqlAuditStorage(storage.engine)


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def coordinator(storage, audit_logger):
    return LedgerTransactionCoordinator(storage, audit_logger)


@pytest.fixture
def reader(storage):
    return LedgerReader(storage)


@pytest.fixture
def registry(storage, audit_logger):
    return AccountRegistry(storage, audit_logger)


@pytest.fixture
def app_settings():
    return AppSettings(max_receipt_size_mb=1)


@pytest.fixture
def service(storage, audit_logger):
    return LedgerService(storage, audit_logger=audit_logger)


@pytest_asyncio.fixture
async def account(registry):
    """OWNER's default account opened with 1000.00."""
    return await registry.open_account(
        OWNER,
        AccountInput(name="Main Checking", opening_balance=Decimal("1000.00")),
    )


@pytest_asyncio.fixture
async def other_account(registry):
    """An account belonging to OTHER_OWNER."""
    return await registry.open_account(
        OTHER_OWNER,
        AccountInput(name="Someone Else", opening_balance=Decimal("200.00")),
    )
