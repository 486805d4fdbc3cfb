"""Tests for the account registry."""

from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from conftest import OTHER_OWNER, OWNER
from finance_tracker.ledger import AccountNotFoundError
from finance_tracker.models.ledger import MAX_AMOUNT, AccountInput, AccountType


async def _default_ids(reader, owner_id, accounts) -> set:
    ids = set()
    for account in accounts:
        stored = await reader.get_account(owner_id, account.id)
        if stored.is_default:
            ids.add(stored.id)
    return ids


class TestOpenAccount:
    """Tests for AccountRegistry.open_account."""

    @pytest.mark.asyncio
    async def test_opening_balance(self, registry, reader):
        """Test balance starts at the opening balance."""
        account = await registry.open_account(
            OWNER,
            AccountInput(name="Savings", type=AccountType.SAVINGS, opening_balance=Decimal("250.75")),
        )

        stored = await reader.get_account(OWNER, account.id)
        assert stored.balance == Decimal("250.75")
        assert stored.opening_balance == Decimal("250.75")
        assert stored.type == AccountType.SAVINGS

    @pytest.mark.asyncio
    async def test_first_account_is_default(self, registry):
        """Test the first account becomes default even when not requested."""
        account = await registry.open_account(OWNER, AccountInput(name="Main"))
        assert account.is_default is True

    @pytest.mark.asyncio
    async def test_second_account_not_default(self, registry, reader):
        """Test later accounts stay non-default unless requested."""
        first = await registry.open_account(OWNER, AccountInput(name="Main"))
        second = await registry.open_account(OWNER, AccountInput(name="Side"))

        assert second.is_default is False
        assert await _default_ids(reader, OWNER, [first, second]) == {first.id}

    @pytest.mark.asyncio
    async def test_new_default_clears_old(self, registry, reader):
        """Test requesting default on a new account moves the flag."""
        first = await registry.open_account(OWNER, AccountInput(name="Main"))
        second = await registry.open_account(OWNER, AccountInput(name="New", is_default=True))

        assert await _default_ids(reader, OWNER, [first, second]) == {second.id}

    @pytest.mark.asyncio
    async def test_default_is_per_owner(self, registry, reader):
        """Test one owner's default does not affect another's."""
        mine = await registry.open_account(OWNER, AccountInput(name="Mine"))
        theirs = await registry.open_account(OTHER_OWNER, AccountInput(name="Theirs"))

        assert (await reader.get_account(OWNER, mine.id)).is_default
        assert (await reader.get_account(OTHER_OWNER, theirs.id)).is_default

    def test_sub_cent_opening_balance_rejected(self):
        """Test opening balances with more than two decimal places are rejected."""
        with pytest.raises(ValidationError):
            AccountInput(name="Bad", opening_balance=Decimal("10.001"))

    def test_opening_balance_above_max_rejected(self):
        """Test opening balances beyond what integer-cent storage holds are rejected."""
        with pytest.raises(ValidationError):
            AccountInput(name="Huge", opening_balance=MAX_AMOUNT + 1)
        assert AccountInput(name="Max", opening_balance=MAX_AMOUNT).opening_balance == MAX_AMOUNT


class TestSetDefault:
    """Tests for AccountRegistry.set_default."""

    @pytest.mark.asyncio
    async def test_moves_default(self, registry, reader):
        """Test exactly one default remains after switching."""
        first = await registry.open_account(OWNER, AccountInput(name="Main"))
        second = await registry.open_account(OWNER, AccountInput(name="Side"))

        result = await registry.set_default(OWNER, second.id)

        assert result.is_default is True
        assert await _default_ids(reader, OWNER, [first, second]) == {second.id}

    @pytest.mark.asyncio
    async def test_foreign_account_rejected(self, registry, reader):
        """Test another user's account cannot be made default."""
        mine = await registry.open_account(OWNER, AccountInput(name="Mine"))
        theirs = await registry.open_account(OTHER_OWNER, AccountInput(name="Theirs"))

        with pytest.raises(AccountNotFoundError):
            await registry.set_default(OWNER, theirs.id)

        assert (await reader.get_account(OWNER, mine.id)).is_default

    @pytest.mark.asyncio
    async def test_missing_account_rejected(self, registry):
        """Test an unknown account id is rejected."""
        with pytest.raises(AccountNotFoundError):
            await registry.set_default(OWNER, uuid4())


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
