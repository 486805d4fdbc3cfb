"""
Account Registry

Opens accounts and keeps exactly one default account per owner.

The opening balance is the only balance ever written directly.
After that, balances move only through the transaction coordinator.
"""

from typing import Optional
from uuid import UUID

from finance_tracker.audit import AuditLogger, create_correlation_id
from finance_tracker.ledger.errors import AccountNotFoundError, PersistenceFailureError
from finance_tracker.models.ledger import Account, AccountInput
from finance_tracker.services.storage import LedgerStorageInterface, StorageError


class AccountRegistry:
    """
    Account lifecycle operations.

    RULES:
    - An owner's first account is always the default
    - Marking an account default clears the flag everywhere else,
      in the same unit of work
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger

    async def open_account(
        self,
        owner_id: str,
        data: AccountInput,
        correlation_id: Optional[UUID] = None,
    ) -> Account:
        """
        Raises:
            PersistenceFailureError: storage fault; nothing was written
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            async with self._storage.unit_of_work() as uow:
                existing_count = await uow.count_owned_accounts(owner_id)
                is_default = data.is_default or existing_count == 0
                if is_default:
                    await uow.clear_default_accounts(owner_id)

                account = Account(
                    owner_id=owner_id,
                    name=data.name,
                    type=data.type,
                    balance=data.opening_balance,
                    opening_balance=data.opening_balance,
                    is_default=is_default,
                )
                await uow.insert_account(account)
        except StorageError as e:
            raise PersistenceFailureError("account open", str(e)) from e

        if self._audit_logger:
            await self._audit_logger.log_account_opened(
                owner_id=owner_id,
                account_id=account.id,
                name=account.name,
                opening_balance=account.opening_balance,
                is_default=account.is_default,
                correlation_id=correlation_id,
            )

        return account

    async def set_default(
        self,
        owner_id: str,
        account_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> Account:
        """
        Raises:
            AccountNotFoundError: missing or owned by someone else
            PersistenceFailureError: storage fault; nothing was written
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            async with self._storage.unit_of_work() as uow:
                account = await uow.find_owned_account(owner_id, account_id)
                if account is None:
                    raise AccountNotFoundError(account_id)
                await uow.clear_default_accounts(owner_id)
                await uow.set_default_account(owner_id, account_id)
        except StorageError as e:
            raise PersistenceFailureError("default account change", str(e)) from e

        if self._audit_logger:
            await self._audit_logger.log_default_account_changed(
                owner_id=owner_id,
                account_id=account_id,
                correlation_id=correlation_id,
            )

        return account.model_copy(update={"is_default": True})
