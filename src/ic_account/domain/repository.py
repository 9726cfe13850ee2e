"""Repository Protocols: dependency inversion for testability.

Unit tests inject in-memory fakes or mocks that conform to these Protocols.
The infrastructure layer provides PostgreSQL and in-memory implementations.

Every method returns a tagged ``Result``; store failures come back as ``Err``
and are never raised through the domain.
"""

from typing import Protocol

from src.ic_account.domain.models import Account, LedgerEntry
from src.ic_common.enums import TransactionKind
from src.ic_common.errors import AppError, LedgerWriteError
from src.ic_common.result import Result


class AccountRepositoryProtocol(Protocol):
    async def find_by_id(self, account_id: str) -> Result[Account, AppError]:
        """Err(AccountNotFoundError) when the account does not exist."""
        ...

    async def create(self, account: Account) -> Result[Account, AppError]: ...

    async def adjust_balance(self, account_id: str, delta: int) -> Result[int, AppError]:
        """Add ``delta`` (negative to take) in one step and return the new balance.

        Err(InsufficientCreditsError) when the stored balance would go negative.
        """
        ...


class LedgerRepositoryProtocol(Protocol):
    async def record(self, entry: LedgerEntry) -> Result[None, LedgerWriteError]: ...

    async def list_for_account(
        self,
        account_id: str,
        before_id: str | None,
        limit: int,
        kind: TransactionKind | None,
    ) -> Result[list[LedgerEntry], AppError]:
        """Newest first; ``before_id`` is an exclusive cursor."""
        ...
