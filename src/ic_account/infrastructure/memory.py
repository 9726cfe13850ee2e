"""In-process repositories for STORAGE_BACKEND=memory (open-source local mode).

Same contracts as the PostgreSQL repositories; state lives for the lifetime
of the process. Stored accounts are copied on the way in and out so callers
cannot mutate the store by holding on to an Account.
"""

from dataclasses import replace

from src.ic_account.domain.models import Account, LedgerEntry
from src.ic_common.datetime_utils import utc_now
from src.ic_common.enums import TransactionKind
from src.ic_common.errors import (
    AccountNotFoundError,
    AppError,
    InsufficientCreditsError,
    LedgerWriteError,
)
from src.ic_common.result import Err, Ok, Result


class InMemoryAccountRepository:
    def __init__(self, accounts: list[Account] | None = None) -> None:
        self._accounts: dict[str, Account] = {}
        for account in accounts or []:
            self._accounts[account.id] = replace(account)

    async def find_by_id(self, account_id: str) -> Result[Account, AppError]:
        account = self._accounts.get(account_id)
        if account is None:
            return Err(AccountNotFoundError(account_id))
        return Ok(replace(account))

    async def create(self, account: Account) -> Result[Account, AppError]:
        existing = self._accounts.get(account.id)
        if existing is not None:
            return Ok(replace(existing))
        self._accounts[account.id] = replace(account)
        return Ok(replace(account))

    async def adjust_balance(self, account_id: str, delta: int) -> Result[int, AppError]:
        account = self._accounts.get(account_id)
        if account is None:
            return Err(AccountNotFoundError(account_id))
        if account.credits + delta < 0:
            return Err(InsufficientCreditsError(account_id, -delta, account.credits))
        self._accounts[account_id] = replace(
            account,
            credits=account.credits + delta,
            version=account.version + 1,
            updated_at=utc_now(),
        )
        return Ok(account.credits + delta)


class InMemoryLedgerRepository:
    def __init__(self) -> None:
        self._entries: dict[str, LedgerEntry] = {}

    async def record(self, entry: LedgerEntry) -> Result[None, LedgerWriteError]:
        if entry.id in self._entries:
            return Err(LedgerWriteError(f"duplicate transaction id {entry.id}"))
        self._entries[entry.id] = entry
        return Ok(None)

    async def list_for_account(
        self,
        account_id: str,
        before_id: str | None,
        limit: int,
        kind: TransactionKind | None,
    ) -> Result[list[LedgerEntry], AppError]:
        entries = sorted(
            (
                e for e in self._entries.values()
                if e.account_id == account_id
                and (before_id is None or e.id < before_id)
                and (kind is None or e.kind is kind)
            ),
            key=lambda e: e.id,
            reverse=True,
        )
        return Ok(entries[:limit])

    def entries_for(self, account_id: str) -> list[LedgerEntry]:
        """Oldest-first audit trail of one account."""
        return sorted(
            (e for e in self._entries.values() if e.account_id == account_id),
            key=lambda e: e.id,
        )
