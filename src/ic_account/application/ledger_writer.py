"""CreditLedgerWriter: the only code path that changes a balance.

Every change runs the same ordered steps:

    1. build the LedgerEntry (validates sign/kind/description up front)
    2. mutate the Account in memory (deduct/add)
    3. apply the change to the store      (AccountRepository.adjust_balance)
    4. invalidate the cached balance      (delete-before-return)
    5. record the entry                   (LedgerRepository.record)

A failure in step 5 leaves a balance change with no audit entry. For debits
the writer restores the previous balance and reports LedgerWriteError; for
credits (refund/top-up) the money stays with the account and the missing
entry is reported. Both cases are logged at CRITICAL and never retried here.

The store applies changes relative to its current balance, so the Account
passed in only needs to be a recent snapshot; it is refreshed from the
stored balance after each write. A failed cache delete is logged and does
not stop the ledger write: the cached value then expires on its TTL.
"""

import logging
from collections.abc import Mapping
from typing import Any

from src.ic_account.domain.cache import BalanceCacheProtocol, balance_key
from src.ic_account.domain.models import Account, LedgerEntry
from src.ic_account.domain.repository import AccountRepositoryProtocol, LedgerRepositoryProtocol
from src.ic_common.enums import TransactionKind
from src.ic_common.errors import AppError, InsufficientCreditsError, InvariantViolationError
from src.ic_common.result import Err, Ok, Result

logger = logging.getLogger(__name__)


class CreditLedgerWriter:
    def __init__(
        self,
        accounts: AccountRepositoryProtocol,
        ledger: LedgerRepositoryProtocol,
        cache: BalanceCacheProtocol,
    ) -> None:
        self._accounts = accounts
        self._ledger = ledger
        self._cache = cache

    async def invalidate(self, account_id: str) -> None:
        try:
            await self._cache.delete(balance_key(account_id))
        except Exception as exc:  # noqa: BLE001 -- the store already changed; the ledger write must still run
            logger.error("Balance cache invalidation failed: account=%s error=%s: %s",
                         account_id, type(exc).__name__, exc)

    async def debit(
        self,
        account: Account,
        amount: int,
        description: str,
        metadata: Mapping[str, Any] | None = None,
        kind: TransactionKind = TransactionKind.DEDUCT,
    ) -> Result[LedgerEntry, AppError]:
        """Take ``amount`` credits. No store is touched when the balance is short."""
        try:
            entry = LedgerEntry.create(account.id, -amount, kind, description, metadata)
            previous = account.credits
            account.deduct(amount)
        except (InsufficientCreditsError, InvariantViolationError) as exc:
            return Err(exc)

        match await self._accounts.adjust_balance(account.id, -amount):
            case Ok(balance):
                account.credits = balance
            case Err(error):
                account.credits = previous
                logger.error("Debit not persisted: account=%s amount=%d error=%s",
                             account.id, amount, error.message)
                return Err(error)
        await self.invalidate(account.id)

        match await self._ledger.record(entry):
            case Err(ledger_error):
                logger.critical(
                    "LEDGER WRITE FAILED on debit, restoring balance: account=%s amount=%d entry=%s error=%s",
                    account.id, amount, entry.id, ledger_error.message,
                )
                await self._restore_balance(account, amount)
                return Err(ledger_error)

        logger.info("Debited %d credit(s): account=%s balance=%d entry=%s",
                    amount, account.id, account.credits, entry.id)
        return Ok(entry)

    async def credit(
        self,
        account: Account,
        amount: int,
        kind: TransactionKind,
        description: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> Result[LedgerEntry, AppError]:
        """Give ``amount`` credits back (REFUND) or on top (ADD, ADMIN_ADJUSTMENT)."""
        try:
            entry = LedgerEntry.create(account.id, amount, kind, description, metadata)
            previous = account.credits
            account.add(amount)
        except InvariantViolationError as exc:
            return Err(exc)

        match await self._accounts.adjust_balance(account.id, amount):
            case Ok(balance):
                account.credits = balance
            case Err(error):
                account.credits = previous
                logger.error("Credit not persisted: account=%s kind=%s amount=%d error=%s",
                             account.id, kind.value, amount, error.message)
                return Err(error)
        await self.invalidate(account.id)

        match await self._ledger.record(entry):
            case Err(ledger_error):
                logger.critical(
                    "LEDGER WRITE FAILED on %s, balance and audit trail diverge: "
                    "account=%s amount=%d entry=%s error=%s",
                    kind.value, account.id, amount, entry.id, ledger_error.message,
                )
                return Err(ledger_error)

        logger.info("Credited %d credit(s) (%s): account=%s balance=%d entry=%s",
                    amount, kind.value, account.id, account.credits, entry.id)
        return Ok(entry)

    async def _restore_balance(self, account: Account, amount: int) -> None:
        match await self._accounts.adjust_balance(account.id, amount):
            case Ok(balance):
                account.credits = balance
            case Err(error):
                logger.critical(
                    "Balance restore failed after ledger error: account=%s amount=%d error=%s",
                    account.id, amount, error.message,
                )
        await self.invalidate(account.id)
