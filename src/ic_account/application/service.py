"""CreditBalanceService: read-side balance/eligibility queries plus top-ups.

Reads go through the active CreditPolicy first (unmetered mode answers
without touching any store), then the balance cache, then the account store.
"""

import logging
from collections.abc import Mapping
from typing import Any

from src.ic_account.application.ledger_writer import CreditLedgerWriter
from src.ic_account.application.schemas import (
    LedgerEntryItem,
    LedgerResponse,
    cursor_decode,
    cursor_encode,
)
from src.ic_account.domain.cache import BalanceCacheProtocol, balance_key
from src.ic_account.domain.models import Account, CreditBalance, Eligibility, LedgerEntry
from src.ic_account.domain.policy import CreditPolicy, parse_operation
from src.ic_account.domain.repository import AccountRepositoryProtocol, LedgerRepositoryProtocol
from src.ic_common.enums import OperationKind, TransactionKind, UserTier
from src.ic_common.errors import AppError, ValidationError
from src.ic_common.result import Err, Ok, Result

logger = logging.getLogger(__name__)

DEFAULT_BALANCE_TTL_SECONDS = 60


def _to_snapshot(balance: CreditBalance) -> dict[str, Any]:
    return {"account_id": balance.account_id, "credits": balance.credits, "tier": balance.tier.value}


def _from_snapshot(data: Mapping[str, Any]) -> CreditBalance:
    return CreditBalance(
        account_id=data["account_id"], credits=data["credits"], tier=UserTier(data["tier"])
    )


class CreditBalanceService:
    def __init__(
        self,
        accounts: AccountRepositoryProtocol,
        ledger: LedgerRepositoryProtocol,
        cache: BalanceCacheProtocol,
        policy: CreditPolicy,
        writer: CreditLedgerWriter | None = None,
        balance_ttl_seconds: float = DEFAULT_BALANCE_TTL_SECONDS,
        default_credits: int | None = None,
    ) -> None:
        self._accounts = accounts
        self._ledger = ledger
        self._cache = cache
        self._policy = policy
        self._writer = writer or CreditLedgerWriter(accounts, ledger, cache)
        self._ttl = balance_ttl_seconds
        self._default_credits = default_credits

    async def open_account(
        self, account_id: str, credits: int | None = None
    ) -> Result[Account, AppError]:
        if not account_id or not account_id.strip():
            return Err(ValidationError("account id cannot be empty"))
        if credits is None:
            credits = self._default_credits
        try:
            account = Account.open(account_id.strip(), credits=credits)
        except AppError as exc:
            return Err(exc)
        return await self._accounts.create(account)

    async def get_balance(self, account_id: str) -> Result[CreditBalance, AppError]:
        override = self._policy.balance_override(account_id)
        if override is not None:
            return Ok(override)

        key = balance_key(account_id)
        cached = await self._cache.get(key)
        if cached is not None:
            return Ok(_from_snapshot(cached))

        match await self._accounts.find_by_id(account_id):
            case Err(error):
                return Err(error)
            case Ok(account):
                balance = CreditBalance(account_id=account.id, credits=account.credits, tier=account.tier)
        await self._cache.set(key, _to_snapshot(balance), self._ttl)
        return Ok(balance)

    async def check_eligibility(
        self, account_id: str, operation: OperationKind | str
    ) -> Result[Eligibility, AppError]:
        try:
            op = parse_operation(operation)
        except ValidationError as exc:
            return Err(exc)
        cost = self._policy.cost_of(op)

        match await self.get_balance(account_id):
            case Err(error):
                return Err(error)
            case Ok(balance):
                pass
        return Ok(
            Eligibility(
                account_id=account_id,
                operation=op.value,
                allowed=self._policy.can_afford(balance, op),
                credits=balance.credits,
                cost=cost,
                tier=balance.tier,
                show_warning=self._policy.should_show_warning(balance.credits),
            )
        )

    async def add_credits(
        self,
        account_id: str,
        amount: int,
        kind: TransactionKind = TransactionKind.ADD,
        description: str = "Credit top-up",
        metadata: Mapping[str, Any] | None = None,
    ) -> Result[LedgerEntry, AppError]:
        """Top-up (ADD) or manual correction (ADMIN_ADJUSTMENT, may be negative)."""
        if kind not in (TransactionKind.ADD, TransactionKind.ADMIN_ADJUSTMENT):
            return Err(ValidationError(f"{kind.value} cannot be issued directly"))
        if amount == 0:
            return Err(ValidationError("amount cannot be zero"))
        if amount < 0 and kind is not TransactionKind.ADMIN_ADJUSTMENT:
            return Err(ValidationError("only ADMIN_ADJUSTMENT may remove credits"))

        match await self._accounts.find_by_id(account_id):
            case Err(error):
                return Err(error)
            case Ok(account):
                pass

        if amount > 0:
            result = await self._writer.credit(account, amount, kind, description, metadata)
        else:
            result = await self._writer.debit(account, -amount, description, metadata, kind=kind)
        if result.is_ok:
            logger.info("Manual %s applied: account=%s amount=%d", kind.value, account_id, amount)
        return result

    async def list_ledger(
        self,
        account_id: str,
        cursor: str | None = None,
        limit: int = 20,
        kind: TransactionKind | None = None,
    ) -> Result[LedgerResponse, AppError]:
        try:
            before_id = cursor_decode(cursor)
        except ValidationError as exc:
            return Err(exc)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        match await self._ledger.list_for_account(account_id, before_id, limit + 1, kind):
            case Err(error):
                return Err(error)
            case Ok(entries):
                pass
        has_more = len(entries) > limit
        page = entries[:limit]
        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return Ok(
            LedgerResponse(
                items=[LedgerEntryItem.from_domain(e) for e in page],
                next_cursor=next_cursor,
                has_more=has_more,
            )
        )
