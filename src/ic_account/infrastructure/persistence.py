"""PostgreSQL repositories: AccountRepositoryProtocol / LedgerRepositoryProtocol.

Accounts and the credit ledger are independent stores: every call opens its
own session and commits on its own, so a balance write and its ledger entry
are NOT one database transaction. Consistency between them is the job of the
calling service (ordered writes plus compensation).

Driver errors are converted to Err results here and never escape as raw
SQLAlchemy exceptions.
"""

import json
import logging

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.ic_account.domain.models import Account, LedgerEntry
from src.ic_common.datetime_utils import as_utc
from src.ic_common.enums import TransactionKind
from src.ic_common.errors import (
    AccountNotFoundError,
    AppError,
    BalanceUpdateError,
    InsufficientCreditsError,
    InternalError,
    LedgerWriteError,
)
from src.ic_common.result import Err, Ok, Result

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# SQL: accounts
# ---------------------------------------------------------------------------

_GET_ACCOUNT_SQL = text("""
    SELECT id, credits, tier, version, created_at, updated_at
    FROM accounts
    WHERE id = :id
""")

_INSERT_ACCOUNT_SQL = text("""
    INSERT INTO accounts (id, credits, tier)
    VALUES (:id, :credits, :tier)
    ON CONFLICT (id) DO NOTHING
    RETURNING id, credits, tier, version, created_at, updated_at
""")

# Relative write: concurrent adjustments compose instead of overwriting.
# 0 rows means the account is missing or the balance would go negative.
_ADJUST_BALANCE_SQL = text("""
    UPDATE accounts
    SET credits = credits + :delta,
        version = version + 1,
        updated_at = NOW()
    WHERE id = :id AND credits + :delta >= 0
    RETURNING credits
""")

# ---------------------------------------------------------------------------
# SQL: credit_transactions (append-only)
# ---------------------------------------------------------------------------

_INSERT_TRANSACTION_SQL = text("""
    INSERT INTO credit_transactions
        (id, account_id, amount, kind, description, metadata, timestamp)
    VALUES
        (:id, :account_id, :amount, :kind, :description, CAST(:metadata AS JSONB), :timestamp)
""")

_LIST_TRANSACTIONS_SQL = text("""
    SELECT id, account_id, amount, kind, description, metadata AS meta, timestamp
    FROM credit_transactions
    WHERE account_id = :account_id
      AND (CAST(:before_id AS VARCHAR) IS NULL OR id < :before_id)
      AND (CAST(:kind AS VARCHAR) IS NULL OR kind = :kind)
    ORDER BY id DESC
    LIMIT :limit
""")


def _row_to_account(row: object) -> Account:
    return Account(
        id=row.id,  # type: ignore[attr-defined]
        credits=row.credits,  # type: ignore[attr-defined]
        tier=row.tier,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        created_at=as_utc(row.created_at),  # type: ignore[attr-defined]
        updated_at=as_utc(row.updated_at),  # type: ignore[attr-defined]
    )


def _row_to_entry(row: object) -> LedgerEntry:
    metadata = row.meta  # type: ignore[attr-defined]
    if isinstance(metadata, str):
        metadata = json.loads(metadata)
    return LedgerEntry(
        id=row.id,  # type: ignore[attr-defined]
        account_id=row.account_id,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        kind=TransactionKind(row.kind),  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        metadata=metadata or {},
        timestamp=as_utc(row.timestamp),  # type: ignore[attr-defined]
    )


class SqlAccountRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def find_by_id(self, account_id: str) -> Result[Account, AppError]:
        try:
            async with self._session_factory() as db:
                row = (await db.execute(_GET_ACCOUNT_SQL, {"id": account_id})).fetchone()
        except SQLAlchemyError as exc:
            logger.error("Account lookup failed: account=%s error=%s", account_id, exc)
            return Err(InternalError(f"Account lookup failed for {account_id}"))
        if row is None:
            return Err(AccountNotFoundError(account_id))
        return Ok(_row_to_account(row))

    async def create(self, account: Account) -> Result[Account, AppError]:
        """Insert a new account; an existing row with the same id is returned unchanged."""
        try:
            async with self._session_factory() as db, db.begin():
                row = (
                    await db.execute(
                        _INSERT_ACCOUNT_SQL,
                        {"id": account.id, "credits": account.credits, "tier": account.tier.value},
                    )
                ).fetchone()
                if row is None:
                    row = (await db.execute(_GET_ACCOUNT_SQL, {"id": account.id})).fetchone()
        except SQLAlchemyError as exc:
            logger.error("Account create failed: account=%s error=%s", account.id, exc)
            return Err(InternalError(f"Account create failed for {account.id}"))
        if row is None:
            return Err(InternalError("Account insert returned no rows"))
        return Ok(_row_to_account(row))

    async def adjust_balance(self, account_id: str, delta: int) -> Result[int, AppError]:
        current = None
        try:
            async with self._session_factory() as db, db.begin():
                row = (
                    await db.execute(_ADJUST_BALANCE_SQL, {"id": account_id, "delta": delta})
                ).fetchone()
                if row is None:
                    current = (await db.execute(_GET_ACCOUNT_SQL, {"id": account_id})).fetchone()
        except IntegrityError as exc:
            return Err(BalanceUpdateError(account_id, f"constraint violated ({exc.orig})"))
        except SQLAlchemyError as exc:
            logger.error("Balance update failed: account=%s error=%s", account_id, exc)
            return Err(BalanceUpdateError(account_id, str(exc)))
        if row is not None:
            return Ok(row.credits)
        if current is None:
            return Err(AccountNotFoundError(account_id))
        return Err(InsufficientCreditsError(account_id, -delta, current.credits))


class SqlLedgerRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def record(self, entry: LedgerEntry) -> Result[None, LedgerWriteError]:
        params = {
            "id": entry.id,
            "account_id": entry.account_id,
            "amount": entry.amount,
            "kind": entry.kind.value,
            "description": entry.description,
            "metadata": json.dumps(dict(entry.metadata)) if entry.metadata else None,
            "timestamp": entry.timestamp,
        }
        try:
            async with self._session_factory() as db, db.begin():
                await db.execute(_INSERT_TRANSACTION_SQL, params)
        except SQLAlchemyError as exc:
            return Err(LedgerWriteError(f"{entry.kind.value} {entry.id} for {entry.account_id}: {exc}"))
        return Ok(None)

    async def list_for_account(
        self,
        account_id: str,
        before_id: str | None,
        limit: int,
        kind: TransactionKind | None,
    ) -> Result[list[LedgerEntry], AppError]:
        try:
            async with self._session_factory() as db:
                rows = (
                    await db.execute(
                        _LIST_TRANSACTIONS_SQL,
                        {
                            "account_id": account_id,
                            "before_id": before_id,
                            "kind": kind.value if kind else None,
                            "limit": limit,
                        },
                    )
                ).fetchall()
        except SQLAlchemyError as exc:
            logger.error("Ledger query failed: account=%s error=%s", account_id, exc)
            return Err(InternalError(f"Ledger query failed for {account_id}"))
        return Ok([_row_to_entry(row) for row in rows])
