"""Unit tests for the SQL repositories using a MagicMock AsyncSession."""

import json
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

from sqlalchemy.exc import IntegrityError, OperationalError

from src.ic_account.domain.models import Account, LedgerEntry
from src.ic_account.infrastructure.persistence import SqlAccountRepository, SqlLedgerRepository
from src.ic_common.enums import OperationKind, TransactionKind
from src.ic_common.errors import (
    AccountNotFoundError,
    ArtifactNotFoundError,
    BalanceUpdateError,
    InsufficientCreditsError,
    LedgerWriteError,
    PersistenceError,
)
from src.ic_common.result import Err, Ok
from src.ic_generation.domain.models import Artifact
from src.ic_generation.infrastructure.persistence import SqlArtifactRepository


def _session_factory(db: MagicMock) -> MagicMock:
    """Mimic async_sessionmaker: ``async with factory() as db, db.begin():``."""

    @asynccontextmanager
    async def _session():  # type: ignore[no-untyped-def]
        yield db

    @asynccontextmanager
    async def _begin():  # type: ignore[no-untyped-def]
        yield None

    db.begin = MagicMock(side_effect=lambda: _begin())
    return MagicMock(side_effect=lambda: _session())


def _result(row: object = None, rows: list[object] | None = None) -> MagicMock:
    result = MagicMock()
    result.fetchone.return_value = row
    result.fetchall.return_value = rows or []
    return result


def _account_row(credits: int = 3) -> MagicMock:
    row = MagicMock()
    row.id = "u1"
    row.credits = credits
    row.tier = "free"
    row.version = 4
    row.created_at = datetime(2026, 1, 1)
    row.updated_at = datetime.now(UTC)
    return row


def _entry_row(entry_id: str, amount: int, kind: str, meta: object) -> MagicMock:
    row = MagicMock()
    row.id = entry_id
    row.account_id = "u1"
    row.amount = amount
    row.kind = kind
    row.description = "Generation: PRD"
    row.meta = meta
    row.timestamp = datetime.now(UTC)
    return row


class TestSqlAccountRepository:
    async def test_find_by_id(self) -> None:
        db = MagicMock()
        db.execute = AsyncMock(return_value=_result(_account_row()))
        repo = SqlAccountRepository(_session_factory(db))

        account = (await repo.find_by_id("u1")).unwrap()

        assert account.credits == 3
        assert account.version == 4
        assert account.created_at.tzinfo is not None

    async def test_find_missing(self) -> None:
        db = MagicMock()
        db.execute = AsyncMock(return_value=_result(None))
        result = await SqlAccountRepository(_session_factory(db)).find_by_id("ghost")
        assert isinstance(result, Err)
        assert isinstance(result.error, AccountNotFoundError)

    async def test_create_existing_returns_stored_row(self) -> None:
        db = MagicMock()
        db.execute = AsyncMock(side_effect=[_result(None), _result(_account_row(credits=1))])
        repo = SqlAccountRepository(_session_factory(db))

        account = (await repo.create(Account.open("u1"))).unwrap()

        assert account.credits == 1
        assert db.execute.await_count == 2

    async def test_adjust_balance_is_relative(self) -> None:
        db = MagicMock()
        db.execute = AsyncMock(return_value=_result(_account_row(credits=2)))

        result = await SqlAccountRepository(_session_factory(db)).adjust_balance("u1", -1)

        assert result == Ok(2)
        statement, params = db.execute.await_args.args
        assert params == {"id": "u1", "delta": -1}
        assert "credits = credits + :delta" in str(statement)
        assert "credits + :delta >= 0" in str(statement)

    async def test_adjust_missing_account(self) -> None:
        db = MagicMock()
        db.execute = AsyncMock(side_effect=[_result(None), _result(None)])
        result = await SqlAccountRepository(_session_factory(db)).adjust_balance("ghost", -1)
        assert isinstance(result.error, AccountNotFoundError)  # type: ignore[union-attr]

    async def test_adjust_below_zero_reports_current_balance(self) -> None:
        # A concurrent debit already took the last credit: the guarded UPDATE matches no row
        db = MagicMock()
        db.execute = AsyncMock(side_effect=[_result(None), _result(_account_row(credits=0))])

        result = await SqlAccountRepository(_session_factory(db)).adjust_balance("u1", -1)

        assert isinstance(result, Err)
        assert isinstance(result.error, InsufficientCreditsError)
        assert (result.error.required, result.error.available) == (1, 0)
        assert db.execute.await_count == 2

    async def test_adjust_check_violation(self) -> None:
        db = MagicMock()
        db.execute = AsyncMock(side_effect=IntegrityError("UPDATE", {}, Exception("ck_accounts_credits_gte_0")))
        result = await SqlAccountRepository(_session_factory(db)).adjust_balance("u1", -1)
        assert isinstance(result.error, BalanceUpdateError)  # type: ignore[union-attr]


class TestSqlLedgerRepository:
    async def test_record_serializes_metadata(self) -> None:
        db = MagicMock()
        db.execute = AsyncMock(return_value=_result())
        entry = LedgerEntry.create("u1", -1, TransactionKind.DEDUCT, "Generation: PRD", {"saga_id": "s1"})

        result = await SqlLedgerRepository(_session_factory(db)).record(entry)

        assert result == Ok(None)
        params = db.execute.await_args.args[1]
        assert params["kind"] == "DEDUCT"
        assert params["amount"] == -1
        assert json.loads(params["metadata"]) == {"saga_id": "s1"}

    async def test_record_failure(self) -> None:
        db = MagicMock()
        db.execute = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("gone")))
        entry = LedgerEntry.create("u1", 1, TransactionKind.REFUND, "Refund")

        result = await SqlLedgerRepository(_session_factory(db)).record(entry)

        assert isinstance(result, Err)
        assert isinstance(result.error, LedgerWriteError)

    async def test_list_for_account(self) -> None:
        db = MagicMock()
        rows = [
            _entry_row("txn_00000000000000000002", 1, "REFUND", '{"saga_id": "s1"}'),
            _entry_row("txn_00000000000000000001", -1, "DEDUCT", {"saga_id": "s1"}),
        ]
        db.execute = AsyncMock(return_value=_result(rows=rows))

        entries = (
            await SqlLedgerRepository(_session_factory(db)).list_for_account(
                "u1", None, 10, TransactionKind.DEDUCT
            )
        ).unwrap()

        assert [e.kind for e in entries] == [TransactionKind.REFUND, TransactionKind.DEDUCT]
        assert entries[0].metadata["saga_id"] == "s1"
        params = db.execute.await_args.args[1]
        assert params == {"account_id": "u1", "before_id": None, "kind": "DEDUCT", "limit": 10}


class TestSqlArtifactRepository:
    async def test_save_wraps_markdown(self) -> None:
        db = MagicMock()
        db.execute = AsyncMock(return_value=_result())
        artifact = Artifact.create("u1", OperationKind.PRD, "# Doc", "saga_1")

        result = await SqlArtifactRepository(_session_factory(db)).save(artifact)

        assert result == Ok(artifact)
        params = db.execute.await_args.args[1]
        assert json.loads(params["content"]) == {"markdown": "# Doc"}

    async def test_save_failure(self) -> None:
        db = MagicMock()
        db.execute = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("gone")))
        artifact = Artifact.create("u1", OperationKind.PRD, "# Doc", "saga_1")

        result = await SqlArtifactRepository(_session_factory(db)).save(artifact)

        assert isinstance(result.error, PersistenceError)  # type: ignore[union-attr]

    async def test_find_unwraps_markdown(self) -> None:
        row = MagicMock()
        row.id = "art_1"
        row.account_id = "u1"
        row.operation = "prd"
        row.content = {"markdown": "# Doc"}
        row.saga_id = "saga_1"
        row.created_at = datetime.now(UTC)
        db = MagicMock()
        db.execute = AsyncMock(return_value=_result(row))

        artifact = (await SqlArtifactRepository(_session_factory(db)).find_by_id("art_1")).unwrap()

        assert artifact.content == "# Doc"
        assert artifact.operation is OperationKind.PRD

    async def test_find_missing(self) -> None:
        db = MagicMock()
        db.execute = AsyncMock(return_value=_result(None))
        result = await SqlArtifactRepository(_session_factory(db)).find_by_id("art_x")
        assert isinstance(result.error, ArtifactNotFoundError)  # type: ignore[union-attr]
