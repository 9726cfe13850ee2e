"""Shared test fixtures: in-memory stores wired the way the app wires them."""

import pytest

from src.ic_account.application.ledger_writer import CreditLedgerWriter
from src.ic_account.application.service import CreditBalanceService
from src.ic_account.domain.models import Account
from src.ic_account.domain.policy import MeteredCreditPolicy, UnmeteredCreditPolicy
from src.ic_generation.application.saga import GenerationSaga
from src.ic_generation.infrastructure.persistence import InMemoryArtifactRepository
from tests.fakes import (
    FakeClock,
    RecordingAccounts,
    RecordingCache,
    RecordingLedger,
    ScriptedGenerator,
)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def accounts() -> RecordingAccounts:
    return RecordingAccounts([Account(id="u1", credits=3), Account(id="u2", credits=0)])


@pytest.fixture
def ledger() -> RecordingLedger:
    return RecordingLedger()


@pytest.fixture
def cache(clock: FakeClock) -> RecordingCache:
    return RecordingCache(clock=clock)


@pytest.fixture
def writer(
    accounts: RecordingAccounts, ledger: RecordingLedger, cache: RecordingCache
) -> CreditLedgerWriter:
    return CreditLedgerWriter(accounts, ledger, cache)


@pytest.fixture
def metered() -> MeteredCreditPolicy:
    return MeteredCreditPolicy()


@pytest.fixture
def unmetered() -> UnmeteredCreditPolicy:
    return UnmeteredCreditPolicy()


@pytest.fixture
def generator() -> ScriptedGenerator:
    return ScriptedGenerator()


@pytest.fixture
def artifacts() -> InMemoryArtifactRepository:
    return InMemoryArtifactRepository()


@pytest.fixture
def balance_service(
    accounts: RecordingAccounts,
    ledger: RecordingLedger,
    cache: RecordingCache,
    metered: MeteredCreditPolicy,
    writer: CreditLedgerWriter,
) -> CreditBalanceService:
    return CreditBalanceService(accounts, ledger, cache, metered, writer=writer)


@pytest.fixture
def saga(
    accounts: RecordingAccounts,
    writer: CreditLedgerWriter,
    generator: ScriptedGenerator,
    artifacts: InMemoryArtifactRepository,
    metered: MeteredCreditPolicy,
) -> GenerationSaga:
    return GenerationSaga(accounts, writer, generator, artifacts, metered)
