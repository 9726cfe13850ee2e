"""Wires repositories, cache, policy and services from Settings.

One AppContainer lives on ``app.state.container`` for the process lifetime;
routers reach it through ``get_container``.
"""

import logging
from dataclasses import dataclass

from fastapi import Request

from config.settings import Settings
from src.ic_account.application.ledger_writer import CreditLedgerWriter
from src.ic_account.application.service import CreditBalanceService
from src.ic_account.domain.cache import BalanceCacheProtocol
from src.ic_account.domain.policy import CreditPolicy, select_credit_policy
from src.ic_account.domain.repository import AccountRepositoryProtocol, LedgerRepositoryProtocol
from src.ic_account.infrastructure.cache import InMemoryBalanceCache, RedisBalanceCache
from src.ic_account.infrastructure.memory import InMemoryAccountRepository, InMemoryLedgerRepository
from src.ic_account.infrastructure.persistence import SqlAccountRepository, SqlLedgerRepository
from src.ic_common.database import dispose_engine, get_session_factory
from src.ic_common.redis_client import close_redis, get_redis, redis_available
from src.ic_generation.application.saga import GenerationSaga
from src.ic_generation.domain.repository import (
    ArtifactRepositoryProtocol,
    GeneratorProviderProtocol,
)
from src.ic_generation.infrastructure.persistence import (
    InMemoryArtifactRepository,
    SqlArtifactRepository,
)
from src.ic_generation.infrastructure.providers import (
    EchoGeneratorProvider,
    HttpGeneratorProvider,
)

logger = logging.getLogger(__name__)


@dataclass
class AppContainer:
    accounts: AccountRepositoryProtocol
    ledger: LedgerRepositoryProtocol
    cache: BalanceCacheProtocol
    policy: CreditPolicy
    artifacts: ArtifactRepositoryProtocol
    generator: GeneratorProviderProtocol
    balance_service: CreditBalanceService
    saga: GenerationSaga
    uses_database: bool = False
    uses_redis: bool = False

    async def startup(self) -> None:
        if isinstance(self.cache, InMemoryBalanceCache):
            self.cache.start_cleanup()
        if self.uses_redis and not await redis_available():
            logger.warning("Redis unreachable at startup: balance cache calls will fail until it recovers")

    async def shutdown(self) -> None:
        if isinstance(self.cache, InMemoryBalanceCache):
            await self.cache.stop_cleanup()
        if isinstance(self.generator, HttpGeneratorProvider):
            await self.generator.aclose()
        if self.uses_redis:
            await close_redis()
        if self.uses_database:
            await dispose_engine()


def assemble(
    accounts: AccountRepositoryProtocol,
    ledger: LedgerRepositoryProtocol,
    cache: BalanceCacheProtocol,
    policy: CreditPolicy,
    artifacts: ArtifactRepositoryProtocol,
    generator: GeneratorProviderProtocol,
    *,
    balance_ttl_seconds: float = 60,
    default_credits: int | None = None,
    generator_timeout_seconds: float | None = 60.0,
) -> AppContainer:
    """Build services over already-constructed adapters (tests use this directly)."""
    writer = CreditLedgerWriter(accounts, ledger, cache)
    return AppContainer(
        accounts=accounts,
        ledger=ledger,
        cache=cache,
        policy=policy,
        artifacts=artifacts,
        generator=generator,
        balance_service=CreditBalanceService(
            accounts,
            ledger,
            cache,
            policy,
            writer=writer,
            balance_ttl_seconds=balance_ttl_seconds,
            default_credits=default_credits,
        ),
        saga=GenerationSaga(
            accounts,
            writer,
            generator,
            artifacts,
            policy,
            generator_timeout_seconds=generator_timeout_seconds,
        ),
    )


async def build_container(settings: Settings) -> AppContainer:
    policy = select_credit_policy(settings.UNMETERED_MODE, settings.CREDIT_WARNING_THRESHOLD)

    accounts: AccountRepositoryProtocol
    ledger: LedgerRepositoryProtocol
    artifacts: ArtifactRepositoryProtocol
    generator: GeneratorProviderProtocol
    if settings.STORAGE_BACKEND == "postgres":
        session_factory = get_session_factory()
        accounts = SqlAccountRepository(session_factory)
        ledger = SqlLedgerRepository(session_factory)
        artifacts = SqlArtifactRepository(session_factory)
        generator = HttpGeneratorProvider(
            settings.GENERATOR_URL,
            api_key=settings.GENERATOR_API_KEY,
            timeout=settings.GENERATOR_TIMEOUT_SECONDS,
        )
    else:
        accounts = InMemoryAccountRepository()
        ledger = InMemoryLedgerRepository()
        artifacts = InMemoryArtifactRepository()
        generator = EchoGeneratorProvider()

    cache: BalanceCacheProtocol
    if settings.CACHE_BACKEND == "redis":
        cache = RedisBalanceCache(await get_redis())
    else:
        cache = InMemoryBalanceCache(cleanup_interval_seconds=settings.CACHE_CLEANUP_INTERVAL_SECONDS)

    container = assemble(
        accounts,
        ledger,
        cache,
        policy,
        artifacts,
        generator,
        balance_ttl_seconds=settings.BALANCE_CACHE_TTL_SECONDS,
        default_credits=settings.DEFAULT_CREDITS,
        generator_timeout_seconds=settings.GENERATOR_TIMEOUT_SECONDS,
    )
    container.uses_database = settings.STORAGE_BACKEND == "postgres"
    container.uses_redis = settings.CACHE_BACKEND == "redis"
    logger.info(
        "Container ready: storage=%s cache=%s metered=%s",
        settings.STORAGE_BACKEND, settings.CACHE_BACKEND, policy.metered,
    )
    return container


def get_container(request: Request) -> AppContainer:
    return request.app.state.container
