"""Integration-test fixtures.

The app is built over in-memory adapters, so these tests need no PostgreSQL,
Redis or generator service. Each test gets a fresh container.
"""

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.container import AppContainer
from src.main import create_app
from tests.fakes import build_memory_container


@pytest_asyncio.fixture
async def container() -> AppContainer:
    return build_memory_container()


@pytest_asyncio.fixture
async def client(container: AppContainer) -> AsyncClient:
    """Async HTTP client bound to an app that uses ``container``."""
    transport = ASGITransport(app=create_app(container))
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
