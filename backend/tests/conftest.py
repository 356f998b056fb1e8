"""
Test Configuration Module
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio

from kvstore.config import Settings
from kvstore.domain.options import StoreOptions
from kvstore.repositories.memory import MemoryStore
from kvstore.repositories.sqlalchemy import SQLAlchemyStore


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment and .env files"""
    return Settings(_env_file=None, LAZY_DELETE_CONCURRENCY=4)


@pytest.fixture
def sqlite_url(tmp_path) -> str:
    """File-backed SQLite database for testing"""
    return f"sqlite+aiosqlite:///{tmp_path / 'store.db'}"


@pytest_asyncio.fixture
async def sql_store(sqlite_url, settings) -> AsyncGenerator[SQLAlchemyStore, None]:
    """Connected SQL store"""
    store = SQLAlchemyStore(StoreOptions(addresses=[sqlite_url]), settings)
    await store.init()

    yield store

    await store.close()


@pytest_asyncio.fixture
async def memory_store(settings) -> AsyncGenerator[MemoryStore, None]:
    """Connected memory store"""
    store = MemoryStore(settings=settings)
    await store.init()

    yield store

    await store.close()


@pytest_asyncio.fixture(params=["memory", "sqlalchemy"])
async def store(request, sqlite_url, settings):
    """Every store backend that runs without external services"""
    if request.param == "memory":
        store = MemoryStore(settings=settings)
    else:
        store = SQLAlchemyStore(StoreOptions(addresses=[sqlite_url]), settings)
    await store.init()

    yield store

    await store.close()
