"""
Store Factory Module

Creates store backends by short name.
"""

import logging
from typing import Any, Optional

from kvstore.common.errors import ConfigurationError
from kvstore.config import Settings, get_settings
from kvstore.domain.options import StoreOptions
from kvstore.logging_config import setup_logging
from kvstore.repositories.memory import MemoryStore
from kvstore.repositories.redis import RedisStore
from kvstore.repositories.sqlalchemy import SQLAlchemyStore
from kvstore.repositories.store_repo import Store

logger = logging.getLogger(__name__)

# Backend registry
_backends: dict[str, type[Store]] = {
    MemoryStore.name: MemoryStore,
    RedisStore.name: RedisStore,
    SQLAlchemyStore.name: SQLAlchemyStore,
}


def get_store_class(backend: str) -> type[Store]:
    """
    Get the store class registered for a backend name

    Args:
        backend: "memory", "redis" or "sqlalchemy" (case-insensitive)

    Raises:
        ConfigurationError: Unsupported backend
    """
    backend = backend.lower()
    if backend not in _backends:
        raise ConfigurationError(
            message=f"Unsupported store backend: {backend}",
            details={"backend": backend, "supported": sorted(_backends)},
        )
    return _backends[backend]


async def create_store(
    backend: str,
    settings: Optional[Settings] = None,
    **options: Any,
) -> Store:
    """
    Create and connect a store

    Args:
        backend: Backend name
        settings: Store settings, defaults to the global settings
        **options: StoreOptions fields

    Returns:
        Store: Connected store

    Example:
        store = await create_store("redis", addresses=["localhost:6379"], table="sessions:")
    """
    store_class = get_store_class(backend)
    store = store_class(settings=settings)
    await store.init(**options)
    return store


async def create_store_from_settings(
    settings: Optional[Settings] = None,
    configure_logging: bool = True,
) -> Store:
    """
    Create and connect the store described by settings (STORE_* variables)

    This is the application entry point: unless ``configure_logging`` is off,
    it also installs the console logging setup (see ``setup_logging``).
    """
    settings = settings or get_settings()
    if configure_logging:
        setup_logging(settings)

    options = StoreOptions(
        addresses=settings.store_addresses,
        database=settings.STORE_DATABASE,
        table=settings.STORE_TABLE,
        auth=settings.STORE_AUTH,
        password=settings.STORE_PASSWORD,
    )
    store = get_store_class(settings.STORE_BACKEND)(options=options, settings=settings)
    await store.init()
    logger.info(f"{settings.APP_NAME} started with the {store} store")
    return store
