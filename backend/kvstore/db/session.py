"""
Database Engine Management Module

Builds async SQLAlchemy engines for the relational store, supporting SQLite
(default), MySQL and PostgreSQL, and bootstraps databases and store tables.
"""

import logging
import re
from pathlib import Path
from typing import Any

from sqlalchemy import Table, text
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from kvstore.common.errors import ConfigurationError
from kvstore.config import Settings

logger = logging.getLogger(__name__)

_TABLE_NAME = re.compile(r"^[A-Za-z0-9_]+$")


def default_address(database: str) -> str:
    """SQLite file named after the database, in the working directory"""
    return f"sqlite+aiosqlite:///./{database}.db"


def validate_database(database: str) -> None:
    """Database names may only contain letters"""
    if not database or not all(ch.isalpha() for ch in database):
        raise ConfigurationError(
            message="store.namespace must only contain letters",
            details={"database": database},
        )


def validate_table(table: str) -> None:
    """Table names may only contain letters, digits and underscores"""
    if not _TABLE_NAME.match(table):
        raise ConfigurationError(
            message="store.table must only contain letters, digits and underscores",
            details={"table": table},
        )


def parse_address(address: str) -> URL:
    """
    Parse a SQLAlchemy connection URL

    Raises:
        ConfigurationError: Malformed address
    """
    try:
        return make_url(address)
    except ArgumentError as e:
        raise ConfigurationError(
            message=f"Invalid database address: {str(e)}",
            details={"address": address},
        ) from e


def is_sqlite(url: URL) -> bool:
    return url.get_backend_name() == "sqlite"


def database_url(base: URL, database: str) -> URL:
    """
    Derive the URL of another database on the same server

    SQLite databases become sibling files named ``<database>.db``; an in-memory
    SQLite URL stays in memory (a new engine is a new database).
    """
    if is_sqlite(base):
        if not base.database or base.database == ":memory:":
            return base
        return base.set(database=str(Path(base.database).with_name(f"{database}.db")))
    return base.set(database=database)


def _create_engine(url: URL, **options: Any) -> AsyncEngine:
    """
    create_async_engine that reports unusable dialects and drivers

    Raises:
        ConfigurationError: Unknown dialect or driver package not installed
    """
    try:
        return create_async_engine(url, **options)
    except (ArgumentError, ImportError) as e:
        raise ConfigurationError(
            message=f"Unsupported database driver: {str(e)}",
            details={"driver": url.drivername},
        ) from e


def build_engine(url: URL, settings: Settings, **kwargs: Any) -> AsyncEngine:
    """
    Create an async engine

    Non-SQLite engines get a bounded pool that recycles idle connections.

    Args:
        url: Connection URL
        settings: Store settings (pool sizing, debug echo)
        **kwargs: Extra create_async_engine arguments, override the defaults
    """
    options: dict[str, Any] = {"echo": settings.DEBUG}
    if is_sqlite(url):
        options["connect_args"] = {"check_same_thread": False}
    else:
        options.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_recycle=settings.DB_POOL_RECYCLE_SECONDS,
            pool_pre_ping=True,
        )
    options.update(kwargs)
    return _create_engine(url, **options)


async def ensure_database(url: URL) -> None:
    """
    Create the database of ``url`` if the server supports it

    Only MySQL is bootstrapped; other servers must already host the database
    and SQLite creates its file on connect. The name has been validated to
    letters only, so it is safe to inline.
    """
    if url.get_backend_name() != "mysql" or not url.database:
        return

    server = _create_engine(url.set(database=None), poolclass=NullPool)
    try:
        async with server.begin() as conn:
            await conn.execute(
                text(
                    f"CREATE DATABASE IF NOT EXISTS `{url.database}` "
                    "DEFAULT CHARACTER SET utf8mb4 DEFAULT COLLATE utf8mb4_general_ci"
                )
            )
    finally:
        await server.dispose()


async def ping(engine: AsyncEngine) -> None:
    """Verify connectivity"""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def ensure_table(engine: AsyncEngine, table: Table) -> None:
    """Create ``table`` unless it exists"""
    async with engine.begin() as conn:
        await conn.run_sync(table.create, checkfirst=True)
    logger.debug(f"Store table ready: {table.name}")
