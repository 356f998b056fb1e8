"""
Store Repository SQLAlchemy Implementation

Stores records in one table per logical table namespace (see
``kvstore.db.models.store_table``). Each database namespace gets its own engine.
Expired rows are filtered out of every query and deleted lazily in the background.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import MetaData, Table, delete, insert, or_, select, update
from sqlalchemy.engine import URL
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from kvstore.common.errors import BackendError, NotFoundError, backend_errors
from kvstore.common.resolver import (
    KeySelector,
    list_selectors,
    page_bounds,
    read_selectors,
    remaining_ttl,
    resolve_expiry,
    sql_match_clause,
)
from kvstore.common.tasks import LazyDeleter
from kvstore.common.time import from_epoch_ms, to_epoch_ms, utc_now
from kvstore.config import Settings
from kvstore.db.models import store_table
from kvstore.db.session import (
    build_engine,
    database_url,
    default_address,
    ensure_database,
    ensure_table,
    is_sqlite,
    parse_address,
    ping,
    validate_database,
    validate_table,
)
from kvstore.domain.options import (
    DeleteOptions,
    ListOptions,
    Namespace,
    ReadOptions,
    StoreOptions,
    WriteOptions,
)
from kvstore.domain.record import Record
from kvstore.repositories.store_repo import Store

logger = logging.getLogger(__name__)

# Namespace used when neither the operation nor the store sets one
DEFAULT_DATABASE = "store"
DEFAULT_TABLE = "store"


@dataclass
class _Database:
    """Engine and session factory of one database namespace"""

    engine: AsyncEngine
    sessions: async_sessionmaker[AsyncSession]


class SQLAlchemyStore(Store):
    """
    Store Repository SQLAlchemy Implementation

    Writes are upserts: the row id is looked up by key, a missing row is
    inserted, an existing row is locked (SELECT ... FOR UPDATE) and updated.
    """

    name = "sqlalchemy"
    fallback = Namespace(database=DEFAULT_DATABASE, table=DEFAULT_TABLE)

    def __init__(
        self,
        options: Optional[StoreOptions] = None,
        settings: Optional[Settings] = None,
    ):
        super().__init__(options, settings)
        self.metadata = MetaData()
        self._url: Optional[URL] = None
        self._databases: dict[str, _Database] = {}
        self._tables: set[Namespace] = set()
        self._lock = asyncio.Lock()
        self._deleter = LazyDeleter(self.settings.LAZY_DELETE_CONCURRENCY)

    def _open(self, url: URL) -> _Database:
        engine = build_engine(url, self.settings, **self._options.context)
        return _Database(
            engine=engine,
            sessions=async_sessionmaker(
                engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            ),
        )

    async def _configure(self) -> None:
        ns = self.namespace()
        validate_database(ns.database)
        validate_table(ns.table)

        addresses = self._options.addresses or [default_address(ns.database)]
        url = parse_address(addresses[0])
        if not url.database and not is_sqlite(url):
            url = url.set(database=ns.database)
        if self._options.auth:
            url = url.set(password=self._options.password)

        with backend_errors(SQLAlchemyError, "connect", database=ns.database):
            await ensure_database(url)
            database = self._open(url)
            try:
                await ping(database.engine)
                await ensure_table(database.engine, store_table(self.metadata, ns.table))
            except SQLAlchemyError:
                await database.engine.dispose()
                raise

        await self._dispose()
        self._url = url
        self._databases = {ns.database: database}
        self._tables = {ns}
        logger.info(f"SQL store connected: {url.render_as_string(hide_password=True)}")

    async def _database(self, ns: Namespace) -> _Database:
        """Engine of the namespace's database, bootstrapping database and table on first use"""
        if self._url is None:
            raise BackendError(
                message="SQL store is not connected, call init() first",
                code="not_initialized",
            )

        database = self._databases.get(ns.database)
        if database is not None and ns in self._tables:
            return database

        async with self._lock:
            database = self._databases.get(ns.database)
            if database is None:
                validate_database(ns.database)
                url = database_url(self._url, ns.database)
                with backend_errors(SQLAlchemyError, "connect", database=ns.database):
                    await ensure_database(url)
                database = self._open(url)
                self._databases[ns.database] = database

            if ns not in self._tables:
                validate_table(ns.table)
                with backend_errors(
                    SQLAlchemyError, "create table", database=ns.database, table=ns.table
                ):
                    await ensure_table(database.engine, store_table(self.metadata, ns.table))
                self._tables.add(ns)

        return database

    async def _scan(
        self,
        ns: Namespace,
        selectors: list[KeySelector],
        limit: int,
        offset: int,
        operation: str,
        **details: Any,
    ) -> list[Record]:
        """
        Query live rows matching ``selectors`` in id order and page them

        Expired matching rows are excluded in SQL, so they never take a page
        slot, and are scheduled for lazy deletion.
        """
        database = await self._database(ns)
        table = store_table(self.metadata, ns.table)

        now = utc_now()
        now_ms = to_epoch_ms(now)
        match = sql_match_clause(table.c.key, selectors)

        stmt = (
            select(table.c.key, table.c.value, table.c.expiry)
            .where(match, or_(table.c.expiry == 0, table.c.expiry > now_ms))
            .order_by(table.c.id)
        )
        skip, take = page_bounds(limit, offset)
        if take is not None:
            stmt = stmt.limit(take).offset(skip)

        expired_stmt = select(table.c.key).where(
            match, table.c.expiry != 0, table.c.expiry <= now_ms
        )

        with backend_errors(SQLAlchemyError, operation, table=ns.table, **details):
            async with database.sessions() as session:
                rows = (await session.execute(stmt)).all()
                expired_keys = (await session.scalars(expired_stmt)).all()

        for key in expired_keys:
            self._deleter.schedule(
                (ns.database, ns.table, key),
                lambda key=key: self._delete_expired(database, table, key, now_ms),
            )

        records = []
        for row in rows:
            expiry = from_epoch_ms(row.expiry)
            records.append(
                Record(
                    key=row.key,
                    value=bytes(row.value),
                    ttl=remaining_ttl(expiry, now),
                    expiry=expiry,
                )
            )
        return records

    @staticmethod
    async def _delete_expired(
        database: _Database, table: Table, key: str, now_ms: int
    ) -> None:
        # Rows rewritten since the scan no longer satisfy the expiry condition
        async with database.sessions() as session:
            await session.execute(
                delete(table).where(
                    table.c.key == key,
                    table.c.expiry != 0,
                    table.c.expiry <= now_ms,
                )
            )
            await session.commit()

    async def read(self, key: str, opts: Optional[ReadOptions] = None) -> list[Record]:
        opts = opts or ReadOptions()
        ns = self.namespace(opts.database, opts.table)

        records = await self._scan(
            ns,
            read_selectors(key, opts.prefix, opts.suffix),
            opts.limit,
            opts.offset,
            "read",
            key=key,
        )
        if not records:
            raise NotFoundError(
                details={"key": key, "database": ns.database, "table": ns.table}
            )
        return records

    async def write(self, record: Record, opts: Optional[WriteOptions] = None) -> None:
        opts = opts or WriteOptions()
        ns = self.namespace(opts.database, opts.table)
        database = await self._database(ns)
        table = store_table(self.metadata, ns.table)

        expiry_ms = to_epoch_ms(resolve_expiry(record, opts, utc_now()))
        values = {"value": record.value, "expiry": expiry_ms}

        with backend_errors(SQLAlchemyError, "write", key=record.key, table=ns.table):
            async with database.sessions() as session:
                row_id = await session.scalar(
                    select(table.c.id).where(table.c.key == record.key)
                )

                if row_id is None:
                    try:
                        await session.execute(insert(table).values(key=record.key, **values))
                        await session.commit()
                        return
                    except IntegrityError:
                        # A concurrent writer inserted the key first
                        await session.rollback()
                        row_id = await session.scalar(
                            select(table.c.id).where(table.c.key == record.key)
                        )
                        if row_id is None:
                            # ...and deleted it again before the re-select
                            await session.execute(
                                insert(table).values(key=record.key, **values)
                            )
                            await session.commit()
                            return

                # Serialize concurrent writers of the same key on the row lock
                await session.execute(
                    select(table.c.id).where(table.c.id == row_id).with_for_update()
                )
                await session.execute(
                    update(table).where(table.c.id == row_id).values(**values)
                )
                await session.commit()

    async def delete(self, key: str, opts: Optional[DeleteOptions] = None) -> None:
        opts = opts or DeleteOptions()
        ns = self.namespace(opts.database, opts.table)
        database = await self._database(ns)
        table = store_table(self.metadata, ns.table)

        with backend_errors(SQLAlchemyError, "delete", key=key, table=ns.table):
            async with database.sessions() as session:
                await session.execute(delete(table).where(table.c.key == key))
                await session.commit()

    async def list(self, opts: Optional[ListOptions] = None) -> list[str]:
        opts = opts or ListOptions()
        ns = self.namespace(opts.database, opts.table)

        records = await self._scan(
            ns,
            list_selectors(opts.prefix, opts.suffix),
            opts.limit,
            opts.offset,
            "list",
            database=ns.database,
        )
        return [record.key for record in records]

    async def _dispose(self) -> None:
        await self._deleter.drain()
        for database in self._databases.values():
            await database.engine.dispose()
        self._databases = {}
        self._tables = set()

    async def close(self) -> None:
        if self._url is None:
            return
        await self._dispose()
        self._url = None
        logger.info("SQL store closed")
