"""
Store Repository Redis Implementation

Stores each record as a plain Redis string under ``table + key``.
Expiration uses Redis native TTL, so expired keys are never returned by the
engine and no lazy deletes are needed. Prefix/suffix matching uses SCAN with
glob patterns.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional, Union

from redis.asyncio import Redis
from redis.exceptions import RedisError

from kvstore.common.errors import BackendError, NotFoundError, backend_errors
from kvstore.common.resolver import (
    KeySelector,
    list_selectors,
    paginate,
    read_selectors,
    redis_pattern,
    resolve_expiry,
)
from kvstore.common.time import utc_now
from kvstore.config import Settings
from kvstore.db.redis import DEFAULT_ADDRESS, create_redis_client
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

# PTTL replies for keys without expiry and for missing keys
_NO_EXPIRY = -1
_MISSING = -2


class RedisStore(Store):
    """
    Store Repository Redis Implementation

    The table namespace is a key prefix; the database namespace is the Redis
    logical database chosen by the address.
    """

    name = "redis"
    fallback = Namespace(database="", table="")

    def __init__(
        self,
        options: Optional[StoreOptions] = None,
        settings: Optional[Settings] = None,
        client: Optional[Redis] = None,
    ):
        """
        Initialize Repository

        Args:
            options: Store options
            settings: Store settings
            client: Already connected client, used until the next ``init()``
        """
        super().__init__(options, settings)
        self.client = client

    async def _configure(self) -> None:
        addresses = self._options.addresses or [DEFAULT_ADDRESS]
        client = create_redis_client(
            addresses[0],
            auth=self._options.auth,
            password=self._options.password,
            **self._options.context,
        )

        try:
            with backend_errors(RedisError, "connect", address=addresses[0]):
                await client.ping()
        except BackendError:
            await client.aclose()
            raise

        if self.client is not None:
            await self.client.aclose()
        self.client = client
        logger.info(f"Redis store connected: {addresses[0]}")

    def _require_client(self) -> Redis:
        if self.client is None:
            raise BackendError(
                message="Redis store is not connected, call init() first",
                code="not_initialized",
            )
        return self.client

    @staticmethod
    def _decode(raw: Union[bytes, str]) -> str:
        return raw.decode("utf-8") if isinstance(raw, bytes) else raw

    async def _collect(self, table: str, selectors: list[KeySelector]) -> list[str]:
        """Storage keys matched by any selector, deduplicated and sorted"""
        client = self._require_client()
        keys: set[str] = set()
        for selector in selectors:
            pattern = redis_pattern(table, selector)
            if selector.exact:
                keys.add(pattern)
                continue
            async for raw in client.scan_iter(match=pattern):
                keys.add(self._decode(raw))
        return sorted(keys)

    async def read(self, key: str, opts: Optional[ReadOptions] = None) -> list[Record]:
        """Read live records, reporting the remaining native TTL"""
        opts = opts or ReadOptions()
        table = self.namespace(opts.database, opts.table).table
        client = self._require_client()

        records: list[Record] = []
        with backend_errors((RedisError, UnicodeDecodeError), "read", key=key, table=table):
            storage_keys = await self._collect(
                table, read_selectors(key, opts.prefix, opts.suffix)
            )
            for storage_key in storage_keys:
                value = await client.get(storage_key)
                if value is None:
                    continue
                ttl_ms = await client.pttl(storage_key)
                if ttl_ms == _MISSING:
                    continue

                ttl = timedelta(milliseconds=ttl_ms) if ttl_ms > 0 else timedelta(0)
                records.append(
                    Record(
                        key=storage_key[len(table):],
                        value=value,
                        ttl=ttl,
                        expiry=utc_now() + ttl if ttl_ms > 0 else None,
                    )
                )

        records = paginate(records, opts.limit, opts.offset)
        if not records:
            raise NotFoundError(details={"key": key, "table": table})
        return records

    async def write(self, record: Record, opts: Optional[WriteOptions] = None) -> None:
        """Upsert with SET, passing the resolved expiry as PX"""
        opts = opts or WriteOptions()
        table = self.namespace(opts.database, opts.table).table
        client = self._require_client()

        now = utc_now()
        expiry = resolve_expiry(record, opts, now)
        storage_key = f"{table}{record.key}"

        with backend_errors(RedisError, "write", key=record.key, table=table):
            if expiry is None:
                await client.set(storage_key, record.value)
                return

            px = (expiry - now) // timedelta(milliseconds=1)
            if px <= 0:
                # Already expired: the previous value must not stay readable
                await client.delete(storage_key)
                return
            await client.set(storage_key, record.value, px=px)

    async def delete(self, key: str, opts: Optional[DeleteOptions] = None) -> None:
        opts = opts or DeleteOptions()
        table = self.namespace(opts.database, opts.table).table
        client = self._require_client()

        with backend_errors(RedisError, "delete", key=key, table=table):
            await client.delete(f"{table}{key}")

    async def list(self, opts: Optional[ListOptions] = None) -> list[str]:
        """List keys by SCAN pattern, sorted for stable pagination"""
        opts = opts or ListOptions()
        table = self.namespace(opts.database, opts.table).table

        with backend_errors((RedisError, UnicodeDecodeError), "list", table=table):
            storage_keys = await self._collect(
                table, list_selectors(opts.prefix, opts.suffix)
            )

        keys = [storage_key[len(table):] for storage_key in storage_keys]
        return paginate(keys, opts.limit, opts.offset)

    async def close(self) -> None:
        if self.client is None:
            return
        await self.client.aclose()
        self.client = None
        logger.info("Redis store closed")
