"""
Store Repository In-Memory Implementation

Keeps records in process memory, one insertion-ordered dict per
(database, table) namespace. Suitable for development and testing; data is
lost when the process exits.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from kvstore.common.errors import NotFoundError
from kvstore.common.resolver import (
    KeySelector,
    is_expired,
    list_selectors,
    matches,
    paginate,
    read_selectors,
    remaining_ttl,
    resolve_expiry,
)
from kvstore.common.tasks import LazyDeleter
from kvstore.common.time import utc_now
from kvstore.config import Settings
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


@dataclass
class _Entry:
    """A stored value with its resolved expiry"""

    value: bytes
    expiry: Optional[datetime] = None


class MemoryStore(Store):
    """
    Store Repository In-Memory Implementation

    Overwriting a key keeps its original position, matching the id order of
    the relational store.
    """

    name = "memory"
    fallback = Namespace(database="store", table="store")

    def __init__(
        self,
        options: Optional[StoreOptions] = None,
        settings: Optional[Settings] = None,
    ):
        super().__init__(options, settings)
        self._data: dict[Namespace, dict[str, _Entry]] = {}
        self._deleter = LazyDeleter(self.settings.LAZY_DELETE_CONCURRENCY)

    async def _configure(self) -> None:
        logger.info(f"Memory store ready: {self.namespace()}")

    def _scan(
        self, ns: Namespace, selectors: list[KeySelector], limit: int, offset: int
    ) -> list[Record]:
        """Live matching records in insertion order, paged; expired ones are purged lazily"""
        now = utc_now()
        bucket = self._data.get(ns, {})

        records = []
        for key, entry in list(bucket.items()):
            if not matches(key, selectors):
                continue
            if is_expired(entry.expiry, now):
                self._deleter.schedule(
                    (ns.database, ns.table, key),
                    lambda key=key: self._purge(ns, key, now),
                )
                continue
            records.append(
                Record(
                    key=key,
                    value=entry.value,
                    ttl=remaining_ttl(entry.expiry, now),
                    expiry=entry.expiry,
                )
            )
        return paginate(records, limit, offset)

    async def _purge(self, ns: Namespace, key: str, now: datetime) -> None:
        bucket = self._data.get(ns, {})
        entry = bucket.get(key)
        if entry is not None and is_expired(entry.expiry, now):
            del bucket[key]

    async def read(self, key: str, opts: Optional[ReadOptions] = None) -> list[Record]:
        opts = opts or ReadOptions()
        ns = self.namespace(opts.database, opts.table)

        records = self._scan(
            ns, read_selectors(key, opts.prefix, opts.suffix), opts.limit, opts.offset
        )
        if not records:
            raise NotFoundError(
                details={"key": key, "database": ns.database, "table": ns.table}
            )
        return records

    async def write(self, record: Record, opts: Optional[WriteOptions] = None) -> None:
        opts = opts or WriteOptions()
        ns = self.namespace(opts.database, opts.table)

        expiry = resolve_expiry(record, opts, utc_now())
        bucket = self._data.setdefault(ns, {})
        entry = bucket.get(record.key)
        if entry is None:
            bucket[record.key] = _Entry(value=record.value, expiry=expiry)
        else:
            entry.value = record.value
            entry.expiry = expiry

    async def delete(self, key: str, opts: Optional[DeleteOptions] = None) -> None:
        opts = opts or DeleteOptions()
        ns = self.namespace(opts.database, opts.table)
        self._data.get(ns, {}).pop(key, None)

    async def list(self, opts: Optional[ListOptions] = None) -> list[str]:
        opts = opts or ListOptions()
        ns = self.namespace(opts.database, opts.table)

        records = self._scan(
            ns, list_selectors(opts.prefix, opts.suffix), opts.limit, opts.offset
        )
        return [record.key for record in records]

    async def close(self) -> None:
        await self._deleter.drain()
        logger.info("Memory store closed")
