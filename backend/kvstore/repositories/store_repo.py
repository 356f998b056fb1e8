"""
Store Repository Interface

Defines the contract every store backend satisfies identically: callers read,
write, list and delete byte records addressed by string keys within a
(database, table) namespace, with per-record expiration.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from kvstore.common.errors import ConfigurationError
from kvstore.config import Settings, get_settings
from kvstore.domain.options import (
    DeleteOptions,
    ListOptions,
    Namespace,
    ReadOptions,
    StoreOptions,
    WriteOptions,
    resolve_namespace,
)
from kvstore.domain.record import Record


class Store(ABC):
    """
    Store Interface

    A store is created with its options and connects on ``init()``.
    It can be used as an async context manager, which closes it on exit.
    """

    # Short backend name returned by str(store)
    name: str = "store"
    # Namespace used when neither the operation nor the store sets one
    fallback: Namespace = Namespace(database="", table="")

    def __init__(
        self,
        options: Optional[StoreOptions] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize Store

        Args:
            options: Store options, defaults to empty options
            settings: Store settings, defaults to the global settings
        """
        self._options = options or StoreOptions()
        self.settings = settings or get_settings()

    def __str__(self) -> str:
        return self.name

    @property
    def options(self) -> StoreOptions:
        """Snapshot of the current store options"""
        return self._options.model_copy()

    def namespace(self, database: str = "", table: str = "") -> Namespace:
        """Resolve an operation's namespace against store options and fallback"""
        return resolve_namespace(database, table, self._options, self.fallback)

    async def init(self, **changes: Any) -> None:
        """
        Apply option changes and (re)connect

        Safe to call repeatedly to reconfigure a store.

        Args:
            **changes: StoreOptions fields to replace, e.g. ``table="sessions"``

        Raises:
            ConfigurationError: Invalid options or namespace
            BackendError: Backend cannot be reached
        """
        if changes:
            try:
                self._options = StoreOptions.model_validate(
                    {**self._options.model_dump(), **changes}
                )
            except PydanticValidationError as e:
                raise ConfigurationError(
                    message=f"Invalid store options: {str(e)}",
                    details={"fields": sorted(changes)},
                ) from e
        await self._configure()

    async def __aenter__(self) -> "Store":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @abstractmethod
    async def _configure(self) -> None:
        """Connect to the backend using the current options"""
        pass

    @abstractmethod
    async def read(self, key: str, opts: Optional[ReadOptions] = None) -> list[Record]:
        """
        Read records

        Exact match on ``key`` unless ``opts.prefix``/``opts.suffix`` ask for a
        pattern match (both flags return the union). Expired records are never
        returned and do not count toward limit/offset.

        Args:
            key: The key (or key prefix/suffix) to look up
            opts: Read options

        Returns:
            list[Record]: Live matching records

        Raises:
            NotFoundError: No live record matches
            BackendError: Engine failure
        """
        pass

    @abstractmethod
    async def write(self, record: Record, opts: Optional[WriteOptions] = None) -> None:
        """
        Upsert a record

        The record's expiry is resolved from the record and ``opts`` (see
        ``kvstore.common.resolver.resolve_expiry``). The record itself is not modified.

        Args:
            record: Record to write
            opts: Write options

        Raises:
            BackendError: Engine failure
        """
        pass

    @abstractmethod
    async def delete(self, key: str, opts: Optional[DeleteOptions] = None) -> None:
        """
        Delete the record stored under exactly ``key``

        Deleting a missing key is not an error.

        Raises:
            BackendError: Engine failure
        """
        pass

    @abstractmethod
    async def list(self, opts: Optional[ListOptions] = None) -> list[str]:
        """
        List keys

        Args:
            opts: List options; empty options list every key in the namespace

        Returns:
            list[str]: Live matching keys, without the namespace

        Raises:
            BackendError: Engine failure
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release backend connections; the store must not be used afterwards"""
        pass
