"""
kvstore

Key/value record storage with interchangeable memory, Redis and SQL backends.
"""

from kvstore.common.errors import (
    BackendError,
    ConfigurationError,
    NotFoundError,
    StoreError,
)
from kvstore.domain import (
    DeleteOptions,
    ListOptions,
    ReadOptions,
    Record,
    StoreOptions,
    WriteOptions,
)
from kvstore.factory import create_store, create_store_from_settings, get_store_class
from kvstore.repositories import MemoryStore, RedisStore, SQLAlchemyStore, Store

__version__ = "0.1.0"

__all__ = [
    "BackendError",
    "ConfigurationError",
    "DeleteOptions",
    "ListOptions",
    "MemoryStore",
    "NotFoundError",
    "ReadOptions",
    "Record",
    "RedisStore",
    "SQLAlchemyStore",
    "Store",
    "StoreError",
    "StoreOptions",
    "WriteOptions",
    "create_store",
    "create_store_from_settings",
    "get_store_class",
]
