"""
Store Repository Module Initialization
"""

from kvstore.repositories.memory import MemoryStore
from kvstore.repositories.redis import RedisStore
from kvstore.repositories.sqlalchemy import SQLAlchemyStore
from kvstore.repositories.store_repo import Store

__all__ = [
    "MemoryStore",
    "RedisStore",
    "SQLAlchemyStore",
    "Store",
]
