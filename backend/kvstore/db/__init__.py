"""
Database Module Initialization
"""

from kvstore.db.models import store_table
from kvstore.db.redis import create_redis_client
from kvstore.db.session import build_engine, ensure_database, ensure_table

__all__ = [
    "build_engine",
    "create_redis_client",
    "ensure_database",
    "ensure_table",
    "store_table",
]
