"""
Redis Repository Implementation Module Initialization
"""

from kvstore.repositories.redis.store_repo import RedisStore

__all__ = [
    "RedisStore",
]
