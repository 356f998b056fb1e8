"""
In-Memory Repository Implementation Module Initialization
"""

from kvstore.repositories.memory.store_repo import MemoryStore

__all__ = [
    "MemoryStore",
]
