"""
SQLAlchemy Repository Implementation Module Initialization
"""

from kvstore.repositories.sqlalchemy.store_repo import SQLAlchemyStore

__all__ = [
    "SQLAlchemyStore",
]
