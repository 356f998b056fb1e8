"""
Configuration Management Module

Configures store parameters via environment variables or .env file.
Supports an in-process memory backend, Redis, and SQL databases via SQLAlchemy.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Store Configuration Class

    All configuration items can be overridden by environment variables, with names matching fields (uppercase).
    """

    # Application Config
    APP_NAME: str = "kvstore"
    DEBUG: bool = False

    # Store Config
    # Backend: "memory", "redis" or "sqlalchemy"
    STORE_BACKEND: Literal["memory", "redis", "sqlalchemy"] = "sqlalchemy"
    # Comma-separated addresses, only the first one is used
    # Redis example: "redis://localhost:6379/0" or "localhost:6379"
    # SQL example: "mysql+aiomysql://root:@127.0.0.1:3306/store"
    STORE_ADDRESSES: str = ""
    # Default namespace, empty means the backend fallback
    STORE_DATABASE: str = ""
    STORE_TABLE: str = ""
    # Authentication (password overrides the one in the address when enabled)
    STORE_AUTH: bool = False
    STORE_PASSWORD: str = ""

    # Relational Pool Config (ignored for SQLite)
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    # Connections idle longer than this are recycled (seconds)
    DB_POOL_RECYCLE_SECONDS: int = 10

    # Lazy Expiration Config
    # Maximum concurrent background deletes of expired records
    LAZY_DELETE_CONCURRENCY: int = 16

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    @property
    def store_addresses(self) -> list[str]:
        """Parsed STORE_ADDRESSES"""
        return [addr.strip() for addr in self.STORE_ADDRESSES.split(",") if addr.strip()]


@lru_cache()
def get_settings() -> Settings:
    """
    Get store configuration (Singleton)

    Uses lru_cache to ensure configuration is loaded only once.

    Returns:
        Settings: Store configuration instance
    """
    return Settings()
