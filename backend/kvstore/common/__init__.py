"""
Common Utilities Module Initialization
"""

from kvstore.common.errors import (
    BackendError,
    backend_errors,
    ConfigurationError,
    NotFoundError,
    StoreError,
)

__all__ = [
    "BackendError",
    "backend_errors",
    "ConfigurationError",
    "NotFoundError",
    "StoreError",
]
