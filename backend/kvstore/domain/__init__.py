"""
Domain Model Module Initialization
"""

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

__all__ = [
    "DeleteOptions",
    "ListOptions",
    "Namespace",
    "ReadOptions",
    "Record",
    "StoreOptions",
    "WriteOptions",
    "resolve_namespace",
]
