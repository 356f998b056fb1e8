"""
Store Option Models

Every operation takes an explicit options object with named fields whose
defaults are the "unset" zero values. Namespace precedence for any operation is:

    operation option > store option > backend fallback

and is computed by ``resolve_namespace``.
"""

from datetime import datetime, timedelta
from typing import Any, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from kvstore.common.time import ensure_utc


class Namespace(NamedTuple):
    """Resolved (database, table) pair an operation runs against"""

    database: str
    table: str


class StoreOptions(BaseModel):
    """Store-level (connection) options"""

    # Connection information of the backing engine; only the first entry is used
    addresses: list[str] = Field(default_factory=list)
    database: str = ""
    table: str = ""
    auth: bool = False
    password: str = ""
    # Implementation specific keyword arguments handed to the engine client
    context: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")


class WriteOptions(BaseModel):
    """
    Options for a single write

    If both ``expiry`` and ``ttl`` are set, ``ttl`` takes precedence.
    """

    address: str = ""
    database: str = ""
    table: str = ""
    expiry: Optional[datetime] = None
    ttl: timedelta = timedelta(0)

    @field_validator("expiry")
    @classmethod
    def _expiry_to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)


class ReadOptions(BaseModel):
    """Options for a single read"""

    address: str = ""
    database: str = ""
    table: str = ""
    # Return every record whose key starts with the given key
    prefix: bool = False
    # Return every record whose key ends with the given key
    suffix: bool = False
    limit: int = Field(0, ge=0)
    # Page index, only honoured together with limit
    offset: int = Field(0, ge=0)


class DeleteOptions(BaseModel):
    """Options for a single delete"""

    database: str = ""
    table: str = ""


class ListOptions(BaseModel):
    """Options for a single list"""

    database: str = ""
    table: str = ""
    prefix: str = ""
    suffix: str = ""
    limit: int = Field(0, ge=0)
    # Page index, only honoured together with limit
    offset: int = Field(0, ge=0)


def resolve_namespace(
    database: str,
    table: str,
    store: StoreOptions,
    fallback: Namespace,
) -> Namespace:
    """
    Resolve the namespace of an operation

    Args:
        database: Operation-level database (empty if unset)
        table: Operation-level table (empty if unset)
        store: Current store options
        fallback: Backend fallback namespace

    Returns:
        Namespace: First non-empty value per field, in precedence order
    """
    return Namespace(
        database=database or store.database or fallback.database,
        table=table or store.table or fallback.table,
    )
