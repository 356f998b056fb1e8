"""
Record Domain Model

Defines the canonical unit of stored data shared by every store backend.
"""

from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from kvstore.common.time import ensure_utc


class Record(BaseModel):
    """
    Stored Record

    On write, a non-zero ``expiry`` or ``ttl`` asks for the record to expire;
    see ``kvstore.common.resolver.resolve_expiry`` for the precedence rules.
    On read both fields are populated; a record that never expires reads back
    with a zero ``ttl`` and ``expiry=None``.
    """

    key: str = Field(..., description="Key, unique within a (database, table) namespace")
    value: bytes = Field(b"", description="Opaque value")
    ttl: timedelta = Field(timedelta(0), description="Time to live (zero means unset)")
    expiry: Optional[datetime] = Field(None, description="Absolute expiration time")

    model_config = ConfigDict(frozen=True)

    @field_validator("expiry")
    @classmethod
    def _expiry_to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)
