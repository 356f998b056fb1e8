"""
Key Matching and Expiry Resolution

Backend-independent rules shared by every store:

- Key selection: a key plus prefix/suffix flags becomes a list of selectors whose
  matches are unioned. The same selectors translate to an in-process predicate,
  Redis glob patterns or SQL ``LIKE`` clauses.
- Expiry: competing TTL/expiry inputs resolve to one absolute expiry.
- Pagination: ``offset`` is a page index applied after expired records are dropped.

Wildcard characters inside keys are passed through unescaped, so a key holding
``*``, ``?``, ``%`` or ``_`` follows the engine's own pattern semantics.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, NamedTuple, Optional, Sequence, TypeVar

from sqlalchemy import or_

from kvstore.domain.options import WriteOptions
from kvstore.domain.record import Record

T = TypeVar("T")


class KeySelector(NamedTuple):
    """One matching rule: exact, prefix or suffix on ``key``"""

    key: str
    prefix: bool = False
    suffix: bool = False

    @property
    def exact(self) -> bool:
        return not (self.prefix or self.suffix)


def read_selectors(key: str, prefix: bool = False, suffix: bool = False) -> list[KeySelector]:
    """
    Build selectors for a read

    Neither flag selects ``key`` exactly; both flags select the union of the
    prefix matches and the suffix matches.
    """
    if prefix and suffix:
        return [KeySelector(key, prefix=True), KeySelector(key, suffix=True)]
    return [KeySelector(key, prefix=prefix, suffix=suffix)]


def list_selectors(prefix: str = "", suffix: str = "") -> list[KeySelector]:
    """
    Build selectors for a list

    With neither string set every key in the namespace matches.
    """
    selectors = []
    if prefix:
        selectors.append(KeySelector(prefix, prefix=True))
    if suffix:
        selectors.append(KeySelector(suffix, suffix=True))
    if not selectors:
        selectors.append(KeySelector("", prefix=True))
    return selectors


def matches(candidate: str, selectors: Sequence[KeySelector]) -> bool:
    """Check whether ``candidate`` is selected by any of ``selectors``"""
    for selector in selectors:
        if selector.exact:
            if candidate == selector.key:
                return True
            continue
        if selector.prefix and candidate.startswith(selector.key):
            return True
        if selector.suffix and candidate.endswith(selector.key):
            return True
    return False


def redis_pattern(namespace: str, selector: KeySelector) -> str:
    """
    Translate a selector into a Redis key or glob pattern

    Stored keys are ``namespace + key``, so the namespace always leads the pattern.
    Exact selectors return the literal storage key.
    """
    if selector.prefix:
        return f"{namespace}{selector.key}*"
    if selector.suffix:
        return f"{namespace}*{selector.key}"
    return f"{namespace}{selector.key}"


def sql_match_clause(column: Any, selectors: Sequence[KeySelector]) -> Any:
    """
    Translate selectors into a SQLAlchemy WHERE clause

    Args:
        column: Key column of the store table
        selectors: Selectors to union

    Returns:
        A single comparison or ``LIKE`` clause, or an ``OR`` of them
    """
    clauses = []
    for selector in selectors:
        if selector.exact:
            clauses.append(column == selector.key)
        elif selector.prefix:
            clauses.append(column.like(f"{selector.key}%"))
        else:
            clauses.append(column.like(f"%{selector.key}"))
    if len(clauses) == 1:
        return clauses[0]
    return or_(*clauses)


def resolve_expiry(
    record: Record,
    opts: Optional[WriteOptions],
    now: datetime,
) -> Optional[datetime]:
    """
    Resolve the absolute expiry of a record being written

    First match wins:
    1. operation TTL -> now + TTL
    2. operation expiry
    3. record expiry
    4. record TTL -> now + TTL
    5. never expires (None)
    """
    if opts is not None:
        if opts.ttl:
            return now + opts.ttl
        if opts.expiry is not None:
            return opts.expiry
    if record.expiry is not None:
        return record.expiry
    if record.ttl:
        return now + record.ttl
    return None


def is_expired(expiry: Optional[datetime], now: datetime) -> bool:
    """A record is logically deleted once its expiry is at or before now"""
    return expiry is not None and expiry <= now


def remaining_ttl(expiry: Optional[datetime], now: datetime) -> timedelta:
    """Time left until ``expiry``; zero for records that never expire"""
    if expiry is None:
        return timedelta(0)
    return max(expiry - now, timedelta(0))


def page_bounds(limit: int, offset: int) -> tuple[int, Optional[int]]:
    """
    Compute (skip, take) for a page

    ``offset`` counts pages of ``limit`` items and is ignored without a limit.
    """
    if limit <= 0:
        return 0, None
    return limit * offset, limit


def paginate(items: Sequence[T], limit: int, offset: int) -> list[T]:
    """Apply page bounds to an already filtered, ordered sequence"""
    skip, take = page_bounds(limit, offset)
    if take is None:
        return list(items[skip:])
    return list(items[skip:skip + take])
