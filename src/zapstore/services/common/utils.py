"""Shared utility functions for zapstore services.

Only primitives used by more than one service live here.

See Also:
    [catalog][zapstore.services.catalog]: Dedups every multi-record fetch.
    [social][zapstore.services.social]: Dedups zap and comment listings.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, TypeVar


class _Identified(Protocol):
    @property
    def id(self) -> str: ...

    @property
    def created_at(self) -> int: ...


T = TypeVar("T", bound=_Identified)


def dedup_and_sort(records: Iterable[T]) -> list[T]:
    """Drop repeated ids (first occurrence wins) and sort newest first.

    The sort is stable, so records sharing a timestamp keep their input
    order. Applying the function twice yields the same list.

    Args:
        records: Raw records or domain objects exposing ``id`` and
            ``created_at``.

    Returns:
        A new list with unique ids ordered by ``created_at`` descending.
    """
    seen: set[str] = set()
    unique: list[T] = []
    for record in records:
        if record.id in seen:
            continue
        seen.add(record.id)
        unique.append(record)
    unique.sort(key=lambda r: r.created_at, reverse=True)
    return unique
