"""
Immutable relay subscription filters.

[Filter][zapstore.models.filter.Filter] mirrors the NIP-01 ``REQ`` filter
object. Tag constraints are keyed by the bare single-letter tag name
(``"d"``, ``"A"``, ``"p"``); [to_dict()][zapstore.models.filter.Filter.to_dict]
adds the ``#`` prefix of the wire form. Tag names are case-sensitive:
``"a"`` and ``"A"`` are distinct constraints.

See Also:
    [zapstore.utils.transport][]: Converts filters for the relay client.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from ._validation import freeze_str_tuple, validate_int, validate_str


@dataclass(frozen=True, slots=True)
class Filter:
    """A NIP-01 filter value.

    All fields are optional; unset fields impose no constraint.

    Attributes:
        kinds: Accepted event kinds.
        ids: Accepted event ids.
        authors: Accepted author public keys.
        tags: Single-letter tag name to accepted values.
        since: Lower bound on ``created_at`` (inclusive).
        until: Upper bound on ``created_at`` (inclusive).
        limit: Maximum number of stored events to return.
        search: NIP-50 full-text query.

    Raises:
        ValueError: If a tag name is not exactly one ASCII letter, or a
            numeric bound is negative.

    Examples:
        ```python
        Filter(kinds=(32267,), tags={"d": ("com.example",)}, limit=1).to_dict()
        # {'kinds': [32267], '#d': ['com.example'], 'limit': 1}
        ```
    """

    kinds: tuple[int, ...] | None = None
    ids: tuple[str, ...] | None = None
    authors: tuple[str, ...] | None = None
    tags: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    since: int | None = None
    until: int | None = None
    limit: int | None = None
    search: str | None = None

    def __post_init__(self) -> None:
        if self.kinds is not None:
            kinds = tuple(self.kinds)
            for kind in kinds:
                validate_int(kind, "kinds element")
            object.__setattr__(self, "kinds", kinds)
        if self.ids is not None:
            object.__setattr__(self, "ids", freeze_str_tuple(self.ids, "ids"))
        if self.authors is not None:
            object.__setattr__(self, "authors", freeze_str_tuple(self.authors, "authors"))

        frozen_tags: dict[str, tuple[str, ...]] = {}
        for name, values in self.tags.items():
            if not (isinstance(name, str) and len(name) == 1 and name.isascii() and name.isalpha()):
                raise ValueError(f"tag filter name must be a single letter, got {name!r}")
            frozen_tags[name] = freeze_str_tuple(values, f"tags[{name!r}]")
        object.__setattr__(self, "tags", MappingProxyType(frozen_tags))

        for attr in ("since", "until", "limit"):
            value = getattr(self, attr)
            if value is not None:
                validate_int(value, attr)
        if self.search is not None:
            validate_str(self.search, "search")

    def __hash__(self) -> int:
        return hash(
            (
                self.kinds,
                self.ids,
                self.authors,
                tuple(sorted(self.tags.items())),
                self.since,
                self.until,
                self.limit,
                self.search,
            )
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the NIP-01 wire form, omitting unset fields."""
        result: dict[str, Any] = {}
        if self.ids is not None:
            result["ids"] = list(self.ids)
        if self.authors is not None:
            result["authors"] = list(self.authors)
        if self.kinds is not None:
            result["kinds"] = list(self.kinds)
        for name, values in self.tags.items():
            result[f"#{name}"] = list(values)
        if self.since is not None:
            result["since"] = self.since
        if self.until is not None:
            result["until"] = self.until
        if self.limit is not None:
            result["limit"] = self.limit
        if self.search is not None:
            result["search"] = self.search
        return result
