"""
Tag-array and JSON-content access for event normalization.

Relay payloads are untrusted: tags may be short, content may be anything.
Everything here is total. Malformed input degrades to empty values and
never raises.

Attributes:
    TagMap: Read-only view of a tag array (first-wins, with repeatable names).
    to_tag_map: Build a [TagMap][zapstore.nips.tags.TagMap] from a record.
    parse_content: Decode JSON object content with a description fallback.
    pick_text: First non-empty string among candidate values.

See Also:
    [zapstore.nips.parsers][]: The per-kind parsers built on these helpers.
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from zapstore.models.record import RawRecord


# Tag names whose every occurrence is meaningful; all others are first-wins.
REPEATABLE_TAGS: frozenset[str] = frozenset({"image", "a", "e"})


class TagMap(Mapping[str, Any]):
    """Mapping from tag name to value.

    Ordinary names map to the value of their first occurrence. Names in
    ``repeatable`` map to an ordered tuple of the values of all occurrences.
    Tags with fewer than two elements are ignored.

    Examples:
        ```python
        tm = TagMap([("d", "x"), ("d", "y"), ("image", "a.png"), ("image", "b.png")])
        tm["d"]              # 'x'
        tm["image"]          # ('a.png', 'b.png')
        tm.first("image")    # 'a.png'
        tm.get_all("d")      # ('x',)
        ```
    """

    __slots__ = ("_data",)

    def __init__(
        self,
        tags: Iterator[tuple[str, ...]] | tuple[tuple[str, ...], ...] | list[Any],
        repeatable: frozenset[str] = REPEATABLE_TAGS,
    ) -> None:
        data: dict[str, Any] = {}
        for tag in tags:
            if len(tag) < 2 or not isinstance(tag[0], str) or not isinstance(tag[1], str):
                continue
            name, value = tag[0], tag[1]
            if name in repeatable:
                data.setdefault(name, []).append(value)
            elif name not in data:
                data[name] = value
        self._data: dict[str, str | tuple[str, ...]] = {
            k: tuple(v) if isinstance(v, list) else v for k, v in data.items()
        }

    def __getitem__(self, key: str) -> str | tuple[str, ...]:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"TagMap({self._data!r})"

    def first(self, name: str, default: str = "") -> str:
        """Value of the first occurrence of *name*, or *default*."""
        value = self._data.get(name)
        if value is None:
            return default
        if isinstance(value, tuple):
            return value[0] if value else default
        return value

    def get_all(self, name: str) -> tuple[str, ...]:
        """All collected values for *name* (one at most for non-repeatable names)."""
        value = self._data.get(name)
        if value is None:
            return ()
        if isinstance(value, tuple):
            return value
        return (value,)


def to_tag_map(record: RawRecord, repeatable: frozenset[str] = REPEATABLE_TAGS) -> TagMap:
    return TagMap(record.tags, repeatable)


def parse_content(record: RawRecord) -> dict[str, Any]:
    """Decode the record content as a JSON object.

    Returns:
        The decoded object, or ``{"description": <raw content>}`` when the
        content is not valid JSON or decodes to something other than an
        object.
    """
    try:
        decoded = json.loads(record.content)
    except (ValueError, RecursionError):
        return {"description": record.content}
    if not isinstance(decoded, dict):
        return {"description": record.content}
    return decoded


def as_text(value: Any) -> str:
    """Coerce a JSON scalar to display text; non-scalars become empty."""
    if isinstance(value, str):
        return value
    if isinstance(value, int | float) and not isinstance(value, bool):
        return str(value)
    return ""


def pick_text(*candidates: Any, default: str = "") -> str:
    """Return the first candidate that renders to non-blank text."""
    for candidate in candidates:
        text = as_text(candidate)
        if text.strip():
            return text
    return default


def pick_str_list(value: Any) -> tuple[str, ...]:
    """Keep the non-empty strings of a JSON list; anything else yields ``()``."""
    if not isinstance(value, list):
        return ()
    return tuple(item for item in value if isinstance(item, str) and item)
