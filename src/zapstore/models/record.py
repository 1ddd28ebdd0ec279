"""
Immutable Nostr records as delivered by relays.

[RawRecord][zapstore.models.record.RawRecord] is the wire-level event every
other layer consumes: identity, author, timestamp, kind, tag array, content
and signature. Signatures are carried but never verified; identity is
assumed unique and authentic.

[UnsignedRecord][zapstore.models.record.UnsignedRecord] is the template
handed to a signer when the client publishes something of its own (zap
requests, comments).

See Also:
    [zapstore.nips.parsers][]: Turns records into domain objects.
    [zapstore.utils.transport][]: Produces records from relay traffic.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from ._validation import (
    freeze_tags,
    validate_instance,
    validate_int,
    validate_str,
    validate_str_not_empty,
)


@dataclass(frozen=True, slots=True)
class RawRecord:
    """A signed Nostr event.

    Validation is performed eagerly at construction time so malformed relay
    payloads never reach the normalizer. Tags are stored as nested tuples.

    Attributes:
        id: Event id (hex).
        pubkey: Author public key (hex).
        created_at: Unix timestamp in seconds.
        kind: Event kind.
        tags: Ordered tag array; each tag is a tuple of strings.
        content: Raw content string (often JSON).
        sig: Schnorr signature (hex), possibly empty for fixtures.

    Raises:
        TypeError: If any field has the wrong type.
        ValueError: If ``id`` or ``pubkey`` is empty or numbers are negative.

    Examples:
        ```python
        record = RawRecord.from_dict({
            "id": "ab" * 32, "pubkey": "cd" * 32, "created_at": 1700000000,
            "kind": 32267, "tags": [["d", "com.example"]], "content": "{}",
        })
        record.tags[0]  # ('d', 'com.example')
        ```
    """

    id: str
    pubkey: str
    created_at: int
    kind: int
    tags: tuple[tuple[str, ...], ...] = ()
    content: str = ""
    sig: str = field(default="", repr=False)

    def __post_init__(self) -> None:
        validate_str_not_empty(self.id, "id")
        validate_str_not_empty(self.pubkey, "pubkey")
        validate_int(self.created_at, "created_at")
        validate_int(self.kind, "kind")
        validate_str(self.content, "content")
        validate_str(self.sig, "sig")
        object.__setattr__(self, "tags", freeze_tags(self.tags, "tags"))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RawRecord:
        """Build a record from its NIP-01 JSON object form.

        Raises:
            TypeError: If *data* is not a dict or a field has the wrong type.
            ValueError: If a required field is missing or invalid.
        """
        validate_instance(data, dict, "data")
        try:
            return cls(
                id=data["id"],
                pubkey=data["pubkey"],
                created_at=data["created_at"],
                kind=data["kind"],
                tags=data.get("tags", []),
                content=data.get("content", ""),
                sig=data.get("sig", ""),
            )
        except KeyError as e:
            raise ValueError(f"record is missing field {e.args[0]!r}") from None

    @classmethod
    def from_json(cls, raw: str) -> RawRecord:
        """Parse a JSON string into a record."""
        return cls.from_dict(json.loads(raw))

    def to_dict(self) -> dict[str, Any]:
        """Return the NIP-01 JSON object form."""
        return {
            "id": self.id,
            "pubkey": self.pubkey,
            "created_at": self.created_at,
            "kind": self.kind,
            "tags": [list(tag) for tag in self.tags],
            "content": self.content,
            "sig": self.sig,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)


@dataclass(frozen=True, slots=True)
class UnsignedRecord:
    """Event template awaiting a signature.

    Attributes:
        kind: Event kind.
        created_at: Unix timestamp in seconds.
        tags: Ordered tag array.
        content: Content string.
    """

    kind: int
    created_at: int
    tags: tuple[tuple[str, ...], ...] = ()
    content: str = ""

    def __post_init__(self) -> None:
        validate_int(self.kind, "kind")
        validate_int(self.created_at, "created_at")
        validate_str(self.content, "content")
        object.__setattr__(self, "tags", freeze_tags(self.tags, "tags"))

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "created_at": self.created_at,
            "tags": [list(tag) for tag in self.tags],
            "content": self.content,
        }
