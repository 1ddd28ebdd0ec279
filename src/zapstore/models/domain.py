"""
Typed domain records derived from raw Nostr events.

Every record is a frozen, slotted dataclass created fresh per normalization
call and never mutated afterwards. Each one keeps the originating
[RawRecord][zapstore.models.record.RawRecord] in its ``event`` field and
exposes a flat, JSON-serializable projection through ``to_dict()``.

Attributes:
    App: Addressable app listing (kind 32267).
    Release: App release pointing at file metadata (kind 30063).
    FileMetadata: NIP-94 file description (kind 1063).
    ZapReceipt: NIP-57 receipt with the decoded amount (kind 9735).
    Comment: NIP-22 comment on an app or on another comment (kind 1111).
    AppStack: Curated collection of app coordinates (kind 30267).
    Profile: NIP-01 user metadata (kind 0).
    AddressPointer: ``kind:pubkey:identifier`` coordinate.
    ZapSummary: Receipts plus their total.
    ZapEndpoint: Resolved LNURL-pay endpoint capabilities.
    ZapInvoice: Invoice returned by an LNURL callback.

See Also:
    [zapstore.nips.parsers][]: The only producer of these records.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any

from .record import RawRecord  # noqa: TC001


def _jsonable(value: Any) -> Any:
    if isinstance(value, RawRecord):
        return value.to_dict()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: _jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, list | tuple):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    return value


class _Serializable:
    """Mixin providing ``to_dict()`` for domain dataclasses."""

    __slots__ = ()

    def to_dict(self) -> dict[str, Any]:
        """Return a flat JSON-serializable projection."""
        result: dict[str, Any] = _jsonable(self)
        return result


@dataclass(frozen=True, slots=True)
class AddressPointer(_Serializable):
    """An addressable-event coordinate ``kind:pubkey:identifier``."""

    kind: int
    pubkey: str
    identifier: str = ""

    def __str__(self) -> str:
        return f"{self.kind}:{self.pubkey}:{self.identifier}"

    @classmethod
    def parse(cls, value: str) -> AddressPointer | None:
        """Parse a coordinate string, returning ``None`` when malformed.

        The identifier may itself contain colons; only the first two
        separators are significant.
        """
        parts = value.split(":", 2)
        kind = parts[0]
        if len(parts) < 2 or not (kind.isascii() and kind.isdecimal()) or not parts[1]:
            return None
        return cls(kind=int(kind), pubkey=parts[1], identifier=parts[2] if len(parts) > 2 else "")


@dataclass(frozen=True, slots=True)
class App(_Serializable):
    """An app listing.

    ``description_html`` is produced by the configured markdown renderer.
    ``license`` is empty when the publisher asserted no license.
    ``slug`` is the NIP-19 ``naddr`` of the listing, or ``<npub>-<d_tag>``
    when encoding is impossible.
    """

    id: str
    pubkey: str
    npub: str
    d_tag: str
    slug: str
    name: str
    description: str
    description_html: str
    icon: str
    images: tuple[str, ...]
    url: str
    download_url: str
    repository: str
    category: str
    license: str
    developer: str
    platform: str
    requirements: str
    changelog: str
    price: str
    rating: str
    downloads: str
    created_at: int
    event: RawRecord = field(repr=False, compare=False)

    @property
    def address(self) -> AddressPointer:
        return AddressPointer(kind=self.event.kind, pubkey=self.pubkey, identifier=self.d_tag)


@dataclass(frozen=True, slots=True)
class Release(_Serializable):
    """A release of an app, referencing its file-metadata events via ``e`` tags."""

    id: str
    kind: int
    pubkey: str
    npub: str
    d_tag: str
    url: str
    address_refs: tuple[str, ...]
    event_refs: tuple[str, ...]
    notes: str
    notes_html: str
    created_at: int
    event: RawRecord = field(repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class FileMetadata(_Serializable):
    id: str
    kind: int
    pubkey: str
    npub: str
    url: str
    mime_type: str
    hash: str
    size: str
    version: str
    created_at: int
    event: RawRecord = field(repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class ZapReceipt(_Serializable):
    """A zap receipt.

    ``amount_sats`` is decoded from the bolt11 invoice and is zero when the
    invoice is missing or unparseable. ``sender_pubkey`` and ``description``
    come from the embedded zap request and are empty when it is malformed.
    """

    id: str
    pubkey: str
    npub: str
    amount_sats: int
    invoice: str
    preimage: str
    description: str
    sender_pubkey: str
    sender_npub: str
    created_at: int
    event: RawRecord = field(repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class Comment(_Serializable):
    """A threaded comment.

    Uppercase tags point at the thread root (the app), lowercase tags at the
    direct parent. ``is_reply`` is true when the parent is itself a comment.
    """

    id: str
    pubkey: str
    npub: str
    content: str
    content_html: str
    root_address: str
    root_kind: str
    root_author: str
    thread_version: str
    parent_address: str
    parent_id: str
    parent_kind: str
    parent_author: str
    is_reply: bool
    created_at: int
    event: RawRecord = field(repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class AppStack(_Serializable):
    id: str
    pubkey: str
    npub: str
    identifier: str
    name: str | None
    description: str
    app_refs: tuple[AddressPointer, ...]
    created_at: int
    event: RawRecord = field(repr=False, compare=False)
    apps: tuple[App, ...] = ()


@dataclass(frozen=True, slots=True)
class Profile(_Serializable):
    pubkey: str
    npub: str
    name: str
    display_name: str
    picture: str
    about: str
    nip05: str
    lud16: str
    lud06: str
    created_at: int

    @property
    def has_lightning_address(self) -> bool:
        return bool(self.lud16 or self.lud06)


@dataclass(frozen=True, slots=True)
class ZapSummary(_Serializable):
    """Receipts for an app (and its files) with their summed amount."""

    zaps: tuple[ZapReceipt, ...]
    total_sats: int

    @property
    def count(self) -> int:
        return len(self.zaps)

    def to_dict(self) -> dict[str, Any]:
        return {
            "zaps": [z.to_dict() for z in self.zaps],
            "total_sats": self.total_sats,
            "count": self.count,
        }


@dataclass(frozen=True, slots=True)
class ZapEndpoint(_Serializable):
    """Capabilities of a recipient's LNURL-pay endpoint. Never cached.

    Attributes:
        lnurl: Discovery URL the endpoint was resolved from.
        callback: Invoice request URL.
        min_sendable: Minimum amount in millisatoshis.
        max_sendable: Maximum amount in millisatoshis.
        nostr_pubkey: Key the endpoint signs receipts with.
        allows_nostr: Whether the endpoint accepts NIP-57 zap requests.
    """

    lnurl: str
    callback: str
    min_sendable: int
    max_sendable: int
    nostr_pubkey: str
    allows_nostr: bool


@dataclass(frozen=True, slots=True)
class ZapInvoice(_Serializable):
    invoice: str
    success_action: dict[str, Any] | None = None
    routes: tuple[Any, ...] = ()
