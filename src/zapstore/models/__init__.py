"""Pure frozen dataclasses with zero I/O for Nostr records and app-catalog objects.

The models layer is the foundation of the diamond DAG. It depends only on the
Python standard library. Every model uses ``@dataclass(frozen=True,
slots=True)`` and validates in ``__post_init__`` so invalid instances never
escape the constructor.

Attributes:
    RawRecord: Signed event as delivered by a relay.
    UnsignedRecord: Event template handed to a signer.
    Filter: NIP-01 subscription filter.
    App, Release, FileMetadata, ZapReceipt, Comment, AppStack, Profile:
        Domain records produced by [zapstore.nips.parsers][].
    EventKind: Event kinds understood by the client.

Note:
    Models use ``object.__setattr__`` in ``__post_init__`` to normalize
    fields on frozen dataclasses (lists to tuples, mappings to dicts).
"""

from .constants import (
    APP_RELAY,
    DEFAULT_MAX_SENDABLE_MSAT,
    DEFAULT_MIN_SENDABLE_MSAT,
    DEFAULT_PLATFORM,
    PROFILE_RELAY,
    SOCIAL_RELAYS,
    ZAP_RECEIPT_RELAYS,
    EventKind,
)
from .domain import (
    AddressPointer,
    App,
    AppStack,
    Comment,
    FileMetadata,
    Profile,
    Release,
    ZapEndpoint,
    ZapInvoice,
    ZapReceipt,
    ZapSummary,
)
from .filter import Filter
from .record import RawRecord, UnsignedRecord


__all__ = [
    "APP_RELAY",
    "DEFAULT_MAX_SENDABLE_MSAT",
    "DEFAULT_MIN_SENDABLE_MSAT",
    "DEFAULT_PLATFORM",
    "PROFILE_RELAY",
    "SOCIAL_RELAYS",
    "ZAP_RECEIPT_RELAYS",
    "AddressPointer",
    "App",
    "AppStack",
    "Comment",
    "EventKind",
    "FileMetadata",
    "Filter",
    "Profile",
    "RawRecord",
    "Release",
    "UnsignedRecord",
    "ZapEndpoint",
    "ZapInvoice",
    "ZapReceipt",
    "ZapSummary",
]
