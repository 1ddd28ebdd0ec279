"""Shared constants for the models layer.

Event kinds, default relay sets and protocol defaults used across the
normalizer, the catalog queries and the zap orchestrator. Keeping them in the
models layer lets every other layer import them without cycles.

See Also:
    [zapstore.nips.parsers][]: Dispatches on [EventKind][zapstore.models.constants.EventKind].
    [zapstore.core.config][]: Uses the relay tuples as configuration defaults.
"""

from __future__ import annotations

from enum import IntEnum


class EventKind(IntEnum):
    """Nostr event kinds handled by the catalog client.

    Attributes:
        PROFILE: NIP-01 user metadata (kind 0).
        FILE_METADATA: NIP-94 file metadata (kind 1063).
        COMMENT: NIP-22 comment (kind 1111).
        ZAP_REQUEST: NIP-57 zap request, signed by the sender (kind 9734).
        ZAP_RECEIPT: NIP-57 zap receipt, published by the LNURL server (kind 9735).
        RELEASE: Addressable app release (kind 30063).
        APP_STACK: Addressable curated app collection (kind 30267).
        APP: Addressable app listing (kind 32267).
    """

    PROFILE = 0
    FILE_METADATA = 1063
    COMMENT = 1111
    ZAP_REQUEST = 9734
    ZAP_RECEIPT = 9735
    RELEASE = 30063
    APP_STACK = 30267
    APP = 32267


# ---------------------------------------------------------------------------
# Relays
# ---------------------------------------------------------------------------

APP_RELAY = "wss://relay.zapstore.dev"
PROFILE_RELAY = "wss://relay.vertexlab.io"

SOCIAL_RELAYS: tuple[str, ...] = (
    "wss://relay.damus.io",
    "wss://relay.primal.net",
    "wss://relay.nostr.band",
    "wss://nos.lol",
)

# Receipt publishers fan out widely; these are watched in addition to the social set.
ZAP_RECEIPT_RELAYS: tuple[str, ...] = (
    "wss://nos.lol",
    "wss://relay.nostr.band",
    "wss://nostr.wine",
)

# ---------------------------------------------------------------------------
# Protocol defaults
# ---------------------------------------------------------------------------

DEFAULT_PLATFORM = "android-arm64-v8a"

# NIP-57 LNURL bounds in millisatoshis when the endpoint omits them.
DEFAULT_MIN_SENDABLE_MSAT = 1_000
DEFAULT_MAX_SENDABLE_MSAT = 100_000_000_000

LICENSE_NO_ASSERTION = "NOASSERTION"

STACK_DESCRIPTION = "A curated collection of apps for your needs."
