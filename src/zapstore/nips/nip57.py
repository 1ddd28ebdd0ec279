"""
NIP-57 (Lightning zaps) protocol helpers.

Pure functions shared by the zap receipt parser and the zap orchestrator:

* invoice amount decoding from the bolt11 human-readable prefix;
* LNURL discovery URL derivation from ``lud16`` addresses and bech32
  ``lud06`` strings;
* zap request tag construction;
* the ordered receipt-correlation strategies.

LNURL strings routinely exceed the 90-character limit of BIP-173, so
``lud06`` is decoded with the ``bech32`` primitives (checksum verification
and bit regrouping) rather than its length-capped ``bech32_decode``.

See Also:
    [zapstore.services.zap][]: The orchestrator driving the handshake.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import bech32

from zapstore.models.constants import EventKind

from .tags import TagMap, to_tag_map


if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from zapstore.models.domain import App
    from zapstore.models.record import RawRecord


# =============================================================================
# Invoice amounts
# =============================================================================

_BOLT11_AMOUNT = re.compile(r"lnbc(\d+)([munp]?)", re.IGNORECASE | re.ASCII)

# Millisatoshis per unit of the amount field; whole bitcoin when no multiplier.
_MSAT_PER_BTC = 100_000_000_000
_MULTIPLIER_DIVISORS: dict[str, int] = {
    "": 1,
    "m": 1_000,
    "u": 1_000_000,
    "n": 1_000_000_000,
    "p": 1_000_000_000_000,
}


def invoice_amount_msat(invoice: str) -> int:
    """Decode the amount of a bolt11 invoice in millisatoshis.

    Sub-millisatoshi pico amounts are floored. Returns 0 when the prefix does
    not match ``lnbc<digits>[m|u|n|p]``.
    """
    match = _BOLT11_AMOUNT.search(invoice or "")
    if match is None:
        return 0
    value = int(match.group(1))
    divisor = _MULTIPLIER_DIVISORS[match.group(2).lower()]
    return value * _MSAT_PER_BTC // divisor


def invoice_amount_sats(invoice: str) -> int:
    """Decode the amount of a bolt11 invoice in whole sats (floored).

    Examples:
        ```python
        invoice_amount_sats("lnbc25m1...")  # 2_500_000
        invoice_amount_sats("lnbc25u1...")  # 2_500
        invoice_amount_sats("lnbc25n1...")  # 2
        invoice_amount_sats("garbage")      # 0
        ```
    """
    return invoice_amount_msat(invoice) // 1000


def format_sats(sats: int) -> str:
    """Human-readable amount: ``1.50 BTC``, ``2.5M sats``, ``21.0K sats``, ``21 sats``."""
    if sats >= 100_000_000:
        return f"{sats / 100_000_000:.2f} BTC"
    if sats >= 1_000_000:
        return f"{sats / 1_000_000:.1f}M sats"
    if sats >= 1_000:
        return f"{sats / 1_000:.1f}K sats"
    return f"{sats} sats"


# =============================================================================
# LNURL discovery
# =============================================================================


def lightning_address_url(address: str) -> str | None:
    """Map a ``name@domain`` Lightning address to its LNURL-pay discovery URL."""
    name, sep, domain = address.strip().partition("@")
    if not sep or not name or not domain or "@" in domain or "/" in domain:
        return None
    return f"https://{domain}/.well-known/lnurlp/{name}"


def decode_lnurl(lnurl: str) -> str | None:
    """Decode a bech32 ``lnurl1...`` string into its URL.

    Returns:
        The decoded URL when the HRP is ``lnurl``, the checksum verifies and
        the payload is an ``http(s)`` URL; ``None`` otherwise.
    """
    value = lnurl.strip()
    if value.lower().startswith("lightning:"):
        value = value[len("lightning:") :]
    if value != value.lower() and value != value.upper():
        return None
    value = value.lower()

    hrp, sep, data_part = value.rpartition("1")
    if not sep or hrp != "lnurl" or len(data_part) < 6:
        return None
    if any(c not in bech32.CHARSET for c in data_part):
        return None
    data = [bech32.CHARSET.find(c) for c in data_part]
    if not bech32.bech32_verify_checksum(hrp, data):
        return None
    decoded = bech32.convertbits(data[:-6], 5, 8, False)
    if decoded is None:
        return None

    try:
        url = bytes(decoded).decode("utf-8")
    except UnicodeDecodeError:
        return None
    if not url.lower().startswith(("https://", "http://")):
        return None
    return url


def encode_lnurl(url: str) -> str:
    """Encode a URL as a lowercase ``lnurl1...`` bech32 string."""
    data = bech32.convertbits(url.encode("utf-8"), 8, 5, True)
    return bech32.bech32_encode("lnurl", data)


def lnurl_for_profile(lud16: str, lud06: str) -> str | None:
    """Discovery URL for a profile: ``lud16`` preferred, ``lud06`` otherwise."""
    if lud16:
        url = lightning_address_url(lud16)
        if url is not None:
            return url
    if lud06:
        return decode_lnurl(lud06)
    return None


# =============================================================================
# Zap requests
# =============================================================================


def zap_request_tags(
    app: App,
    amount_msat: int,
    relays: Sequence[str],
) -> list[list[str]]:
    """Tags of a kind-9734 zap request for an app listing.

    Order: recipient ``p``, app coordinate ``a``, ``amount`` in msat, the
    ``relays`` hint list, then the app event ``e`` when known.
    """
    tags = [
        ["p", app.pubkey],
        ["a", f"{EventKind.APP}:{app.pubkey}:{app.d_tag}"],
        ["amount", str(amount_msat)],
        ["relays", *relays],
    ]
    if app.id:
        tags.append(["e", app.id])
    return tags


def embedded_zap_request(tag_map: TagMap) -> dict[str, Any]:
    """Decode the zap request JSON carried in a receipt's ``description`` tag."""
    raw = tag_map.first("description")
    if not raw:
        return {}
    try:
        decoded = json.loads(raw)
    except (ValueError, RecursionError):
        return {}
    return decoded if isinstance(decoded, dict) else {}


# =============================================================================
# Receipt correlation
# =============================================================================


@dataclass(frozen=True, slots=True)
class CorrelationTarget:
    """What a pending zap is waiting for.

    Attributes:
        request_id: Id of the signed zap request.
        invoice: Invoice returned by the LNURL callback.
        address: App coordinate ``32267:pubkey:d_tag``.
        event_id: App event id.
    """

    request_id: str
    invoice: str | None = None
    address: str | None = None
    event_id: str | None = None


def _match_request_id(record: RawRecord, tag_map: TagMap, target: CorrelationTarget) -> bool:
    return embedded_zap_request(tag_map).get("id") == target.request_id


def _match_invoice(record: RawRecord, tag_map: TagMap, target: CorrelationTarget) -> bool:
    bolt11 = tag_map.first("bolt11")
    return bool(target.invoice and bolt11) and bolt11.lower() == target.invoice.lower()


def _match_address(record: RawRecord, tag_map: TagMap, target: CorrelationTarget) -> bool:
    return bool(target.address) and target.address in tag_map.get_all("a")


def _match_event_id(record: RawRecord, tag_map: TagMap, target: CorrelationTarget) -> bool:
    return bool(target.event_id) and target.event_id in tag_map.get_all("e")


# Tried in order; the first strategy that matches wins.
MATCH_STRATEGIES: tuple[
    tuple[str, Callable[[RawRecord, TagMap, CorrelationTarget], bool]], ...
] = (
    ("request_id", _match_request_id),
    ("invoice", _match_invoice),
    ("address", _match_address),
    ("event_id", _match_event_id),
)


def match_receipt(record: RawRecord, target: CorrelationTarget) -> str | None:
    """Return the name of the first strategy matching *record*, or ``None``."""
    if record.kind != EventKind.ZAP_RECEIPT:
        return None
    tag_map = to_tag_map(record)
    for name, strategy in MATCH_STRATEGIES:
        if strategy(record, tag_map, target):
            return name
    return None
