"""
NIP-19 identifiers for apps and authors.

App pages are addressed by slug: the bech32 ``naddr`` of the listing's
coordinate, with ``<npub>-<d_tag>`` as the legacy form. Encoding is
delegated to ``nostr_sdk``; every encoder here is total and falls back to
the plain form when the key material is unusable.

See Also:
    [parse_app()][zapstore.nips.parsers.parse_app]: Fills ``npub`` and ``slug``.
"""

from __future__ import annotations

import logging

from nostr_sdk import Coordinate, Kind, Nip19Coordinate, NostrSdkError, PublicKey

from zapstore.models.constants import EventKind


logger = logging.getLogger(__name__)

_NPUB_LENGTH = 63


def to_npub(pubkey: str) -> str:
    """Encode a hex public key as ``npub``; return the input unchanged on failure."""
    try:
        return PublicKey.parse(pubkey).to_bech32()
    except (NostrSdkError, ValueError, TypeError):
        return pubkey


def encode_naddr(kind: int, pubkey: str, identifier: str) -> str | None:
    """Encode an addressable coordinate as ``naddr``, or ``None`` if impossible."""
    try:
        coordinate = Coordinate(Kind(kind), PublicKey.parse(pubkey), identifier)
        return Nip19Coordinate(coordinate, []).to_bech32()
    except (NostrSdkError, ValueError, TypeError, OverflowError) as e:
        logger.debug("naddr_encode_failed pubkey=%s identifier=%s error=%s", pubkey, identifier, e)
        return None


def app_slug(pubkey: str, d_tag: str, kind: int = EventKind.APP) -> str:
    """Stable URL-safe identifier for an app listing.

    Returns:
        The ``naddr`` of ``kind:pubkey:d_tag``, or ``<npub>-<d_tag>`` when
        encoding fails (``npub`` itself falling back to the raw pubkey).
    """
    naddr = encode_naddr(kind, pubkey, d_tag)
    if naddr is not None:
        return naddr
    return f"{to_npub(pubkey)}-{d_tag}"


def parse_app_slug(slug: str) -> tuple[str, str]:
    """Decode an app slug into ``(pubkey_hex, d_tag)``.

    Accepts the ``naddr`` form (which must point at an app listing) and the
    legacy ``<npub>-<d_tag>`` form.

    Raises:
        ValueError: If the slug matches neither form.
    """
    if slug.startswith("naddr1"):
        try:
            coordinate = Nip19Coordinate.from_bech32(slug).coordinate()
            if coordinate.kind().as_u16() == EventKind.APP:
                return coordinate.public_key().to_hex(), coordinate.identifier()
        except (NostrSdkError, ValueError, TypeError) as e:
            logger.debug("naddr_decode_failed slug=%s error=%s", slug, e)

    if len(slug) < _NPUB_LENGTH + 2:
        raise ValueError("Invalid app URL format: too short")
    if not slug.startswith("npub1"):
        raise ValueError("Invalid app URL format: must start with npub or naddr")

    npub, d_tag = slug[:_NPUB_LENGTH], slug[_NPUB_LENGTH + 1 :]
    try:
        pubkey = PublicKey.parse(npub).to_hex()
    except (NostrSdkError, ValueError, TypeError) as e:
        raise ValueError(f"Failed to decode npub: {e}") from e
    return pubkey, d_tag
