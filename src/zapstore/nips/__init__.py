"""Nostr protocol helpers: event normalization, NIP-19 identifiers and NIP-57 zaps.

Attributes:
    parsers: Per-kind normalizers producing [zapstore.models.domain][] records.
    tags: Tag-map and JSON-content access shared by the parsers.
    nip19: ``naddr``/``npub`` encoding and app slug decoding.
    nip57: Invoice amounts, LNURL decoding, zap request tags and receipt
        correlation strategies.
"""

from .nip19 import app_slug, encode_naddr, parse_app_slug, to_npub
from .nip57 import (
    MATCH_STRATEGIES,
    CorrelationTarget,
    decode_lnurl,
    format_sats,
    invoice_amount_msat,
    invoice_amount_sats,
    lightning_address_url,
    lnurl_for_profile,
    match_receipt,
    zap_request_tags,
)
from .parsers import (
    Renderer,
    normalize_license,
    parse_app,
    parse_app_stack,
    parse_comment,
    parse_file_metadata,
    parse_profile,
    parse_release,
    parse_zap_receipt,
    render_plain,
)
from .tags import REPEATABLE_TAGS, TagMap, parse_content, to_tag_map


__all__ = [
    "MATCH_STRATEGIES",
    "REPEATABLE_TAGS",
    "CorrelationTarget",
    "Renderer",
    "TagMap",
    "app_slug",
    "decode_lnurl",
    "encode_naddr",
    "format_sats",
    "invoice_amount_msat",
    "invoice_amount_sats",
    "lightning_address_url",
    "lnurl_for_profile",
    "match_receipt",
    "normalize_license",
    "parse_app",
    "parse_app_slug",
    "parse_app_stack",
    "parse_comment",
    "parse_content",
    "parse_file_metadata",
    "parse_profile",
    "parse_release",
    "parse_zap_receipt",
    "render_plain",
    "to_npub",
    "to_tag_map",
    "zap_request_tags",
]
