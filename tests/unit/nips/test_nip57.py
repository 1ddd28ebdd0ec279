"""
Unit tests for nips.nip57 module.

Tests:
- bolt11 amount decoding by multiplier
- format_sats() display
- Lightning address and bech32 LNURL discovery
- Zap request tag layout
- Receipt correlation strategy order
"""

import json

import pytest

from zapstore.nips.nip57 import (
    CorrelationTarget,
    decode_lnurl,
    encode_lnurl,
    format_sats,
    invoice_amount_msat,
    invoice_amount_sats,
    lightning_address_url,
    lnurl_for_profile,
    match_receipt,
    zap_request_tags,
)
from zapstore.nips.parsers import parse_app
from tests.conftest import PUBLISHER, app_tags, make_record


# =============================================================================
# Invoice amounts
# =============================================================================


class TestInvoiceAmount:
    """bolt11 human-readable amount decoding."""

    @pytest.mark.parametrize(
        ("invoice", "sats"),
        [
            ("lnbc25m1pvjluezpp5qqqsyqcyq5rqwzqf", 2_500_000),
            ("lnbc25u1pvjluezpp5qqqsyqcyq5rqwzqf", 2_500),
            ("lnbc25n1pvjluezpp5qqqsyqcyq5rqwzqf", 2),
            ("lnbc25", 2_500_000_000),
            ("LNBC10U1PVJLUEZ", 1_000),
            ("garbage", 0),
            ("lnbc٢٥m1xyz", 0),
            ("", 0),
        ],
    )
    def test_sats(self, invoice: str, sats: int) -> None:
        assert invoice_amount_sats(invoice) == sats

    def test_pico_floors_to_msat(self) -> None:
        assert invoice_amount_msat("lnbc25p1xyz") == 2
        assert invoice_amount_sats("lnbc25p1xyz") == 0


class TestFormatSats:
    @pytest.mark.parametrize(
        ("sats", "text"),
        [
            (21, "21 sats"),
            (21_000, "21.0K sats"),
            (2_500_000, "2.5M sats"),
            (150_000_000, "1.50 BTC"),
        ],
    )
    def test_format(self, sats: int, text: str) -> None:
        assert format_sats(sats) == text


# =============================================================================
# LNURL discovery
# =============================================================================


class TestLightningAddress:
    def test_valid(self) -> None:
        assert (
            lightning_address_url("alice@getalby.com")
            == "https://getalby.com/.well-known/lnurlp/alice"
        )

    @pytest.mark.parametrize("address", ["alice", "@getalby.com", "alice@", "a@b@c", "a@b/c"])
    def test_invalid(self, address: str) -> None:
        assert lightning_address_url(address) is None


class TestLnurl:
    """bech32 LNURL encoding and decoding."""

    URL = "https://service.example.com/api/v1/lnurl/pay/abcdef0123456789abcdef0123456789"

    def test_round_trip_beyond_bip173_length(self) -> None:
        lnurl = encode_lnurl(self.URL)
        assert len(lnurl) > 90
        assert decode_lnurl(lnurl) == self.URL

    def test_uppercase_and_lightning_prefix(self) -> None:
        lnurl = encode_lnurl(self.URL).upper()
        assert decode_lnurl(f"lightning:{lnurl}") == self.URL

    def test_mixed_case_rejected(self) -> None:
        lnurl = encode_lnurl(self.URL)
        assert decode_lnurl(lnurl[:10] + lnurl[10:].upper()) is None

    def test_bad_checksum(self) -> None:
        lnurl = encode_lnurl(self.URL)
        tampered = lnurl[:-1] + ("q" if lnurl[-1] != "q" else "p")
        assert decode_lnurl(tampered) is None

    def test_non_http_payload(self) -> None:
        assert decode_lnurl(encode_lnurl("ftp://example.com/pay")) is None

    def test_wrong_hrp(self) -> None:
        assert decode_lnurl("bc1qw508d6qejxtdg4y5r3zarvary0c5xw7kv8f3t4") is None

    def test_garbage(self) -> None:
        assert decode_lnurl("not an lnurl") is None


class TestLnurlForProfile:
    def test_lud16_preferred(self) -> None:
        lud06 = encode_lnurl("https://other.example.com/pay")
        assert lnurl_for_profile("bob@example.com", lud06) == (
            "https://example.com/.well-known/lnurlp/bob"
        )

    def test_lud06_fallback(self) -> None:
        lud06 = encode_lnurl("https://other.example.com/pay")
        assert lnurl_for_profile("", lud06) == "https://other.example.com/pay"

    def test_malformed_lud16_falls_back_to_lud06(self) -> None:
        lud06 = encode_lnurl("https://other.example.com/pay")
        assert lnurl_for_profile("not-an-address", lud06) == "https://other.example.com/pay"

    def test_nothing(self) -> None:
        assert lnurl_for_profile("", "") is None


# =============================================================================
# Zap requests
# =============================================================================


class TestZapRequestTags:
    def test_layout(self) -> None:
        app = parse_app(make_record(32267, tags=app_tags("com.example"), id="e" * 64))
        tags = zap_request_tags(app, 21_000, ["wss://a", "wss://b"])
        assert tags == [
            ["p", PUBLISHER],
            ["a", f"32267:{PUBLISHER}:com.example"],
            ["amount", "21000"],
            ["relays", "wss://a", "wss://b"],
            ["e", "e" * 64],
        ]


# =============================================================================
# Receipt correlation
# =============================================================================


def _receipt(*, request_id: str = "", bolt11: str = "", a: str = "", e: str = ""):
    tags = [["p", PUBLISHER]]
    if request_id:
        tags.append(["description", json.dumps({"id": request_id, "kind": 9734})])
    if bolt11:
        tags.append(["bolt11", bolt11])
    if a:
        tags.append(["a", a])
    if e:
        tags.append(["e", e])
    return make_record(9735, tags=tags)


class TestMatchReceipt:
    """Strategies are tried in order; the first match wins."""

    TARGET = CorrelationTarget(
        request_id="r" * 64,
        invoice="lnbc210n1target",
        address=f"32267:{PUBLISHER}:com.example",
        event_id="e" * 64,
    )

    def test_request_id_beats_others(self) -> None:
        record = _receipt(
            request_id="r" * 64, bolt11="lnbc210n1target", a=self.TARGET.address, e="e" * 64
        )
        assert match_receipt(record, self.TARGET) == "request_id"

    def test_invoice_case_insensitive(self) -> None:
        record = _receipt(request_id="x" * 64, bolt11="LNBC210N1TARGET")
        assert match_receipt(record, self.TARGET) == "invoice"

    def test_address(self) -> None:
        record = _receipt(bolt11="lnbc1other", a=self.TARGET.address)
        assert match_receipt(record, self.TARGET) == "address"

    def test_event_id(self) -> None:
        record = _receipt(e="e" * 64)
        assert match_receipt(record, self.TARGET) == "event_id"

    def test_no_match(self) -> None:
        record = _receipt(request_id="x" * 64, bolt11="lnbc1other", a="32267:x:y", e="f" * 64)
        assert match_receipt(record, self.TARGET) is None

    def test_wrong_kind(self) -> None:
        record = make_record(1111, tags=[["e", "e" * 64]])
        assert match_receipt(record, self.TARGET) is None

    def test_missing_optional_fields_never_match(self) -> None:
        target = CorrelationTarget(request_id="r" * 64)
        record = _receipt(bolt11="lnbc1x", a="32267:x:y", e="e" * 64)
        assert match_receipt(record, target) is None

    def test_malformed_description(self) -> None:
        record = make_record(9735, tags=[["description", "{not json"], ["e", "e" * 64]])
        assert match_receipt(record, self.TARGET) == "event_id"
