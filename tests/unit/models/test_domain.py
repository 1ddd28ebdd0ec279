"""
Unit tests for models.domain module.

Tests:
- AddressPointer string form and parse() edge cases
- to_dict() projections (nested records, tuples, summary count)
- Profile.has_lightning_address
"""

import pytest

from tests.conftest import PUBLISHER, make_record
from zapstore.models.domain import AddressPointer, Profile, ZapReceipt, ZapSummary


class TestAddressPointer:
    """Coordinate formatting and parsing."""

    def test_str(self) -> None:
        assert str(AddressPointer(32267, "ab", "com.example")) == "32267:ab:com.example"

    def test_parse_keeps_colons_in_identifier(self) -> None:
        pointer = AddressPointer.parse("30063:ab:com.example@1:2")
        assert pointer == AddressPointer(30063, "ab", "com.example@1:2")

    def test_parse_without_identifier(self) -> None:
        assert AddressPointer.parse("0:ab") == AddressPointer(0, "ab", "")

    @pytest.mark.parametrize(
        "value", ["", "abc", "x:ab:d", "32267::d", "-1:ab:d", "²:ab:d", "٣٢٢٦٧:ab:d", "3²:ab:d"]
    )
    def test_parse_malformed(self, value: str) -> None:
        assert AddressPointer.parse(value) is None


def _receipt(amount: int) -> ZapReceipt:
    return ZapReceipt(
        id="r",
        pubkey=PUBLISHER,
        npub="npub",
        amount_sats=amount,
        invoice="lnbc",
        preimage="",
        description="",
        sender_pubkey="",
        sender_npub="",
        created_at=1,
        event=make_record(9735),
    )


class TestToDict:
    """JSON projections."""

    def test_nested_record_serialized(self) -> None:
        data = _receipt(21).to_dict()
        assert data["amount_sats"] == 21
        assert data["event"]["kind"] == 9735
        assert isinstance(data["event"]["tags"], list)

    def test_summary_includes_count(self) -> None:
        summary = ZapSummary(zaps=(_receipt(21), _receipt(100)), total_sats=121)
        data = summary.to_dict()
        assert data["count"] == 2
        assert data["total_sats"] == 121
        assert [z["amount_sats"] for z in data["zaps"]] == [21, 100]


class TestProfile:
    """Profile helpers."""

    @pytest.mark.parametrize(
        ("lud16", "lud06", "expected"),
        [("a@b.com", "", True), ("", "lnurl1xyz", True), ("", "", False)],
    )
    def test_has_lightning_address(self, lud16: str, lud06: str, expected: bool) -> None:
        profile = Profile(
            pubkey=PUBLISHER,
            npub="npub",
            name="",
            display_name="",
            picture="",
            about="",
            nip05="",
            lud16=lud16,
            lud06=lud06,
            created_at=0,
        )
        assert profile.has_lightning_address is expected
