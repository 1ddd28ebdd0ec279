"""
Unit tests for services.zap.utils module.

Tests:
- resolve_zap_endpoint() profile lookup, LNURL discovery and capability checks
- check_amount_bounds() min/max with sat rounding
- build_zap_request() validation and template layout
- request_zap_invoice() error mapping and optional fields
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from zapstore.core.exceptions import (
    AmountOutOfRangeError,
    EndpointResolutionError,
    InvoiceRequestError,
    ValidationError,
    ZapCapabilityError,
)
from zapstore.models.constants import (
    DEFAULT_MAX_SENDABLE_MSAT,
    DEFAULT_MIN_SENDABLE_MSAT,
    EventKind,
)
from zapstore.models.domain import ZapEndpoint
from zapstore.nips.nip57 import encode_lnurl
from zapstore.nips.parsers import parse_app
from zapstore.services.context import ClientContext
from zapstore.services.zap.utils import (
    build_zap_request,
    check_amount_bounds,
    request_zap_invoice,
    resolve_zap_endpoint,
)
from zapstore.utils.http import JsonResponse
from tests.conftest import PUBLISHER, SENDER, FakeTransport, app_tags, make_record


GET_JSON = "zapstore.services.zap.utils.get_json"

LNURLP = {
    "callback": "https://getalby.com/lnurlp/alice/callback",
    "minSendable": 1000,
    "maxSendable": 11_000_000_000,
    "allowsNostr": True,
    "nostrPubkey": SENDER,
    "tag": "payRequest",
}


def _profile(**fields: str):
    return make_record(EventKind.PROFILE, content=json.dumps({"name": "alice", **fields}))


def _endpoint(min_sendable: int = 1000, max_sendable: int = 100_000_000) -> ZapEndpoint:
    return ZapEndpoint(
        lnurl="https://example.com/.well-known/lnurlp/alice",
        callback="https://example.com/cb",
        min_sendable=min_sendable,
        max_sendable=max_sendable,
        nostr_pubkey=SENDER,
        allows_nostr=True,
    )


def _app(d_tag: str = "com.example", id: str = "e" * 64):  # noqa: A002
    return parse_app(make_record(EventKind.APP, tags=app_tags(d_tag), id=id))


# =============================================================================
# resolve_zap_endpoint() Tests
# =============================================================================


class TestResolveZapEndpoint:
    """LNURL-pay discovery."""

    async def test_lud16(self, ctx: ClientContext, transport: FakeTransport) -> None:
        transport.add(_profile(lud16="alice@getalby.com"))
        with patch(GET_JSON, AsyncMock(return_value=JsonResponse(200, LNURLP))) as get_json:
            endpoint = await resolve_zap_endpoint(ctx, PUBLISHER)
        assert get_json.await_args.args[1] == "https://getalby.com/.well-known/lnurlp/alice"
        assert endpoint.callback == LNURLP["callback"]
        assert endpoint.min_sendable == 1000
        assert endpoint.max_sendable == 11_000_000_000
        assert endpoint.nostr_pubkey == SENDER
        assert endpoint.allows_nostr is True

    async def test_lud06(self, ctx: ClientContext, transport: FakeTransport) -> None:
        transport.add(_profile(lud06=encode_lnurl("https://pay.example.com/lnurlp/bob")))
        with patch(GET_JSON, AsyncMock(return_value=JsonResponse(200, LNURLP))) as get_json:
            endpoint = await resolve_zap_endpoint(ctx, PUBLISHER)
        assert endpoint.lnurl == "https://pay.example.com/lnurlp/bob"
        assert get_json.await_args.args[1] == "https://pay.example.com/lnurlp/bob"

    async def test_defaults_for_missing_bounds(
        self, ctx: ClientContext, transport: FakeTransport
    ) -> None:
        transport.add(_profile(lud16="alice@getalby.com"))
        data = {**LNURLP, "minSendable": 0, "maxSendable": None}
        with patch(GET_JSON, AsyncMock(return_value=JsonResponse(200, data))):
            endpoint = await resolve_zap_endpoint(ctx, PUBLISHER)
        assert endpoint.min_sendable == DEFAULT_MIN_SENDABLE_MSAT
        assert endpoint.max_sendable == DEFAULT_MAX_SENDABLE_MSAT

    async def test_defaults_for_non_finite_bounds(
        self, ctx: ClientContext, transport: FakeTransport
    ) -> None:
        transport.add(_profile(lud16="alice@getalby.com"))
        data = {**LNURLP, "minSendable": float("nan"), "maxSendable": float("inf")}
        with patch(GET_JSON, AsyncMock(return_value=JsonResponse(200, data))):
            endpoint = await resolve_zap_endpoint(ctx, PUBLISHER)
        assert endpoint.min_sendable == DEFAULT_MIN_SENDABLE_MSAT
        assert endpoint.max_sendable == DEFAULT_MAX_SENDABLE_MSAT

    async def test_no_profile(self, ctx: ClientContext) -> None:
        with pytest.raises(EndpointResolutionError, match="Could not find the publisher's profile"):
            await resolve_zap_endpoint(ctx, PUBLISHER)

    async def test_no_lightning_address(
        self, ctx: ClientContext, transport: FakeTransport
    ) -> None:
        transport.add(_profile())
        with pytest.raises(ZapCapabilityError, match="has not set up a Lightning address"):
            await resolve_zap_endpoint(ctx, PUBLISHER)

    async def test_non_http_lud06(self, ctx: ClientContext, transport: FakeTransport) -> None:
        transport.add(_profile(lud06=encode_lnurl("ftp://pay.example.com/bob")))
        with patch(GET_JSON, AsyncMock()) as get_json:
            with pytest.raises(ZapCapabilityError):
                await resolve_zap_endpoint(ctx, PUBLISHER)
        get_json.assert_not_awaited()

    async def test_profile_read_fresh(self, ctx: ClientContext, transport: FakeTransport) -> None:
        transport.add(_profile())
        with pytest.raises(ZapCapabilityError):
            await resolve_zap_endpoint(ctx, PUBLISHER)
        updated = make_record(
            EventKind.PROFILE,
            content=json.dumps({"lud16": "alice@getalby.com"}),
            created_at=1_800_000_000,
        )
        transport.add(updated)
        with patch(GET_JSON, AsyncMock(return_value=JsonResponse(200, LNURLP))):
            endpoint = await resolve_zap_endpoint(ctx, PUBLISHER)
        assert endpoint.callback == LNURLP["callback"]

    @pytest.mark.parametrize(
        "error", [aiohttp.ClientConnectionError("refused"), TimeoutError(), ValueError("too big")]
    )
    async def test_fetch_failure(
        self, ctx: ClientContext, transport: FakeTransport, error: Exception
    ) -> None:
        transport.add(_profile(lud16="alice@getalby.com"))
        with patch(GET_JSON, AsyncMock(side_effect=error)):
            with pytest.raises(EndpointResolutionError, match="LNURL fetch failed"):
                await resolve_zap_endpoint(ctx, PUBLISHER)

    async def test_error_status(self, ctx: ClientContext, transport: FakeTransport) -> None:
        transport.add(_profile(lud16="alice@getalby.com"))
        with patch(GET_JSON, AsyncMock(return_value=JsonResponse(404, None))):
            with pytest.raises(EndpointResolutionError, match="LNURL fetch failed: 404"):
                await resolve_zap_endpoint(ctx, PUBLISHER)

    async def test_non_object_body(self, ctx: ClientContext, transport: FakeTransport) -> None:
        transport.add(_profile(lud16="alice@getalby.com"))
        with patch(GET_JSON, AsyncMock(return_value=JsonResponse(200, ["x"]))):
            with pytest.raises(EndpointResolutionError, match="invalid response"):
                await resolve_zap_endpoint(ctx, PUBLISHER)

    @pytest.mark.parametrize(
        "override",
        [
            {"allowsNostr": False},
            {"allowsNostr": "true"},
            {"nostrPubkey": ""},
            {"nostrPubkey": None},
            {"callback": None},
        ],
    )
    async def test_zaps_unsupported(
        self, ctx: ClientContext, transport: FakeTransport, override: dict
    ) -> None:
        transport.add(_profile(lud16="alice@getalby.com"))
        data = {**LNURLP, **override}
        with patch(GET_JSON, AsyncMock(return_value=JsonResponse(200, data))):
            with pytest.raises(ZapCapabilityError, match="does not support zaps"):
                await resolve_zap_endpoint(ctx, PUBLISHER)


# =============================================================================
# check_amount_bounds() Tests
# =============================================================================


class TestCheckAmountBounds:
    def test_within(self) -> None:
        assert check_amount_bounds(_endpoint(), 21) == 21_000

    def test_at_bounds(self) -> None:
        assert check_amount_bounds(_endpoint(1000, 21_000), 1) == 1000
        assert check_amount_bounds(_endpoint(1000, 21_000), 21) == 21_000

    def test_below_min_rounds_up(self) -> None:
        with pytest.raises(AmountOutOfRangeError, match="Minimum zap amount is 11 sats.") as exc:
            check_amount_bounds(_endpoint(min_sendable=10_500), 10)
        assert exc.value.bound == "min"
        assert exc.value.limit_sats == 11

    def test_above_max_rounds_down(self) -> None:
        with pytest.raises(AmountOutOfRangeError, match="Maximum zap amount is 99 sats.") as exc:
            check_amount_bounds(_endpoint(max_sendable=99_900), 100)
        assert exc.value.bound == "max"
        assert exc.value.limit_sats == 99


# =============================================================================
# build_zap_request() Tests
# =============================================================================


class TestBuildZapRequest:
    def test_template(self) -> None:
        unsigned = build_zap_request(_app(), 21, "  thanks!  ", ["wss://a"], created_at=123)
        assert unsigned.kind == EventKind.ZAP_REQUEST
        assert unsigned.created_at == 123
        assert unsigned.content == "thanks!"
        assert unsigned.tags == (
            ("p", PUBLISHER),
            ("a", f"32267:{PUBLISHER}:com.example"),
            ("amount", "21000"),
            ("relays", "wss://a"),
            ("e", "e" * 64),
        )

    def test_missing_identity(self) -> None:
        app = parse_app(make_record(EventKind.APP, tags=[["f", "android-arm64-v8a"]]))
        with pytest.raises(ValidationError, match="Missing app information for zap request."):
            build_zap_request(app, 21, "", [])

    @pytest.mark.parametrize("amount", [0, -5, True, 2.5])
    def test_invalid_amount(self, amount: object) -> None:
        with pytest.raises(ValidationError, match="Invalid zap amount."):
            build_zap_request(_app(), amount, "", [])  # type: ignore[arg-type]


# =============================================================================
# request_zap_invoice() Tests
# =============================================================================


class TestRequestZapInvoice:
    """Invoice request and error mapping."""

    ZAP_REQUEST = make_record(EventKind.ZAP_REQUEST, tags=[["p", PUBLISHER]], pubkey=SENDER)

    async def _request(self, response: JsonResponse | None = None, error: Exception | None = None):
        mock = AsyncMock(return_value=response, side_effect=error)
        with patch(GET_JSON, mock):
            result = await request_zap_invoice(
                MagicMock(), "https://example.com/cb", self.ZAP_REQUEST, 21, timeout=3.0
            )
        return result, mock

    async def test_success(self) -> None:
        data = {
            "pr": "lnbc210n1invoice",
            "successAction": {"tag": "message", "message": "Thanks"},
            "routes": [],
        }
        invoice, mock = await self._request(JsonResponse(200, data))
        assert invoice.invoice == "lnbc210n1invoice"
        assert invoice.success_action == {"tag": "message", "message": "Thanks"}
        assert invoice.routes == ()
        params = mock.await_args.kwargs["params"]
        assert params["amount"] == "21000"
        assert json.loads(params["nostr"])["id"] == self.ZAP_REQUEST.id
        assert mock.await_args.kwargs["timeout"] == 3.0

    async def test_optional_fields_malformed(self) -> None:
        data = {"pr": "lnbc1x", "successAction": "nope", "routes": "nope"}
        invoice, _ = await self._request(JsonResponse(200, data))
        assert invoice.success_action is None
        assert invoice.routes == ()

    async def test_server_reason_kept(self) -> None:
        data = {"status": "ERROR", "reason": "Amount below minimum"}
        with pytest.raises(InvoiceRequestError, match="Amount below minimum") as exc:
            await self._request(JsonResponse(400, data))
        assert exc.value.reason == "Amount below minimum"

    async def test_error_without_reason(self) -> None:
        with pytest.raises(InvoiceRequestError, match="Failed to get invoice") as exc:
            await self._request(JsonResponse(200, {"status": "ERROR"}))
        assert exc.value.reason is None

    async def test_error_status(self) -> None:
        with pytest.raises(InvoiceRequestError, match="Invoice request failed: 500"):
            await self._request(JsonResponse(500, None))

    async def test_missing_invoice(self) -> None:
        with pytest.raises(InvoiceRequestError, match="No invoice returned"):
            await self._request(JsonResponse(200, {"pr": ""}))

    async def test_network_error(self) -> None:
        with pytest.raises(InvoiceRequestError, match="Invoice request failed: refused"):
            await self._request(error=aiohttp.ClientConnectionError("refused"))
