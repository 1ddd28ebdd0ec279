"""Zap handshake steps.

Module-level functions for each synchronous step of a NIP-57 zap, in the
order the [ZapOrchestrator][zapstore.services.zap.service.ZapOrchestrator]
runs them: endpoint discovery, amount bounds, zap request construction and
the invoice request. Each one either returns its result or raises a
[ZapError][zapstore.core.exceptions.ZapError] (or
[ValidationError][zapstore.core.exceptions.ValidationError] for caller
input) with a message fit for display.
"""

from __future__ import annotations

import math
import time
from typing import TYPE_CHECKING, Any

import aiohttp

from zapstore.core.exceptions import (
    AmountOutOfRangeError,
    EndpointResolutionError,
    InvoiceRequestError,
    ValidationError,
    ZapCapabilityError,
)
from zapstore.core.metrics import ZAP_STAGE_TOTAL
from zapstore.models.constants import (
    DEFAULT_MAX_SENDABLE_MSAT,
    DEFAULT_MIN_SENDABLE_MSAT,
    EventKind,
)
from zapstore.models.domain import ZapEndpoint, ZapInvoice
from zapstore.models.record import UnsignedRecord
from zapstore.nips.nip57 import lnurl_for_profile, zap_request_tags
from zapstore.services.catalog import fetch_profile_fresh
from zapstore.utils.http import get_json


if TYPE_CHECKING:
    from collections.abc import Sequence

    from zapstore.models.domain import App
    from zapstore.models.record import RawRecord
    from zapstore.services.context import ClientContext


def _msat(value: Any, default: int) -> int:
    # LNURL servers send 0, null or strings where a number is expected.
    if isinstance(value, bool) or not isinstance(value, int | float):
        return default
    if not math.isfinite(value) or value <= 0:
        return default
    return int(value)


# =============================================================================
# Endpoint discovery
# =============================================================================


async def resolve_zap_endpoint(ctx: ClientContext, pubkey: str) -> ZapEndpoint:
    """Discover the LNURL-pay endpoint of *pubkey* and check it accepts zaps.

    The profile is read fresh from relays. ``lud16`` is preferred over
    ``lud06``; a ``lud06`` must decode to an ``http(s)`` URL.

    Raises:
        EndpointResolutionError: If no profile is found, or the discovery
            request fails or returns something other than a JSON object.
        ZapCapabilityError: If the profile carries no usable Lightning
            address, or the endpoint does not advertise ``allowsNostr``
            with a ``nostrPubkey`` and a ``callback``.
    """
    logger = ctx.get_logger("zap")
    profile = await fetch_profile_fresh(ctx, pubkey)
    if profile is None:
        ZAP_STAGE_TOTAL.labels(stage="resolve", outcome="failed").inc()
        raise EndpointResolutionError("Could not find the publisher's profile.")

    lnurl = lnurl_for_profile(profile.lud16, profile.lud06)
    if lnurl is None:
        ZAP_STAGE_TOTAL.labels(stage="resolve", outcome="failed").inc()
        raise ZapCapabilityError(
            "This publisher has not set up a Lightning address for receiving zaps."
        )

    http = ctx.config.http
    try:
        response = await get_json(
            ctx.http, lnurl, timeout=ctx.config.timeouts.http, max_size=http.max_response_size
        )
    except (aiohttp.ClientError, TimeoutError, ValueError) as e:
        ZAP_STAGE_TOTAL.labels(stage="resolve", outcome="failed").inc()
        logger.warning("lnurl_fetch_failed", url=lnurl, error=str(e))
        raise EndpointResolutionError(f"LNURL fetch failed: {e}") from e

    if not response.ok:
        ZAP_STAGE_TOTAL.labels(stage="resolve", outcome="failed").inc()
        raise EndpointResolutionError(f"LNURL fetch failed: {response.status}")
    data = response.data
    if not isinstance(data, dict):
        ZAP_STAGE_TOTAL.labels(stage="resolve", outcome="failed").inc()
        raise EndpointResolutionError("LNURL endpoint returned an invalid response.")

    callback = data.get("callback")
    nostr_pubkey = data.get("nostrPubkey")
    if (
        data.get("allowsNostr") is not True
        or not isinstance(nostr_pubkey, str)
        or not nostr_pubkey
        or not isinstance(callback, str)
        or not callback
    ):
        ZAP_STAGE_TOTAL.labels(stage="resolve", outcome="failed").inc()
        raise ZapCapabilityError("This publisher's Lightning address does not support zaps.")

    ZAP_STAGE_TOTAL.labels(stage="resolve", outcome="ok").inc()
    logger.debug("zap_endpoint_resolved", pubkey=pubkey, lnurl=lnurl)
    return ZapEndpoint(
        lnurl=lnurl,
        callback=callback,
        min_sendable=_msat(data.get("minSendable"), DEFAULT_MIN_SENDABLE_MSAT),
        max_sendable=_msat(data.get("maxSendable"), DEFAULT_MAX_SENDABLE_MSAT),
        nostr_pubkey=nostr_pubkey,
        allows_nostr=True,
    )


# =============================================================================
# Amounts and requests
# =============================================================================


def check_amount_bounds(endpoint: ZapEndpoint, amount_sats: int) -> int:
    """Check *amount_sats* against the endpoint range.

    Returns:
        The amount in millisatoshis.

    Raises:
        AmountOutOfRangeError: If the amount is below ``min_sendable`` or
            above ``max_sendable``.
    """
    amount_msat = amount_sats * 1000
    if amount_msat < endpoint.min_sendable:
        limit = math.ceil(endpoint.min_sendable / 1000)
        raise AmountOutOfRangeError(
            f"Minimum zap amount is {limit} sats.", bound="min", limit_sats=limit
        )
    if amount_msat > endpoint.max_sendable:
        limit = endpoint.max_sendable // 1000
        raise AmountOutOfRangeError(
            f"Maximum zap amount is {limit} sats.", bound="max", limit_sats=limit
        )
    return amount_msat


def build_zap_request(
    app: App,
    amount_sats: int,
    comment: str,
    relays: Sequence[str],
    created_at: int | None = None,
) -> UnsignedRecord:
    """Kind-9734 zap request template for *app*, ready for a signer.

    Raises:
        ValidationError: If the app has no publisher key or identifier, or
            the amount is not a positive integer.
    """
    if not app.pubkey or not app.d_tag:
        raise ValidationError("Missing app information for zap request.")
    if isinstance(amount_sats, bool) or not isinstance(amount_sats, int) or amount_sats <= 0:
        raise ValidationError("Invalid zap amount.")
    return UnsignedRecord(
        kind=EventKind.ZAP_REQUEST,
        created_at=created_at if created_at is not None else int(time.time()),
        tags=zap_request_tags(app, amount_sats * 1000, relays),
        content=(comment or "").strip(),
    )


async def request_zap_invoice(
    http: aiohttp.ClientSession,
    callback: str,
    zap_request: RawRecord,
    amount_sats: int,
    *,
    timeout: float = 10.0,  # noqa: ASYNC109
    max_size: int = 1_048_576,
) -> ZapInvoice:
    """Ask the LNURL callback for an invoice carrying *zap_request*.

    Raises:
        InvoiceRequestError: If the request fails, the server answers with
            ``status: ERROR`` (its ``reason`` is kept) or an error status,
            or no ``pr`` invoice comes back.
    """
    params = {"amount": str(amount_sats * 1000), "nostr": zap_request.to_json()}
    try:
        response = await get_json(http, callback, params=params, timeout=timeout, max_size=max_size)
    except (aiohttp.ClientError, TimeoutError, ValueError) as e:
        ZAP_STAGE_TOTAL.labels(stage="invoice", outcome="failed").inc()
        raise InvoiceRequestError(f"Invoice request failed: {e}") from e

    data = response.data if isinstance(response.data, dict) else {}
    if data.get("status") == "ERROR":
        ZAP_STAGE_TOTAL.labels(stage="invoice", outcome="failed").inc()
        reason = data.get("reason") if isinstance(data.get("reason"), str) else None
        raise InvoiceRequestError(reason or "Failed to get invoice", reason=reason)
    if not response.ok:
        ZAP_STAGE_TOTAL.labels(stage="invoice", outcome="failed").inc()
        raise InvoiceRequestError(f"Invoice request failed: {response.status}")

    invoice = data.get("pr")
    if not isinstance(invoice, str) or not invoice:
        ZAP_STAGE_TOTAL.labels(stage="invoice", outcome="failed").inc()
        raise InvoiceRequestError("No invoice returned from LNURL endpoint")

    ZAP_STAGE_TOTAL.labels(stage="invoice", outcome="ok").inc()
    success_action = data.get("successAction")
    routes = data.get("routes")
    return ZapInvoice(
        invoice=invoice,
        success_action=success_action if isinstance(success_action, dict) else None,
        routes=tuple(routes) if isinstance(routes, list) else (),
    )
