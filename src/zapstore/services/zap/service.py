"""Zap orchestrator: drives one NIP-57 zap from request to receipt.

A zap runs through these states::

    idle -> resolving_endpoint -> requesting_invoice -> correlating
         -> matched | cancelled

and ends in ``failed`` when a step before correlation raises. The
invoice is returned to the caller as soon as it is issued; paying it is
outside this package. Correlation then continues in the background on a
[ReceiptWatch][zapstore.services.zap.watch.ReceiptWatch].

Examples:
    ```python
    orchestrator = ZapOrchestrator(ctx)
    session = await orchestrator.start(app, 21, "great app")
    print(session.invoice.invoice)  # hand to a wallet
    receipt = await session.watch.wait()
    ```
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from zapstore.core.exceptions import ZapError, ZapstoreError

from .utils import (
    build_zap_request,
    check_amount_bounds,
    request_zap_invoice,
    resolve_zap_endpoint,
)
from .watch import ReceiptWatch, ZapState, watch_zap_receipt


if TYPE_CHECKING:
    from collections.abc import Callable

    from zapstore.models.domain import App, ZapEndpoint, ZapInvoice, ZapReceipt
    from zapstore.models.record import RawRecord
    from zapstore.services.context import ClientContext
    from zapstore.utils.keys import Signer


_IN_PROGRESS = frozenset(
    {ZapState.RESOLVING_ENDPOINT, ZapState.REQUESTING_INVOICE, ZapState.CORRELATING}
)


@dataclass(frozen=True, slots=True)
class ZapSession:
    """Everything a caller needs once the invoice is issued.

    Attributes:
        invoice: The bolt11 invoice and its optional success action.
        zap_request: The signed kind-9734 request embedded in the invoice.
        endpoint: The recipient's LNURL-pay endpoint.
        amount_sats: Amount being zapped.
        watch: Correlation of the request with its receipt.
    """

    invoice: ZapInvoice
    zap_request: RawRecord
    endpoint: ZapEndpoint
    amount_sats: int
    watch: ReceiptWatch


class ZapOrchestrator:
    """Runs zaps for one client context, one at a time.

    Args:
        ctx: Client context providing relays, HTTP, cache and signer.
    """

    def __init__(self, ctx: ClientContext) -> None:
        self._ctx = ctx
        self._logger = ctx.get_logger("zap")
        self._state = ZapState.IDLE
        self._session: ZapSession | None = None
        self._error: ZapstoreError | None = None

    @property
    def state(self) -> ZapState:
        """Current phase; follows the receipt watch once correlating."""
        if self._state == ZapState.CORRELATING and self._session is not None:
            return self._session.watch.state
        return self._state

    @property
    def session(self) -> ZapSession | None:
        return self._session

    @property
    def error(self) -> ZapstoreError | None:
        """The error that moved the orchestrator to ``failed``, if any."""
        return self._error

    async def start(
        self,
        app: App,
        amount_sats: int,
        comment: str = "",
        *,
        signer: Signer | None = None,
        on_receipt: Callable[[ZapReceipt], None] | None = None,
    ) -> ZapSession:
        """Request an invoice for zapping *app* and start watching for its receipt.

        Args:
            app: The listing to zap; its publisher is the recipient.
            amount_sats: Amount in sats.
            comment: Zap comment; surrounding whitespace is trimmed.
            signer: Overrides the context signer for the zap request.
            on_receipt: Called once when the matching receipt arrives.

        Returns:
            The issued invoice with the live receipt watch.

        Raises:
            ZapError: If a zap is already in progress, or endpoint
                resolution, the amount check or the invoice request fails.
            ValidationError: If the app identity or amount is invalid.
            SignerUnavailableError: If no signer is available.
        """
        if self.state in _IN_PROGRESS:
            raise ZapError("A zap is already in progress.")
        self._session = None
        self._error = None
        ctx = self._ctx

        try:
            resolved_signer = ctx.require_signer(signer)
            unsigned = build_zap_request(app, amount_sats, comment, ctx.config.relays.social)

            self._state = ZapState.RESOLVING_ENDPOINT
            endpoint = await resolve_zap_endpoint(ctx, app.pubkey)
            check_amount_bounds(endpoint, amount_sats)
            zap_request = await resolved_signer.sign_event(unsigned)

            self._state = ZapState.REQUESTING_INVOICE
            invoice = await request_zap_invoice(
                ctx.http,
                endpoint.callback,
                zap_request,
                amount_sats,
                timeout=ctx.config.timeouts.http,
                max_size=ctx.config.http.max_response_size,
            )
        except ZapstoreError as e:
            self._state = ZapState.FAILED
            self._error = e
            self._logger.warning(
                "zap_failed", app=app.d_tag, error_type=type(e).__name__, error=str(e)
            )
            raise

        watch = watch_zap_receipt(
            ctx,
            app.pubkey,
            zap_request.id,
            invoice=invoice.invoice,
            address=str(app.address),
            event_id=app.id or None,
            on_receipt=on_receipt,
            submitted_at=zap_request.created_at,
        )
        self._state = ZapState.CORRELATING
        self._session = ZapSession(
            invoice=invoice,
            zap_request=zap_request,
            endpoint=endpoint,
            amount_sats=amount_sats,
            watch=watch,
        )
        self._logger.info(
            "zap_invoice_issued",
            app=app.d_tag,
            amount_sats=amount_sats,
            request_id=zap_request.id,
        )
        return self._session

    def cancel(self) -> None:
        """Stop waiting for the receipt of the current zap. Idempotent."""
        if self._session is not None:
            self._session.watch.cancel()
