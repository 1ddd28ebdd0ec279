"""Zap receipt correlation.

After an invoice is issued, the LNURL server publishes a kind-9735 receipt
once the invoice is paid. A [ReceiptWatch][zapstore.services.zap.watch.ReceiptWatch]
holds one live subscription for receipts addressed to the recipient and
tests each against the
[correlation strategies][zapstore.nips.nip57.MATCH_STRATEGIES] in order.

The watch ends exactly once, in one of two states:

* ``matched``: a receipt correlated; the subscription is closed and the
  ``on_receipt`` callback runs once with the parsed receipt;
* ``cancelled``: the caller cancelled, the timeout expired, the client
  context shut down, or the subscription died.

Records arriving after the end are ignored. A receipt that matches nothing
is never an error.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from enum import StrEnum
from typing import TYPE_CHECKING

from zapstore.core.exceptions import TransportError
from zapstore.core.logger import Logger
from zapstore.core.metrics import ZAP_STAGE_TOTAL
from zapstore.models.constants import EventKind
from zapstore.models.filter import Filter
from zapstore.nips.nip57 import CorrelationTarget, match_receipt
from zapstore.nips.parsers import parse_zap_receipt


if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable

    from zapstore.models.domain import ZapReceipt
    from zapstore.models.record import RawRecord
    from zapstore.services.context import ClientContext


class ZapState(StrEnum):
    """Phases of a zap, from request to receipt."""

    IDLE = "idle"
    RESOLVING_ENDPOINT = "resolving_endpoint"
    REQUESTING_INVOICE = "requesting_invoice"
    CORRELATING = "correlating"
    MATCHED = "matched"
    CANCELLED = "cancelled"
    FAILED = "failed"


class ReceiptWatch:
    """One-shot correlation of a zap request with its receipt.

    Args:
        stream_factory: Opens the receipt subscription. Called once, from the
            watch task; the returned generator is closed when the watch ends.
        target: What the receipt must match.
        on_receipt: Called once with the parsed receipt on a match.
        timeout: Seconds before the watch gives up; ``None`` waits until
            cancelled.
        on_release: Called once when the watch ends, whatever the outcome.
        logger: Structured logger; defaults to ``zapstore.zap``.

    Examples:
        ```python
        watch = ReceiptWatch(lambda: transport.subscribe(relays, filters), target)
        watch.start()
        receipt = await watch.wait()  # None unless matched
        ```
    """

    def __init__(
        self,
        stream_factory: Callable[[], AsyncGenerator[RawRecord, None]],
        target: CorrelationTarget,
        *,
        on_receipt: Callable[[ZapReceipt], None] | None = None,
        timeout: float | None = None,
        on_release: Callable[[ReceiptWatch], None] | None = None,
        logger: Logger | None = None,
    ) -> None:
        self._stream_factory = stream_factory
        self._target = target
        self._on_receipt = on_receipt
        self._timeout = timeout
        self._on_release = on_release
        self._logger = logger or Logger("zapstore.zap")
        self._state = ZapState.CORRELATING
        self._strategy: str | None = None
        self._task: asyncio.Task[None] | None = None
        self._result: asyncio.Future[ZapReceipt | None] = (
            asyncio.get_running_loop().create_future()
        )

    @property
    def state(self) -> ZapState:
        return self._state

    @property
    def target(self) -> CorrelationTarget:
        return self._target

    @property
    def strategy(self) -> str | None:
        """Name of the strategy that matched, once matched."""
        return self._strategy

    @property
    def done(self) -> bool:
        return self._result.done()

    def start(self) -> None:
        """Open the subscription in a background task. Idempotent."""
        if self._task is not None or self.done:
            return
        self._task = asyncio.create_task(
            self._run(), name=f"zap-receipt-{self._target.request_id[:8]}"
        )
        self._task.add_done_callback(self._task_done)

    async def wait(self) -> ZapReceipt | None:
        """Wait for the watch to end.

        Cancelling the waiter does not cancel the watch.

        Returns:
            The matched receipt, or ``None`` if the watch was cancelled.
        """
        return await asyncio.shield(self._result)

    async def stopped(self) -> None:
        """Wait until the watch task has exited, subscription teardown included."""
        if self._task is not None:
            await asyncio.wait({self._task})

    def cancel(self) -> None:
        """Stop watching and release the subscription. Idempotent."""
        if self._finish(ZapState.CANCELLED, None):
            ZAP_STAGE_TOTAL.labels(stage="correlate", outcome="cancelled").inc()
            self._logger.debug("zap_watch_cancelled", request_id=self._target.request_id)
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def _finish(self, state: ZapState, receipt: ZapReceipt | None) -> bool:
        if self._result.done():
            return False
        self._state = state
        self._result.set_result(receipt)
        if self._on_release is not None:
            self._on_release(self)
        return True

    def _task_done(self, task: asyncio.Task[None]) -> None:
        if not task.cancelled() and task.exception() is not None:
            self._logger.error(
                "zap_watch_error",
                request_id=self._target.request_id,
                error=str(task.exception()),
            )
        # Whatever happened, waiters are released.
        self._finish(ZapState.CANCELLED, None)

    def _match(self, record: RawRecord) -> bool:
        strategy = match_receipt(record, self._target)
        if strategy is None:
            return False
        receipt = parse_zap_receipt(record)
        self._strategy = strategy
        self._finish(ZapState.MATCHED, receipt)
        ZAP_STAGE_TOTAL.labels(stage="correlate", outcome="matched").inc()
        self._logger.info(
            "zap_receipt_matched",
            request_id=self._target.request_id,
            receipt_id=record.id,
            strategy=strategy,
            amount_sats=receipt.amount_sats,
        )
        if self._on_receipt is not None:
            self._on_receipt(receipt)
        return True

    async def _run(self) -> None:
        try:
            async with asyncio.timeout(self._timeout):
                async with contextlib.aclosing(self._stream_factory()) as stream:
                    async for record in stream:
                        if self.done or self._match(record):
                            return
        except TimeoutError:
            if self._finish(ZapState.CANCELLED, None):
                ZAP_STAGE_TOTAL.labels(stage="correlate", outcome="timeout").inc()
                self._logger.info(
                    "zap_watch_timeout",
                    request_id=self._target.request_id,
                    timeout=self._timeout,
                )
        except TransportError as e:
            if self._finish(ZapState.CANCELLED, None):
                ZAP_STAGE_TOTAL.labels(stage="correlate", outcome="failed").inc()
                self._logger.warning(
                    "zap_watch_transport_failed", request_id=self._target.request_id, error=str(e)
                )


def receipt_filters(recipient: str, since: int) -> tuple[Filter, Filter]:
    """Receipt filters on the recipient, lowercase ``#p`` and uppercase ``#P``."""
    return (
        Filter(kinds=(EventKind.ZAP_RECEIPT,), tags={"p": (recipient,)}, since=since),
        Filter(kinds=(EventKind.ZAP_RECEIPT,), tags={"P": (recipient,)}, since=since),
    )


def watch_zap_receipt(
    ctx: ClientContext,
    recipient: str,
    request_id: str,
    *,
    invoice: str | None = None,
    address: str | None = None,
    event_id: str | None = None,
    on_receipt: Callable[[ZapReceipt], None] | None = None,
    submitted_at: int | None = None,
) -> ReceiptWatch:
    """Start watching for the receipt of zap request *request_id*.

    Subscribes on the zap-watch relays from ``zap.receipt_lookback`` seconds
    before *submitted_at* (now by default), and gives up after
    ``zap.correlation_timeout``. The watch is tracked by *ctx* so
    ``ctx.shutdown()`` cancels it.
    """
    zap_config = ctx.config.zap
    submitted = submitted_at if submitted_at is not None else int(time.time())
    since = max(0, submitted - zap_config.receipt_lookback)
    relays = ctx.config.relays.zap_watch
    filters = receipt_filters(recipient, since)
    transport = ctx.transport

    watch = ReceiptWatch(
        lambda: transport.subscribe(relays, filters),
        CorrelationTarget(
            request_id=request_id, invoice=invoice, address=address, event_id=event_id
        ),
        on_receipt=on_receipt,
        timeout=zap_config.correlation_timeout,
        on_release=ctx.untrack,
        logger=ctx.get_logger("zap"),
    )
    ctx.track(watch)
    watch.start()
    ctx.get_logger("zap").debug(
        "zap_watch_started", request_id=request_id, relays=len(relays), since=since
    )
    return watch
