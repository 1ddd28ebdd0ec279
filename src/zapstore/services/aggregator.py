"""Bounded-time aggregation over a relay transport.

Relays are unreliable: some never answer, some never signal the end of
stored events. [fetch_all()][zapstore.services.aggregator.fetch_all] and
[fetch_first()][zapstore.services.aggregator.fetch_first] turn a
[Transport][zapstore.utils.transport.Transport] request into a call that
always resolves within ``deadline + TEARDOWN_GRACE`` seconds and never
raises. Expiry and transport failures yield whatever was collected.

The request runs in its own task. On expiry the task is cancelled, which
closes the transport's generator, and teardown gets at most
``TEARDOWN_GRACE`` seconds before the result is returned regardless.

Note:
    Cancellation of the *caller* is not absorbed: ``CancelledError``
    propagates after the request task has been cancelled too.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from enum import StrEnum
from typing import TYPE_CHECKING

from zapstore.core.metrics import FETCH_DURATION_SECONDS, FETCH_RECORDS_TOTAL, FETCH_TOTAL


if TYPE_CHECKING:
    from collections.abc import Coroutine, Sequence
    from typing import Any

    from zapstore.models.filter import Filter
    from zapstore.models.record import RawRecord
    from zapstore.utils.transport import Transport


logger = logging.getLogger(__name__)

TEARDOWN_GRACE = 0.1
DEFAULT_DEADLINE = 8.0


class FetchOutcome(StrEnum):
    COMPLETE = "complete"
    TIMEOUT = "timeout"
    ERROR = "error"
    SKIPPED = "skipped"


def _retrieve_exception(task: asyncio.Task[None]) -> None:
    # Late failures of abandoned tasks are logged, not left unretrieved.
    if not task.cancelled() and task.exception() is not None:
        logger.debug("request_teardown_error error=%s", task.exception())


async def _run_bounded(work: Coroutine[Any, Any, None], deadline: float) -> FetchOutcome:
    """Run *work* for at most *deadline* seconds plus the teardown grace."""
    task = asyncio.ensure_future(work)
    try:
        done, _ = await asyncio.wait({task}, timeout=deadline)
        if not done:
            task.cancel()
            await asyncio.wait({task}, timeout=TEARDOWN_GRACE)
            task.add_done_callback(_retrieve_exception)
            return FetchOutcome.TIMEOUT
    except asyncio.CancelledError:
        task.cancel()
        task.add_done_callback(_retrieve_exception)
        raise

    if task.cancelled():
        return FetchOutcome.TIMEOUT
    error = task.exception()
    if error is not None:
        logger.warning("request_failed error_type=%s error=%s", type(error).__name__, error)
        return FetchOutcome.ERROR
    return FetchOutcome.COMPLETE


def _record_metrics(operation: str, outcome: FetchOutcome, started: float, count: int) -> None:
    FETCH_TOTAL.labels(operation=operation, outcome=outcome).inc()
    FETCH_DURATION_SECONDS.labels(operation=operation).observe(time.monotonic() - started)
    FETCH_RECORDS_TOTAL.labels(operation=operation).inc(count)


async def fetch_all(
    transport: Transport,
    relays: Sequence[str],
    event_filter: Filter,
    deadline: float = DEFAULT_DEADLINE,
) -> list[RawRecord]:
    """Collect every record a request yields until completion or the deadline.

    Args:
        transport: Relay transport.
        relays: Relay URLs to query.
        event_filter: Filter for the request.
        deadline: Seconds to wait; ``<= 0`` returns immediately.

    Returns:
        All records received, in arrival order. Partial on expiry or
        transport error, empty when nothing arrived.
    """
    started = time.monotonic()
    records: list[RawRecord] = []
    if deadline <= 0 or not relays:
        _record_metrics("fetch_all", FetchOutcome.SKIPPED, started, 0)
        return records

    async def collect() -> None:
        async with contextlib.aclosing(transport.request(relays, event_filter)) as stream:
            async for record in stream:
                records.append(record)

    outcome = await _run_bounded(collect(), deadline)
    # Snapshot: an abandoned task may still append during its teardown.
    result = list(records)
    _record_metrics("fetch_all", outcome, started, len(result))
    logger.debug(
        "fetch_all_done outcome=%s records=%s relays=%s elapsed=%.3f",
        outcome,
        len(result),
        len(relays),
        time.monotonic() - started,
    )
    return result


async def fetch_first(
    transport: Transport,
    relays: Sequence[str],
    event_filter: Filter,
    deadline: float = DEFAULT_DEADLINE,
) -> RawRecord | None:
    """Return the first record a request yields, closing the request at once.

    Returns:
        The first record, or ``None`` on expiry, empty completion or
        transport error.
    """
    started = time.monotonic()
    if deadline <= 0 or not relays:
        _record_metrics("fetch_first", FetchOutcome.SKIPPED, started, 0)
        return None

    found: list[RawRecord] = []

    async def first() -> None:
        async with contextlib.aclosing(transport.request(relays, event_filter)) as stream:
            async for record in stream:
                found.append(record)
                return

    outcome = await _run_bounded(first(), deadline)
    result = found[0] if found else None
    _record_metrics("fetch_first", outcome, started, 1 if result else 0)
    logger.debug(
        "fetch_first_done outcome=%s found=%s elapsed=%.3f",
        outcome,
        result is not None,
        time.monotonic() - started,
    )
    return result
