"""Relay transport seam and its ``nostr-sdk`` implementation.

Relay connection management (pooling, reconnection, framing) is an external
concern. The rest of the package talks to relays only through the
[Transport][zapstore.utils.transport.Transport] protocol:

* ``request`` is an async generator over stored records that ends when
  every relay has signalled end-of-stored-events;
* ``subscribe`` is an async generator over live records that never ends by
  itself; closing the generator (``aclose()``) releases the subscription;
* ``publish`` sends a signed record and reports how many relays accepted it.

Failures surface as [TransportError][zapstore.core.exceptions.TransportError]
from iteration. Cancellation is cooperative: cancelling the consuming task
or closing the generator tears the relay client down.

See Also:
    [fetch_all()][zapstore.services.aggregator.fetch_all]: Bounded
        consumer of ``request``.
    [ReceiptWatch][zapstore.services.zap.ReceiptWatch]: Consumer of
        ``subscribe``.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from nostr_sdk import (
    Client,
    ClientBuilder,
    Event,
    HandleNotification,
    NostrSdkError,
    RelayUrl,
)
from nostr_sdk import Filter as SdkFilter

from zapstore.core.exceptions import TransportError
from zapstore.models.record import RawRecord


if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Sequence

    from zapstore.models.filter import Filter


logger = logging.getLogger(__name__)


@runtime_checkable
class Transport(Protocol):
    """Relay access used by the aggregator, the catalog and the zap flow."""

    def request(
        self, relays: Sequence[str], event_filter: Filter
    ) -> AsyncGenerator[RawRecord, None]: ...

    def subscribe(
        self, relays: Sequence[str], filters: Sequence[Filter]
    ) -> AsyncGenerator[RawRecord, None]: ...

    async def publish(self, relays: Sequence[str], record: RawRecord) -> int: ...

    async def close(self) -> None: ...


# =============================================================================
# Conversions
# =============================================================================


def to_sdk_filter(event_filter: Filter) -> SdkFilter:
    """Convert a [Filter][zapstore.models.filter.Filter] into a ``nostr_sdk.Filter``."""
    return SdkFilter.from_json(json.dumps(event_filter.to_dict()))


def to_record(event: Event) -> RawRecord | None:
    """Convert a ``nostr_sdk.Event``; ``None`` if it does not fit the record model."""
    try:
        return RawRecord.from_json(event.as_json())
    except (ValueError, TypeError) as e:
        logger.debug("record_rejected error=%s", e)
        return None


class _QueueHandler(HandleNotification):
    """Pushes subscription events into an asyncio queue."""

    def __init__(self, queue: asyncio.Queue[RawRecord | None]) -> None:
        self._queue = queue

    async def handle(self, relay_url: RelayUrl, subscription_id: str, event: Event) -> None:
        record = to_record(event)
        if record is not None:
            self._queue.put_nowait(record)

    async def handle_msg(self, relay_url: RelayUrl, msg: object) -> None:
        return None


# =============================================================================
# nostr-sdk transport
# =============================================================================


class NostrSdkTransport:
    """[Transport][zapstore.utils.transport.Transport] backed by ``nostr_sdk.Client``.

    A short-lived client is created per operation, so concurrent requests
    never share subscription state.

    Args:
        connect_timeout: Seconds to wait for relay connections.
        request_timeout: Upper bound handed to ``stream_events``; callers
            normally impose a shorter deadline through the aggregator.
        publish_timeout: Seconds to wait for relays to acknowledge a publish.
    """

    def __init__(
        self,
        *,
        connect_timeout: float = 10.0,
        request_timeout: float = 30.0,
        publish_timeout: float = 10.0,
    ) -> None:
        self._connect_timeout = connect_timeout
        self._request_timeout = request_timeout
        self._publish_timeout = publish_timeout

    async def _connect(self, relays: Sequence[str]) -> Client:
        client = ClientBuilder().build()
        try:
            for url in relays:
                try:
                    await client.add_relay(RelayUrl.parse(url))
                except (NostrSdkError, ValueError) as e:
                    logger.debug("relay_skipped relay=%s error=%s", url, e)
            output = await client.try_connect(timedelta(seconds=self._connect_timeout))
        except (NostrSdkError, OSError) as e:
            await _shutdown(client)
            raise TransportError(f"relay connection failed: {e}") from e

        if not output.success:
            await _shutdown(client)
            raise TransportError(f"no relay reachable among {len(relays)}")
        logger.debug("relays_connected connected=%s requested=%s", len(output.success), len(relays))
        return client

    async def request(
        self, relays: Sequence[str], event_filter: Filter
    ) -> AsyncGenerator[RawRecord, None]:
        client = await self._connect(relays)
        try:
            try:
                stream = await client.stream_events(
                    to_sdk_filter(event_filter),
                    timeout=timedelta(seconds=self._request_timeout),
                )
            except (NostrSdkError, OSError) as e:
                raise TransportError(f"fetch failed: {e}") from e
            # Records are yielded as relays deliver them; None marks EOSE or timeout.
            while True:
                try:
                    event = await stream.next()
                except (NostrSdkError, OSError) as e:
                    raise TransportError(f"stream failed: {e}") from e
                if event is None:
                    return
                record = to_record(event)
                if record is not None:
                    yield record
        finally:
            await _shutdown(client)

    async def subscribe(
        self, relays: Sequence[str], filters: Sequence[Filter]
    ) -> AsyncGenerator[RawRecord, None]:
        # handle_notifications() is gone from nostr-sdk 0.45; the dependency stays below it.
        client = await self._connect(relays)
        queue: asyncio.Queue[RawRecord | None] = asyncio.Queue()
        notifications = asyncio.create_task(client.handle_notifications(_QueueHandler(queue)))
        # A None item tells the consumer the notification loop has stopped.
        notifications.add_done_callback(lambda _task: queue.put_nowait(None))
        try:
            for event_filter in filters:
                try:
                    await client.subscribe(to_sdk_filter(event_filter))
                except (NostrSdkError, OSError) as e:
                    raise TransportError(f"subscribe failed: {e}") from e
            while True:
                record = await queue.get()
                if record is None:
                    raise TransportError("notification loop ended")
                yield record
        finally:
            notifications.cancel()
            with contextlib.suppress(Exception):
                await client.unsubscribe_all()
            await _shutdown(client)

    async def publish(self, relays: Sequence[str], record: RawRecord) -> int:
        """Send *record* to *relays*; return how many accepted it."""
        client = await self._connect(relays)
        try:
            output = await asyncio.wait_for(
                client.send_event(Event.from_json(record.to_json())),
                timeout=self._publish_timeout,
            )
        except (NostrSdkError, OSError, TimeoutError) as e:
            raise TransportError(f"publish failed: {e}") from e
        finally:
            await _shutdown(client)
        for url, error in output.failed.items():
            logger.debug("publish_rejected relay=%s error=%s", url, error)
        return len(output.success)

    async def close(self) -> None:
        """Nothing to release; clients are per operation."""


async def _shutdown(client: Client) -> None:
    # nostr-sdk Rust FFI can raise arbitrary exception types during shutdown.
    with contextlib.suppress(Exception):
        await client.shutdown()
