"""
Pytest configuration and shared fixtures for zapstore tests.

Provides:
- FakeTransport: scripted in-memory relay transport
- make_record(): RawRecord factory with unique ids
- Context fixtures wiring the fake transport, a memory cache and a mock
  HTTP session into a ClientContext
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import AsyncGenerator, Iterable, Sequence
from typing import Any
from unittest.mock import MagicMock

import pytest
from nostr_sdk import Keys

from zapstore.core.cache import MemoryCache
from zapstore.core.config import ClientConfig
from zapstore.core.exceptions import TransportError
from zapstore.models.filter import Filter
from zapstore.models.record import RawRecord
from zapstore.services.context import ClientContext
from zapstore.utils.keys import KeysSigner


# ============================================================================
# Test Constants
# ============================================================================

# Valid secp256k1 test key (DO NOT USE IN PRODUCTION)
VALID_HEX_KEY = "67dea2ed018072d675f5415ecfaed7d2597555e202d85b3d65ea4e58d2d92ffa"  # pragma: allowlist secret

# Real, well-formed x-only public keys
PUBLISHER = "3bf0c63fcb93463407af97a5e5ee64fa883d107ef9e558472c4eb9aaaefa459d"
SENDER = "82341f882b6eabcd2ba7f1ef90aad961cf074af15b9ef44a09f9d2a8fbfbe6a2"

BASE_TS = 1_700_000_000

_ids = itertools.count(1)


def make_record(
    kind: int,
    *,
    tags: Iterable[Sequence[str]] = (),
    content: str = "",
    created_at: int = BASE_TS,
    pubkey: str = PUBLISHER,
    id: str | None = None,  # noqa: A002
) -> RawRecord:
    """Build a RawRecord with a unique hex id unless one is given."""
    return RawRecord(
        id=id or f"{next(_ids):064x}",
        pubkey=pubkey,
        created_at=created_at,
        kind=kind,
        tags=[list(t) for t in tags],
        content=content,
    )


def record_matches(event_filter: Filter, record: RawRecord) -> bool:
    """NIP-01 filter semantics, minus ``limit`` and ``search``."""
    if event_filter.kinds is not None and record.kind not in event_filter.kinds:
        return False
    if event_filter.ids is not None and record.id not in event_filter.ids:
        return False
    if event_filter.authors is not None and record.pubkey not in event_filter.authors:
        return False
    if event_filter.since is not None and record.created_at < event_filter.since:
        return False
    if event_filter.until is not None and record.created_at > event_filter.until:
        return False
    for name, values in event_filter.tags.items():
        present = {t[1] for t in record.tags if len(t) >= 2 and t[0] == name}
        if not present.intersection(values):
            return False
    return True


# ============================================================================
# Fake Transport
# ============================================================================


class FakeTransport:
    """In-memory Transport.

    ``request`` yields the stored records matching the filter (duplicates
    included, as several relays would send them), then ends, hangs, or
    raises depending on ``hang`` and ``error``. ``subscribe`` yields
    whatever is pushed with ``push()`` until closed.
    """

    def __init__(
        self,
        records: Iterable[RawRecord] = (),
        *,
        hang: bool = False,
        error: Exception | None = None,
        accepted: int = 1,
    ) -> None:
        self.records = list(records)
        self.hang = hang
        self.error = error
        self.accepted = accepted
        self.requests: list[tuple[list[str], Filter]] = []
        self.subscriptions: list[tuple[list[str], list[Filter]]] = []
        self.published: list[tuple[list[str], RawRecord]] = []
        self.open_requests = 0
        self.open_subscriptions = 0
        self.closed = False
        self._live: asyncio.Queue[RawRecord] = asyncio.Queue()

    def add(self, *records: RawRecord) -> None:
        self.records.extend(records)

    def push(self, record: RawRecord) -> None:
        self._live.put_nowait(record)

    async def request(
        self, relays: Sequence[str], event_filter: Filter
    ) -> AsyncGenerator[RawRecord, None]:
        self.requests.append((list(relays), event_filter))
        self.open_requests += 1
        try:
            for record in [r for r in self.records if record_matches(event_filter, r)]:
                await asyncio.sleep(0)
                yield record
            if self.error is not None:
                raise self.error
            if self.hang:
                await asyncio.Event().wait()
        finally:
            self.open_requests -= 1

    async def subscribe(
        self, relays: Sequence[str], filters: Sequence[Filter]
    ) -> AsyncGenerator[RawRecord, None]:
        self.subscriptions.append((list(relays), list(filters)))
        self.open_subscriptions += 1
        try:
            while True:
                record = await self._live.get()
                if isinstance(record, Exception):
                    raise record
                yield record
        finally:
            self.open_subscriptions -= 1

    def fail_subscription(self, error: Exception | None = None) -> None:
        self._live.put_nowait(error or TransportError("relay gone"))  # type: ignore[arg-type]

    async def publish(self, relays: Sequence[str], record: RawRecord) -> int:
        self.published.append((list(relays), record))
        if self.error is not None:
            raise self.error
        return self.accepted

    async def close(self) -> None:
        self.closed = True


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def signer() -> KeysSigner:
    return KeysSigner(Keys.parse(VALID_HEX_KEY))


@pytest.fixture
def client_config() -> ClientConfig:
    """Defaults with short deadlines so silent relays do not slow tests down."""
    return ClientConfig.from_dict(
        {
            "timeouts": {"request": 0.5, "comments": 0.5},
            "zap": {"correlation_timeout": 2.0},
        }
    )


@pytest.fixture
def ctx(client_config: ClientConfig, transport: FakeTransport) -> ClientContext:
    """ClientContext over the fake transport; the HTTP session is a mock."""
    return ClientContext(
        client_config,
        transport=transport,
        cache=MemoryCache(),
        http=MagicMock(),
    )


def app_tags(d_tag: str, **extra: Any) -> list[list[str]]:
    """Tags of a minimal app listing for the default platform."""
    tags = [["d", d_tag], ["f", "android-arm64-v8a"]]
    tags.extend([name, str(value)] for name, value in extra.items())
    return tags
