"""Explicit client context shared by every service function.

[ClientContext][zapstore.services.context.ClientContext] owns the
long-lived collaborators: configuration, relay transport, ``aiohttp``
session, local cache, signer and markdown renderer. Service functions take
it as their first argument instead of reaching for process-wide singletons,
so several independently configured clients can coexist and tests can
inject fakes.

Examples:
    ```python
    async with ClientContext(ClientConfig()) as ctx:
        apps = await fetch_apps(ctx, search="wallet")
    ```
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, Self

import aiohttp

from zapstore.core.cache import EventCache, MemoryCache
from zapstore.core.config import ClientConfig
from zapstore.core.exceptions import SignerUnavailableError
from zapstore.core.logger import Logger
from zapstore.nips.parsers import Renderer, render_plain
from zapstore.utils.transport import NostrSdkTransport, Transport


WATCH_TEARDOWN_TIMEOUT = 2.0


if TYPE_CHECKING:
    from types import TracebackType

    from zapstore.utils.keys import Signer


class _Watch(Protocol):
    def cancel(self) -> None: ...

    async def stopped(self) -> None: ...


class ClientContext:
    """Lifecycle owner for the collaborators of a zapstore client.

    Collaborators passed in are borrowed and left open on shutdown; the ones
    the context creates itself in [init()][zapstore.services.context.ClientContext.init]
    (transport and HTTP session) are closed by
    [shutdown()][zapstore.services.context.ClientContext.shutdown].

    Args:
        config: Client configuration. Defaults to ``ClientConfig()``.
        transport: Relay transport. Defaults to a
            [NostrSdkTransport][zapstore.utils.transport.NostrSdkTransport].
        cache: Local cache. Defaults to a fresh
            [MemoryCache][zapstore.core.cache.MemoryCache].
        signer: Signer for zap requests and comments, if any.
        http: ``aiohttp`` session for LNURL calls.
        render: Markdown renderer for ``*_html`` fields.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        transport: Transport | None = None,
        cache: EventCache | None = None,
        signer: Signer | None = None,
        http: aiohttp.ClientSession | None = None,
        render: Renderer = render_plain,
    ) -> None:
        self._config = config or ClientConfig()
        self._transport = transport
        self._owns_transport = transport is None
        self._http = http
        self._owns_http = http is None
        self._cache: EventCache = cache if cache is not None else MemoryCache()
        self._signer = signer
        self._render = render
        self._logger = Logger("zapstore", json_output=self._config.json_logs)
        self._watches: set[_Watch] = set()

    @classmethod
    def from_yaml(cls, config_path: str | Path, **kwargs: Any) -> ClientContext:
        return cls(ClientConfig.from_yaml(config_path), **kwargs)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def init(self) -> None:
        """Create the owned transport and HTTP session. Idempotent."""
        if self._transport is None:
            timeouts = self._config.timeouts
            self._transport = NostrSdkTransport(
                connect_timeout=timeouts.connection,
                publish_timeout=timeouts.publish,
            )
        if self._http is None:
            self._http = aiohttp.ClientSession()
        self._logger.debug("context_initialized")

    async def shutdown(self) -> None:
        """Cancel open zap watches and close owned collaborators. Idempotent."""
        watches = list(self._watches)
        for watch in watches:
            watch.cancel()
        self._watches.clear()
        if watches:
            # Subscriptions close before the transport they run on.
            waiters = [asyncio.ensure_future(watch.stopped()) for watch in watches]
            _, pending = await asyncio.wait(waiters, timeout=WATCH_TEARDOWN_TIMEOUT)
            for waiter in pending:
                waiter.cancel()
            if pending:
                self._logger.warning("watch_teardown_timeout", pending=len(pending))

        if self._owns_transport and self._transport is not None:
            await self._transport.close()
            self._transport = None
        if self._owns_http and self._http is not None:
            await self._http.close()
            self._http = None
        self._logger.debug("context_shutdown")

    async def __aenter__(self) -> Self:
        await self.init()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.shutdown()

    # -------------------------------------------------------------------------
    # Collaborators
    # -------------------------------------------------------------------------

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def transport(self) -> Transport:
        if self._transport is None:
            raise RuntimeError("ClientContext is not initialized; call init() first")
        return self._transport

    @property
    def http(self) -> aiohttp.ClientSession:
        if self._http is None:
            raise RuntimeError("ClientContext is not initialized; call init() first")
        return self._http

    @property
    def cache(self) -> EventCache:
        return self._cache

    @property
    def signer(self) -> Signer | None:
        return self._signer

    @signer.setter
    def signer(self, signer: Signer | None) -> None:
        self._signer = signer

    @property
    def render(self) -> Renderer:
        return self._render

    @property
    def logger(self) -> Logger:
        return self._logger

    def get_logger(self, name: str) -> Logger:
        """Structured logger for a service module, honoring ``json_logs``."""
        return Logger(f"zapstore.{name}", json_output=self._config.json_logs)

    def require_signer(self, signer: Signer | None = None) -> Signer:
        """Return *signer*, else the context signer.

        Raises:
            SignerUnavailableError: If neither is set.
        """
        resolved = signer if signer is not None else self._signer
        if resolved is None:
            raise SignerUnavailableError("A signer is required to sign this event.")
        return resolved

    def track(self, watch: _Watch) -> None:
        """Register a live watch so shutdown can cancel it."""
        self._watches.add(watch)

    def untrack(self, watch: _Watch) -> None:
        self._watches.discard(watch)
