"""zapstore exception hierarchy.

Typed exceptions separate errors the client recovers from internally
(transport failures absorbed by the aggregator) from errors surfaced to the
caller with a human-readable message (validation and zap handshake failures).
``asyncio.CancelledError`` is never caught by these handlers.

Exception hierarchy:

```text
ZapstoreError (base -- never raised directly)
├── ConfigurationError          -- bad YAML or config values
├── ValidationError             -- caller input rejected
│   └── SignerUnavailableError  -- an operation needs a signer and none is set
├── ConnectivityError           -- relay or network failures
│   └── TransportError          -- raised by transports, absorbed by the aggregator
├── PublishingError             -- no relay accepted a published event
└── ZapError                    -- zap handshake failures
    ├── EndpointResolutionError -- profile or LNURL discovery failed
    │   └── ZapCapabilityError  -- recipient cannot receive NIP-57 zaps
    ├── AmountOutOfRangeError   -- amount outside the endpoint bounds
    └── InvoiceRequestError     -- callback refused to issue an invoice
```

See Also:
    [fetch_all()][zapstore.services.aggregator.fetch_all]: Absorbs
        [TransportError][zapstore.core.exceptions.TransportError].
    [ZapOrchestrator][zapstore.services.zap.ZapOrchestrator]: Raises the
        [ZapError][zapstore.core.exceptions.ZapError] family.
"""

from __future__ import annotations

from typing import Literal


class ZapstoreError(Exception):
    """Base exception for all zapstore errors.

    Never raised directly -- always use a specific subclass.
    """


# ---------------------------------------------------------------------------
# Configuration and input
# ---------------------------------------------------------------------------


class ConfigurationError(ZapstoreError):
    """Invalid or missing configuration (YAML, env vars, CLI flags).

    See Also:
        [load_yaml()][zapstore.core.yaml.load_yaml]: YAML loading function
            that may trigger configuration errors.
    """


class ValidationError(ZapstoreError):
    """Caller-supplied input was rejected before any network I/O.

    Covers missing app identity, non-positive zap amounts, empty comments and
    missing versions.
    """


class SignerUnavailableError(ValidationError):
    """An operation that must sign an event was invoked without a signer."""


# ---------------------------------------------------------------------------
# Relays
# ---------------------------------------------------------------------------


class ConnectivityError(ZapstoreError):
    """Base for relay and network connectivity failures."""


class TransportError(ConnectivityError):
    """A relay transport failed while serving a request or subscription.

    The bounded aggregator recovers from these and returns partial results.
    """


class PublishingError(ZapstoreError):
    """No relay accepted a published event."""


# ---------------------------------------------------------------------------
# Zaps
# ---------------------------------------------------------------------------


class ZapError(ZapstoreError):
    """Base for failures in the zap handshake."""


class EndpointResolutionError(ZapError):
    """The recipient's profile or LNURL endpoint could not be resolved."""


class ZapCapabilityError(EndpointResolutionError):
    """The recipient has no usable Lightning address or does not accept zaps.

    Raised when the profile has neither ``lud16`` nor a decodable ``lud06``,
    when the decoded LNURL is not an HTTP URL, and when the endpoint does not
    advertise ``allowsNostr`` together with a ``nostrPubkey``.
    """


class AmountOutOfRangeError(ZapError):
    """The requested amount falls outside the endpoint's sendable range.

    Attributes:
        bound: Which bound was violated, ``"min"`` or ``"max"``.
        limit_sats: The violated bound expressed in whole sats.
    """

    def __init__(self, message: str, *, bound: Literal["min", "max"], limit_sats: int) -> None:
        super().__init__(message)
        self.bound = bound
        self.limit_sats = limit_sats


class InvoiceRequestError(ZapError):
    """The LNURL callback failed or refused to issue an invoice.

    Attributes:
        reason: Server-supplied reason, when the endpoint provided one.
    """

    def __init__(self, message: str, *, reason: str | None = None) -> None:
        super().__init__(message)
        self.reason = reason
