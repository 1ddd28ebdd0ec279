"""Utilities for relay transport, LNURL HTTP and key management.

Attributes:
    transport: [Transport][zapstore.utils.transport.Transport] protocol and
        the ``nostr-sdk`` backed [NostrSdkTransport][zapstore.utils.transport.NostrSdkTransport].
    http: Bounded JSON reads over ``aiohttp``.
    keys: Key loading from the environment and the
        [Signer][zapstore.utils.keys.Signer] protocol.
"""

from .http import JsonResponse, get_json, read_bounded_json
from .keys import ENV_PRIVATE_KEY, KeysConfig, KeysSigner, Signer, load_keys_from_env
from .transport import NostrSdkTransport, Transport, to_record, to_sdk_filter


__all__ = [
    "ENV_PRIVATE_KEY",
    "JsonResponse",
    "KeysConfig",
    "KeysSigner",
    "NostrSdkTransport",
    "Signer",
    "Transport",
    "get_json",
    "load_keys_from_env",
    "read_bounded_json",
    "to_record",
    "to_sdk_filter",
]
