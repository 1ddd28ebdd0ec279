"""Core infrastructure: configuration, caching, errors, logging and metrics.

Attributes:
    ClientConfig: Pydantic root configuration, loadable from YAML.
    EventCache: Protocol for the local cache; MemoryCache is the default.
    Logger: Structured key=value / JSON logger.
    ZapstoreError: Root of the exception hierarchy.
"""

from .cache import EventCache, MemoryCache, cache_key
from .config import (
    CatalogConfig,
    ClientConfig,
    HttpConfig,
    RelaysConfig,
    TimeoutsConfig,
    ZapConfig,
    unique_urls,
)
from .exceptions import (
    AmountOutOfRangeError,
    ConfigurationError,
    ConnectivityError,
    EndpointResolutionError,
    InvoiceRequestError,
    PublishingError,
    SignerUnavailableError,
    TransportError,
    ValidationError,
    ZapCapabilityError,
    ZapError,
    ZapstoreError,
)
from .logger import Logger, StructuredFormatter, format_kv_pairs
from .yaml import load_yaml


__all__ = [
    "AmountOutOfRangeError",
    "CatalogConfig",
    "ClientConfig",
    "ConfigurationError",
    "ConnectivityError",
    "EndpointResolutionError",
    "EventCache",
    "HttpConfig",
    "InvoiceRequestError",
    "Logger",
    "MemoryCache",
    "PublishingError",
    "RelaysConfig",
    "SignerUnavailableError",
    "StructuredFormatter",
    "TimeoutsConfig",
    "TransportError",
    "ValidationError",
    "ZapCapabilityError",
    "ZapConfig",
    "ZapError",
    "ZapstoreError",
    "cache_key",
    "format_kv_pairs",
    "load_yaml",
    "unique_urls",
]
