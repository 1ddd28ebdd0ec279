r"""zapstore -- Nostr app-catalog client with Lightning zaps.

Queries app listings, releases, curated stacks, zap receipts and comments
from Nostr relays within a bounded time, normalizes them into flat domain
records, and drives the NIP-57 zap handshake through to receipt
correlation.

Architecture follows a **diamond DAG** dependency structure where imports
flow strictly downward:

```text
              services         Catalog, social and zap operations
             /   |   \
          core  nips  utils    Config, cache, errors; parsers; transport
             \   |   /
              models           Pure frozen dataclasses (zero I/O)
```

Attributes:
    models: Pure frozen dataclasses. Zero I/O, depends only on stdlib.
    core: Configuration, cache, exceptions, logging, metrics.
    nips: Event normalizers, NIP-19 identifiers, NIP-57 helpers.
    utils: Relay transport, LNURL HTTP, key management.
    services: Bounded aggregator, catalog, social and zap services.

Note:
    Top-level imports (``from zapstore import ClientContext``) use lazy
    loading and resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("zapstore")

__all__ = [
    "App",
    "ClientConfig",
    "ClientContext",
    "Filter",
    "Logger",
    "RawRecord",
    "ZapOrchestrator",
    "ZapState",
    "ZapstoreError",
    "fetch_all",
    "fetch_app",
    "fetch_apps",
    "fetch_first",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "ClientConfig": ("zapstore.core", "ClientConfig"),
    "Logger": ("zapstore.core", "Logger"),
    "ZapstoreError": ("zapstore.core", "ZapstoreError"),
    "App": ("zapstore.models", "App"),
    "Filter": ("zapstore.models", "Filter"),
    "RawRecord": ("zapstore.models", "RawRecord"),
    "ClientContext": ("zapstore.services", "ClientContext"),
    "ZapOrchestrator": ("zapstore.services", "ZapOrchestrator"),
    "ZapState": ("zapstore.services", "ZapState"),
    "fetch_all": ("zapstore.services", "fetch_all"),
    "fetch_app": ("zapstore.services", "fetch_app"),
    "fetch_apps": ("zapstore.services", "fetch_apps"),
    "fetch_first": ("zapstore.services", "fetch_first"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value  # Cache for subsequent access
        return value
    raise AttributeError(f"module 'zapstore' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
