"""Nostr key management and event signing.

Loads a private key (nsec1 bech32 or 64-char hex) from an environment
variable and exposes it as a [Signer][zapstore.utils.keys.Signer], the seam
through which zap requests and comments get signed. Anything implementing
the protocol (a remote NIP-46 bunker, a browser extension bridge) can be
plugged into the client context instead.

Warning:
    Private keys must **never** be stored in configuration files, source
    code, or logged. Pass them through the environment.

Examples:
    ```python
    import os

    os.environ["PRIVATE_KEY"] = "nsec1..."  # pragma: allowlist secret
    signer = KeysSigner(load_keys_from_env("PRIVATE_KEY"))
    record = await signer.sign_event(unsigned)
    ```
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from nostr_sdk import EventBuilder, Keys, Kind, NostrSdkError, Tag, Timestamp
from pydantic import BaseModel, Field, model_validator

from zapstore.models.record import RawRecord


if TYPE_CHECKING:
    from zapstore.models.record import UnsignedRecord


ENV_PRIVATE_KEY = "PRIVATE_KEY"  # pragma: allowlist secret  # Default env var name


def load_keys_from_env(env_var: str = ENV_PRIVATE_KEY) -> Keys:
    """Load Nostr keys from an environment variable.

    Raises:
        ValueError: If the environment variable is not set, is empty, or
            does not hold a valid key.
    """
    value = os.getenv(env_var)
    if not value:
        raise ValueError(
            f"{env_var} environment variable is required. Generate one with: openssl rand -hex 32"
        )
    try:
        return Keys.parse(value)
    except NostrSdkError as e:
        raise ValueError(f"{env_var} does not hold a valid private key") from e


class KeysConfig(BaseModel):
    """Pydantic model that auto-loads Nostr keys from an environment variable.

    Warning:
        The ``keys`` field holds a live private key. Do not serialize this
        model. ``arbitrary_types_allowed`` is required because
        ``nostr_sdk.Keys`` is a Rust-backed FFI type.
    """

    model_config = {"arbitrary_types_allowed": True}

    keys_env: str = Field(
        default=ENV_PRIVATE_KEY,
        min_length=1,
        description="Environment variable name for private key",
    )
    keys: Keys = Field(description="Keys loaded from keys_env (required)")

    @model_validator(mode="before")
    @classmethod
    def _load_keys_from_env(cls, data: Any) -> Any:
        if isinstance(data, dict) and "keys" not in data:
            data = {**data, "keys": load_keys_from_env(data.get("keys_env", ENV_PRIVATE_KEY))}
        return data


@runtime_checkable
class Signer(Protocol):
    """Signs event templates on behalf of the user."""

    async def get_public_key(self) -> str: ...

    async def sign_event(self, unsigned: UnsignedRecord) -> RawRecord: ...


class KeysSigner:
    """[Signer][zapstore.utils.keys.Signer] backed by a local ``nostr_sdk.Keys``."""

    def __init__(self, keys: Keys) -> None:
        self._keys = keys

    @classmethod
    def from_env(cls, env_var: str = ENV_PRIVATE_KEY) -> KeysSigner:
        return cls(load_keys_from_env(env_var))

    async def get_public_key(self) -> str:
        return self._keys.public_key().to_hex()

    async def sign_event(self, unsigned: UnsignedRecord) -> RawRecord:
        """Build, sign and return the event described by *unsigned*."""
        builder = (
            EventBuilder(Kind(unsigned.kind), unsigned.content)
            .tags([Tag.parse(list(tag)) for tag in unsigned.tags])
            .custom_created_at(Timestamp.from_secs(unsigned.created_at))
        )
        event = builder.sign_with_keys(self._keys)
        return RawRecord.from_json(event.as_json())
