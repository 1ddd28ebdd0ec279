"""Client configuration models.

Pydantic models with defaults for every field, so an empty YAML file yields
a working client. Partial overrides merge per section (setting only
``timeouts.request`` keeps every other default).

Examples:
    ```yaml
    relays:
      app: [wss://relay.zapstore.dev]
    timeouts:
      request: 5.0
    zap:
      correlation_timeout: 300
    ```

See Also:
    [ClientContext][zapstore.services.context.ClientContext]: Owns a
        [ClientConfig][zapstore.core.config.ClientConfig].
    [load_yaml()][zapstore.core.yaml.load_yaml]: File loader used by
        [from_yaml()][zapstore.core.config.ClientConfig.from_yaml].
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from zapstore.models.constants import (
    APP_RELAY,
    DEFAULT_PLATFORM,
    PROFILE_RELAY,
    SOCIAL_RELAYS,
    ZAP_RECEIPT_RELAYS,
)

from .exceptions import ConfigurationError
from .yaml import load_yaml


def unique_urls(*groups: list[str] | tuple[str, ...]) -> list[str]:
    """Union relay URL groups, keeping first-seen order."""
    return list(dict.fromkeys(url for group in groups for url in group))


# =============================================================================
# Sections
# =============================================================================


class RelaysConfig(BaseModel):
    """Relay sets by purpose.

    Attributes:
        app: Relays serving app listings, releases, stacks and file metadata.
        profile: Relays queried for kind-0 profiles. Defaults to the profile
            indexer, the app relay and the social relays.
        social: General-purpose relays for zaps and zap request hints.
        comment: Relays comments are read from and published to.
        zap_receipt: Extra relays watched for zap receipts.
    """

    app: list[str] = Field(default_factory=lambda: [APP_RELAY], min_length=1)
    profile: list[str] = Field(
        default_factory=lambda: unique_urls([PROFILE_RELAY, APP_RELAY], SOCIAL_RELAYS),
        min_length=1,
    )
    social: list[str] = Field(default_factory=lambda: list(SOCIAL_RELAYS), min_length=1)
    comment: list[str] = Field(default_factory=lambda: list(SOCIAL_RELAYS), min_length=1)
    zap_receipt: list[str] = Field(default_factory=lambda: list(ZAP_RECEIPT_RELAYS))

    @field_validator("app", "profile", "social", "comment", "zap_receipt")
    @classmethod
    def _validate_urls(cls, urls: list[str]) -> list[str]:
        for url in urls:
            if not url.startswith(("wss://", "ws://")):
                raise ValueError(f"relay URL must use ws:// or wss://, got {url!r}")
        return unique_urls(urls)

    @property
    def zap_watch(self) -> list[str]:
        """Relays watched for receipts: social, app, then the extra receipt relays."""
        return unique_urls(self.social, self.app, self.zap_receipt)


class TimeoutsConfig(BaseModel):
    """Deadlines in seconds."""

    request: float = Field(default=8.0, ge=0.0, le=120.0, description="Relay query deadline")
    connection: float = Field(default=10.0, gt=0.0, le=120.0, description="Relay connect timeout")
    comments: float = Field(default=15.0, ge=0.0, le=120.0, description="Comment query deadline")
    http: float = Field(default=10.0, gt=0.0, le=120.0, description="LNURL HTTP timeout")
    publish: float = Field(default=10.0, gt=0.0, le=120.0, description="Event publish timeout")


class ZapConfig(BaseModel):
    """Zap handshake settings.

    Attributes:
        receipt_lookback: Seconds before submission the receipt subscription
            starts from, covering clock skew between client and LNURL server.
        correlation_timeout: Seconds to wait for a matching receipt before the
            subscription is cancelled. ``None`` waits until cancelled.
    """

    receipt_lookback: int = Field(default=300, ge=0, le=3600)
    correlation_timeout: float | None = Field(default=600.0, gt=0.0)


class HttpConfig(BaseModel):
    max_response_size: int = Field(
        default=1_048_576, ge=1024, le=16_777_216, description="Max LNURL response size in bytes"
    )


class CatalogConfig(BaseModel):
    platform: str = Field(default=DEFAULT_PLATFORM, min_length=1, description="#f platform filter")
    apps_limit: int = Field(default=12, ge=1, le=500)
    stacks_limit: int = Field(default=20, ge=1, le=500)
    comments_limit: int = Field(default=200, ge=1, le=1000)


# =============================================================================
# Root
# =============================================================================


class ClientConfig(BaseModel):
    """Root configuration for a [ClientContext][zapstore.services.context.ClientContext]."""

    relays: RelaysConfig = Field(default_factory=RelaysConfig)
    timeouts: TimeoutsConfig = Field(default_factory=TimeoutsConfig)
    zap: ZapConfig = Field(default_factory=ZapConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    json_logs: bool = Field(default=False, description="Emit JSON log lines")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ClientConfig:
        """Validate a configuration mapping.

        Raises:
            ConfigurationError: If any value fails validation.
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> ClientConfig:
        """Load and validate a YAML configuration file."""
        return cls.from_dict(load_yaml(config_path))
