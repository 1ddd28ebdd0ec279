"""
Structured logging with key=value and JSON output support.

Wraps the standard library ``logging`` module. Services and the client
context log through [Logger][zapstore.core.logger.Logger], which attaches
keyword arguments as structured fields; the lower layers use plain
``logging.getLogger(__name__)`` with ``key=%s`` messages. Installing
[StructuredFormatter][zapstore.core.logger.StructuredFormatter] on the root
handler unifies both into ``level name message key=value ...`` lines.

Examples:
    ```python
    from zapstore.core.logger import Logger

    logger = Logger("catalog")
    logger.info("apps_fetched", count=12, search="wallet")
    # Output: info catalog apps_fetched count=12 search=wallet

    Logger("zap", json_output=True).info("invoice_received", amount_sats=21)
    # Output: {"timestamp": "...", "level": "info", "service": "zap", ...}
    ```
"""

from __future__ import annotations

import datetime
import json
import logging
from typing import Any, ClassVar


def _truncate(value: str, max_length: int | None) -> str:
    if max_length and len(value) > max_length:
        return value[:max_length] + f"...<truncated {len(value) - max_length} chars>"
    return value


def format_kv_pairs(
    kwargs: dict[str, Any],
    max_value_length: int | None = 1000,
    prefix: str = " ",
) -> str:
    """Format a dictionary as space-separated key=value pairs.

    Values containing whitespace, equals signs or quotes are escaped and
    double-quoted; empty values render as ``key=""``.

    Args:
        kwargs: Key-value pairs to format.
        max_value_length: Maximum characters per value before truncation,
            or None to disable truncation.
        prefix: String prepended to a non-empty result.

    Returns:
        The formatted pairs, or an empty string if *kwargs* is empty.
    """
    if not kwargs:
        return ""

    parts = []
    for key, value in kwargs.items():
        text = _truncate(str(value), max_value_length)
        if not text or any(c in text for c in " =\"'"):
            escaped = text.replace("\\", "\\\\").replace('"', '\\"')
            parts.append(f'{key}="{escaped}"')
        else:
            parts.append(f"{key}={text}")
    return prefix + " ".join(parts)


class StructuredFormatter(logging.Formatter):
    """Render every log record as ``level name message key=value ...``.

    Reads structured fields from the ``structured_kv`` extra attached by
    [Logger][zapstore.core.logger.Logger]; records from plain stdlib loggers
    are emitted with the same prefix and no trailing pairs.
    """

    def format(self, record: logging.LogRecord) -> str:
        line = f"{record.levelname.lower()} {record.name} {record.getMessage()}"
        extra: dict[str, Any] = getattr(record, "structured_kv", {})
        if extra:
            line += format_kv_pairs(extra)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class Logger:
    """Structured logger that appends keyword arguments as extra fields.

    Mirrors the stdlib logging API with an added ``**kwargs`` parameter that
    is rendered as key=value pairs, or merged into a JSON object when
    ``json_output`` is set.
    """

    _DEFAULT_MAX_VALUE_LENGTH: ClassVar[int] = 1000

    def __init__(
        self,
        name: str,
        *,
        json_output: bool = False,
        max_value_length: int | None = None,
    ) -> None:
        """Initialize a structured logger.

        Args:
            name: Logger name, passed to ``logging.getLogger``.
            json_output: Emit JSON objects instead of key=value pairs.
            max_value_length: Maximum characters per value before truncation.
                Defaults to 1000.
        """
        self._logger = logging.getLogger(name)
        self._json_output = json_output
        self._max_value_length = (
            self._DEFAULT_MAX_VALUE_LENGTH if max_value_length is None else max_value_length
        )

    @property
    def name(self) -> str:
        return self._logger.name

    def _emit(self, level: int, msg: str, kwargs: dict[str, Any], *, exc_info: bool = False) -> None:
        if not self._logger.isEnabledFor(level):
            return
        if self._json_output:
            payload = {
                "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
                "level": logging.getLevelName(level).lower(),
                "service": self._logger.name,
                "message": msg,
                **kwargs,
            }
            self._logger.log(level, json.dumps(payload, default=str), exc_info=exc_info)
            return
        extra: dict[str, Any] = {}
        if kwargs:
            extra["structured_kv"] = {
                k: _truncate(str(v), self._max_value_length) if isinstance(v, str) else v
                for k, v in kwargs.items()
            }
        self._logger.log(level, msg, extra=extra, exc_info=exc_info)

    def debug(self, msg: str, **kwargs: Any) -> None:
        self._emit(logging.DEBUG, msg, kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        self._emit(logging.INFO, msg, kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        self._emit(logging.WARNING, msg, kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        self._emit(logging.ERROR, msg, kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        """Log at ERROR level with the active exception's traceback."""
        self._emit(logging.ERROR, msg, kwargs, exc_info=True)
