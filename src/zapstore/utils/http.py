"""HTTP utilities for LNURL endpoints.

Bounded JSON reads over ``aiohttp`` so a hostile or broken LNURL server
cannot exhaust memory with an oversized response.

See Also:
    [resolve_zap_endpoint()][zapstore.services.zap.resolve_zap_endpoint]:
        LNURL discovery via [get_json()][zapstore.utils.http.get_json].
    [request_zap_invoice()][zapstore.services.zap.request_zap_invoice]:
        Invoice request via [get_json()][zapstore.utils.http.get_json].
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, NamedTuple

import aiohttp


if TYPE_CHECKING:
    from collections.abc import Mapping


class JsonResponse(NamedTuple):
    """Status and decoded body of an HTTP response.

    Attributes:
        status: HTTP status code.
        data: Decoded JSON value, or ``None`` if the body was not JSON.
    """

    status: int
    data: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


async def _read_bounded(response: aiohttp.ClientResponse, max_size: int) -> bytes:
    """Read an entire response body with size enforcement.

    Reads chunk by chunk so chunked transfer-encoding, where one read may
    return fewer bytes than requested, is handled correctly.

    Raises:
        ValueError: If the body exceeds *max_size*.
    """
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await response.content.read(max_size + 1 - total)
        if not chunk:
            break
        total += len(chunk)
        if total > max_size:
            raise ValueError(f"Response body too large: >{max_size} bytes")
        chunks.append(chunk)
    return b"".join(chunks)


async def read_bounded_json(response: aiohttp.ClientResponse, max_size: int) -> Any:
    """Read and parse a JSON response body with size enforcement.

    Raises:
        ValueError: If the body exceeds *max_size*.
        json.JSONDecodeError: If the body is not valid JSON.
    """
    body = await _read_bounded(response, max_size)
    return json.loads(body)


async def get_json(
    session: aiohttp.ClientSession,
    url: str,
    *,
    params: Mapping[str, str] | None = None,
    timeout: float = 10.0,  # noqa: ASYNC109
    max_size: int = 1_048_576,
) -> JsonResponse:
    """GET *url* and decode its JSON body, whatever the status code.

    LNURL servers report failures as ``{"status": "ERROR", "reason": ...}``
    bodies, often with a 4xx status, so the body is decoded before the
    status is judged. A non-JSON body yields ``data=None``.

    Args:
        session: Shared client session.
        url: Absolute URL; existing query parameters are kept.
        params: Extra query parameters.
        timeout: Total request timeout in seconds.
        max_size: Maximum body size in bytes.

    Raises:
        aiohttp.ClientError: On connection or protocol failure.
        TimeoutError: If the request exceeds *timeout*.
        ValueError: If the body exceeds *max_size*.
    """
    async with session.get(
        url,
        params=params,
        timeout=aiohttp.ClientTimeout(total=timeout),
        headers={"Accept": "application/json"},
    ) as response:
        try:
            data = await read_bounded_json(response, max_size)
        except (json.JSONDecodeError, UnicodeDecodeError):
            data = None
        return JsonResponse(response.status, data)
