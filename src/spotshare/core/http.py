"""
HTTP helpers.

This module centralizes the minimal HTTP logic used by the hosted-backend client.

Design goals:
- Small surface area (one JSON request helper).
- Deterministic defaults (timeout + User-Agent).
- Raise on non-2xx so callers can wrap the failure in the right domain error.
"""

from __future__ import annotations

from typing import Any

import httpx


DEFAULT_USER_AGENT = "spotshare/0.1.0 (+https://local)"


def build_client(
    base_url: str,
    *,
    timeout_seconds: float = 15,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create the shared async client (one per backend instance)."""
    return httpx.AsyncClient(
        base_url=base_url.rstrip("/"),
        timeout=timeout_seconds,
        headers={"User-Agent": DEFAULT_USER_AGENT},
        transport=transport,
    )


async def request_json(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    params: dict[str, Any] | None = None,
    json: Any = None,
    headers: dict[str, str] | None = None,
) -> Any:
    """Send a request and return the decoded JSON body (None for empty bodies).

    Raises:
        httpx.HTTPError: On transport errors or non-2xx status codes.
        ValueError: If a non-empty response body is not valid JSON.
    """
    resp = await client.request(method, url, params=params, json=json, headers=headers)
    resp.raise_for_status()
    if not resp.content:
        return None
    return resp.json()
