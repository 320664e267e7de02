"""HTTP client construction for the Stream Feed SDK."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from .core.enricher import REQUEST_TIMEOUT, user_agent

if TYPE_CHECKING:
    from .config import StreamConfig

KEEP_ALIVE_EXPIRY = 3.0


def create_async_http_client(
    config: StreamConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create configured async HTTP client.

    Args:
        config: SDK configuration.
        transport: Optional transport (tests inject ``httpx.MockTransport``).

    Returns:
        Configured httpx.AsyncClient.
    """
    if config.keep_alive:
        limits = httpx.Limits(keepalive_expiry=KEEP_ALIVE_EXPIRY)
    else:
        limits = httpx.Limits(max_keepalive_connections=0)

    return httpx.AsyncClient(
        timeout=httpx.Timeout(REQUEST_TIMEOUT),
        headers={
            "User-Agent": user_agent(browser=config.browser),
            "Accept": "application/json",
        },
        limits=limits,
        transport=transport,
        follow_redirects=False,
    )
