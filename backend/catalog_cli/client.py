"""HTTP client helpers for the Catalog CLI."""
from __future__ import annotations

import httpx

DEFAULT_TIMEOUT = 30.0


def create_client(
    base_url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Return a JSON-speaking client rooted at the Catalog API base URL.

    Admin syncs call out to TMDb/OMDb per item, so the default timeout is
    generous compared to plain listing reads.
    """

    return httpx.Client(
        base_url=base_url.rstrip("/"),
        timeout=timeout,
        transport=transport,
        headers={"Accept": "application/json"},
    )
