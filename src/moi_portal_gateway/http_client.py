"""Factory for the outbound httpx clients.

Every upstream call (MOI proxy, profile fetch, kiosk backend, traffic portal)
goes through a client built here so timeouts are always bounded. Tests
replace `build_http_client` to plug in an `httpx.MockTransport`.
"""
from __future__ import annotations

import httpx


def build_http_client(
    timeout_seconds: float,
    *,
    headers: dict[str, str] | None = None,
    follow_redirects: bool = False,
) -> httpx.Client:
    return httpx.Client(
        timeout=httpx.Timeout(timeout_seconds),
        headers=headers,
        follow_redirects=follow_redirects,
    )
