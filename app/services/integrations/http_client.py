"""
HTTP client helper with standardized timeout configuration.

Webhook handlers call out to the bot API synchronously within the request,
so every outbound call gets explicit, short timeouts.
"""

import httpx


def get_httpx_timeout() -> httpx.Timeout:
    return httpx.Timeout(
        10.0,  # Default for anything not listed below
        connect=5.0,
        read=10.0,
        write=5.0,
        pool=5.0,
    )


def create_httpx_client(base_url: str = "") -> httpx.AsyncClient:
    """httpx.AsyncClient configured with the standard timeouts."""
    return httpx.AsyncClient(base_url=base_url, timeout=get_httpx_timeout())
