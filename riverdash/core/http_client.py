"""
riverdash/core/http_client.py
Shared async httpx clients.
  • usgs_client()  → USGS WaterServices (site / iv / dv)
  • nws_client()   → api.weather.gov (requires a User-Agent)
  • plain_client() → HTML pages (fishing reports)
  • api_client()   → the dashboard's own API service (RIVERDASH_API_BASE)
"""

import httpx

from riverdash.core.config import API_BASE, REQUEST_TIMEOUT_S, UPSTREAM_HEADERS

_usgs_client:  httpx.AsyncClient | None = None
_nws_client:   httpx.AsyncClient | None = None
_plain_client: httpx.AsyncClient | None = None
_api_client:   httpx.AsyncClient | None = None

_LIMITS  = httpx.Limits(max_connections=10, max_keepalive_connections=5)
_TIMEOUT = httpx.Timeout(REQUEST_TIMEOUT_S, connect=min(REQUEST_TIMEOUT_S, 5.0))

_SCRAPE_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/124.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}


def usgs_client() -> httpx.AsyncClient:
    global _usgs_client
    if _usgs_client is None or _usgs_client.is_closed:
        _usgs_client = httpx.AsyncClient(
            headers=UPSTREAM_HEADERS,
            timeout=_TIMEOUT,
            follow_redirects=True,
            limits=_LIMITS,
        )
    return _usgs_client


def nws_client() -> httpx.AsyncClient:
    global _nws_client
    if _nws_client is None or _nws_client.is_closed:
        _nws_client = httpx.AsyncClient(
            headers={**UPSTREAM_HEADERS, "Accept": "application/geo+json"},
            timeout=_TIMEOUT,
            follow_redirects=True,
            limits=_LIMITS,
        )
    return _nws_client


def plain_client() -> httpx.AsyncClient:
    global _plain_client
    if _plain_client is None or _plain_client.is_closed:
        _plain_client = httpx.AsyncClient(
            headers=_SCRAPE_HEADERS,
            timeout=_TIMEOUT,
            follow_redirects=True,
            limits=_LIMITS,
        )
    return _plain_client


def api_client(base_url: str = API_BASE) -> httpx.AsyncClient:
    """Client for the dashboard's own API. Recreated if the base URL changes."""
    global _api_client
    if (
        _api_client is None
        or _api_client.is_closed
        or str(_api_client.base_url).rstrip("/") != base_url.rstrip("/")
    ):
        _api_client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Accept": "application/json"},
            timeout=_TIMEOUT,
            limits=_LIMITS,
        )
    return _api_client


async def close_all() -> None:
    for c in [_usgs_client, _nws_client, _plain_client, _api_client]:
        if c and not c.is_closed:
            await c.aclose()
