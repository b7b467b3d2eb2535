"""
riverdash/core/fetcher.py
═══════════════════════════════════════════════════════════════════════════
Resource Fetcher — exactly one GET per call, never raises.

  • key.path is resolved against the dashboard API base URL
  • 2xx            → FetchResult(data=<parsed JSON>)
  • non-2xx        → HttpError(status, info=<parsed error body>)
  • no response    → NetworkError / RequestTimeout
  • malformed JSON → ParseError

It does not touch the cache; the Cache Store applies the result.
═══════════════════════════════════════════════════════════════════════════
"""

import json
import logging
from typing import Any, Optional

import httpx

from riverdash.core.errors import NetworkError, HttpError, ParseError, RequestTimeout
from riverdash.core.http_client import api_client
from riverdash.core.resource import FetchConfig, FetchResult, ResourceKey

log = logging.getLogger("fetcher")


def _error_info(response: httpx.Response) -> Any:
    """Structured error body, or the raw text wrapped as {error: ...}."""
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        text = response.text.strip()
        return {"error": text} if text else None


class ResourceFetcher:
    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: Optional[float] = None):
        self._client = client
        self.timeout = timeout

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client if self._client is not None else api_client()

    async def fetch(self, key: ResourceKey, config: Optional[FetchConfig] = None) -> FetchResult:
        kwargs = {"timeout": self.timeout} if self.timeout is not None else {}
        try:
            response = await self.client.get(key.path, **kwargs)
        except httpx.TimeoutException as ex:
            log.warning(f"{key}: request timed out")
            return FetchResult(error=RequestTimeout(f"Request timed out: {ex}", cause=ex))
        except httpx.RequestError as ex:
            log.warning(f"{key}: network error — {ex}")
            return FetchResult(error=NetworkError(f"Network error: {ex}", cause=ex))

        if not response.is_success:
            log.warning(f"{key}: HTTP {response.status_code}")
            return FetchResult(error=HttpError(response.status_code, info=_error_info(response)))

        try:
            return FetchResult(data=response.json())
        except (json.JSONDecodeError, UnicodeDecodeError) as ex:
            log.warning(f"{key}: invalid JSON body — {ex}")
            return FetchResult(error=ParseError(f"Invalid JSON response: {ex}", cause=ex))

    __call__ = fetch
