"""
riverdash/core/responses.py
Error / fallback responses shared by the API routers.

Every non-2xx body is {"error": "<message>"}.
Outside production an upstream failure is answered with fallback data
instead (HTTP 200), so the dashboard always has something to render.
"""

import logging
from typing import Any, Callable

from fastapi.responses import JSONResponse

from riverdash.core import config

log = logging.getLogger("responses")


def error_response(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message})


def fallback_or_error(resource: str, ex: Exception, fallback: Callable[[], Any]) -> Any:
    log.error(f"Error fetching {resource}: {ex}")
    if config.PRODUCTION:
        return error_response(500, f"Failed to fetch {resource}")
    log.info(f"Returning fallback {resource}")
    return fallback()
