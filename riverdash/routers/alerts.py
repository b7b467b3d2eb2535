"""
riverdash/routers/alerts.py
GET /api/alerts → [{type, river, message, severity, expires}]

NWS water-related alerts; any upstream failure is answered with the
fallback alert list (in every environment).
"""

import logging

import httpx
from fastapi import APIRouter

from riverdash.fallback import fallback_alerts
from riverdash.scrapers.nws import fetch_alerts

log    = logging.getLogger("alerts_router")
router = APIRouter(prefix="/api", tags=["alerts"])


@router.get("/alerts")
async def get_alerts():
    try:
        return await fetch_alerts()
    except (httpx.HTTPError, ValueError) as ex:
        log.warning(f"Using fallback alerts: {ex}")
        return fallback_alerts()
