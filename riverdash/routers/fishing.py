"""
riverdash/routers/fishing.py
GET /api/fishing-reports → [{river, section, report, date, flies}]
"""

import logging

import httpx
from fastapi import APIRouter

from riverdash.fallback import FALLBACK_FISHING_REPORTS
from riverdash.scrapers.fishing import scrape_fishing_reports

log    = logging.getLogger("fishing_router")
router = APIRouter(prefix="/api", tags=["fishing"])


@router.get("/fishing-reports")
async def get_fishing_reports():
    try:
        return await scrape_fishing_reports()
    except (httpx.HTTPError, ValueError) as ex:
        log.info(f"Using fallback fishing reports: {ex}")
        return [dict(r) for r in FALLBACK_FISHING_REPORTS]
