"""
riverdash/routers/weather.py
GET /api/weather/{lat}/{lng} → {current, forecast}  (NWS, by coordinates)
"""

import httpx
from fastapi import APIRouter, Path

from riverdash.core.responses import fallback_or_error
from riverdash.fallback import FALLBACK_WEATHER
from riverdash.scrapers.nws import fetch_weather

router = APIRouter(prefix="/api", tags=["weather"])


@router.get("/weather/{lat}/{lng}")
async def get_weather(
    lat: float = Path(..., ge=-90.0,  le=90.0),
    lng: float = Path(..., ge=-180.0, le=180.0),
):
    try:
        return await fetch_weather(lat, lng)
    except (httpx.HTTPError, ValueError) as ex:
        return fallback_or_error("weather data", ex, lambda: dict(FALLBACK_WEATHER))
