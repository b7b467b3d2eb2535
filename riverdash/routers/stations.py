"""
riverdash/routers/stations.py
Endpoints:
  GET /api/stations        → [{id, name, lat, lng, river}]
  GET /api/station/{id}    → {id, name, current, status, historical}
  GET /api/stations/{id}   → same as above

Live USGS calls on every request; the dashboard's cache does the caching.
"""

import logging

import httpx
from fastapi import APIRouter

from riverdash.core.responses import error_response, fallback_or_error
from riverdash.fallback import FALLBACK_STATIONS, mock_history, mock_station_data
from riverdash.scrapers.usgs import scrape_history, scrape_station, scrape_stations

log    = logging.getLogger("stations_router")
router = APIRouter(prefix="/api", tags=["stations"])


@router.get("/stations")
async def get_stations():
    try:
        return await scrape_stations()
    except (httpx.HTTPError, ValueError) as ex:
        return fallback_or_error("station data", ex, lambda: [dict(s) for s in FALLBACK_STATIONS])


@router.get("/station/{station_id}")
@router.get("/stations/{station_id}")
async def get_station(station_id: str):
    station_id = station_id.strip()
    if not station_id:
        return error_response(400, "Station ID is required")
    if not station_id.isdigit():
        return error_response(400, f"Invalid station ID '{station_id}'")

    try:
        data = await scrape_station(station_id)
    except (httpx.HTTPError, ValueError) as ex:
        return fallback_or_error(f"station {station_id}", ex, lambda: mock_station_data(station_id))

    try:
        data["historical"] = await scrape_history(station_id)
    except (httpx.HTTPError, ValueError) as ex:
        # history failure only mocks the chart, never the whole card
        log.warning(f"History for {station_id} unavailable ({ex}) — using mock history")
        data["historical"] = mock_history()
    return data
