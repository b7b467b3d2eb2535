"""
riverdash/main.py  — Delaware River Dashboard API v1
Thin per-resource handlers: live upstream call, reshape, fall back to mock
data on failure. The dashboard client owns caching and refresh.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from riverdash.core import config
from riverdash.core.http_client import close_all
from riverdash.core.responses import error_response
from riverdash.routers import alerts, fishing, stations, weather

__version__ = "1.0.0"

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
log = logging.getLogger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info(f"Delaware River Dashboard API v{__version__} starting ({config.ENV})...")
    yield
    log.info("Shutting down...")
    await close_all()


app = FastAPI(
    title="Delaware River Dashboard API",
    description=(
        "River conditions for the Upper Delaware system. "
        "Sources: USGS WaterServices (stations, live readings, daily history) + "
        "NWS api.weather.gov (forecast, alerts) + local fishing reports. "
        "Falls back to demo data when an upstream source is unavailable."
    ),
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    problems = "; ".join(
        f"{'.'.join(str(p) for p in e.get('loc', ())[1:])}: {e.get('msg', '')}" for e in exc.errors()
    )
    return error_response(400, problems or "Invalid request")


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(stations.router)
app.include_router(weather.router)
app.include_router(alerts.router)
app.include_router(fishing.router)


@app.get("/", tags=["meta"])
async def root():
    return {
        "status":  "online",
        "version": __version__,
        "env":     config.ENV,
        "sources": {
            "stations": "USGS WaterServices (site, iv, dv)",
            "weather":  "NWS api.weather.gov (points → forecast)",
            "alerts":   "NWS api.weather.gov (alerts/active)",
            "fishing":  config.FISHING_REPORTS_URL or "fallback reports",
        },
        "endpoints": {
            "stations":        "/api/stations",
            "station":         "/api/station/{id}",
            "weather":         "/api/weather/{lat}/{lng}",
            "alerts":          "/api/alerts",
            "fishing_reports": "/api/fishing-reports",
            "health":          "/health",
            "docs":            "/docs",
        },
        "station_ids": config.STATION_IDS,
    }


@app.get("/health", tags=["meta"])
async def health():
    """Lightweight health check. No upstream calls."""
    return {
        "status":      "healthy",
        "env":         config.ENV,
        "fallback":    not config.PRODUCTION,
        "station_ids": len(config.STATION_IDS),
    }
