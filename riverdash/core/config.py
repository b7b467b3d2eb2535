"""
riverdash/core/config.py  ── Delaware River Dashboard
═══════════════════════════════════════════════════════════════════════════════
SOURCE ASSIGNMENT:

  USGS WaterServices  →  station metadata (site service, RDB)
                          live readings     (iv, JSON)
                          7-day history     (dv, JSON)

  NWS api.weather.gov →  forecast by coordinates (points → forecast)
                          active alerts for NY, PA and NJ (basin states)

  FISHING_REPORTS_URL →  optional HTML page scraped for fishing reports

Everything else (mock stations, weather, alerts, reports) lives in
riverdash/fallback.py and is served when an upstream call fails.
═══════════════════════════════════════════════════════════════════════════════
"""

import logging
import os

import pytz

log = logging.getLogger("config")

LOCAL_TZ = pytz.timezone("America/New_York")


def _env_float(name: str, default: float) -> float:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        log.warning(f"{name}={raw!r} is not a number, using {default}")
        return default


def _env_int(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        log.warning(f"{name}={raw!r} is not an integer, using {default}")
        return default


# ── Runtime ───────────────────────────────────────────────────────────────────
ENV        = (os.environ.get("RIVERDASH_ENV") or "development").strip().lower()
PRODUCTION = ENV == "production"
LOG_LEVEL  = (os.environ.get("LOG_LEVEL") or "INFO").upper()

# Base URL the dashboard resolves resource keys against (our own API service)
API_BASE = (os.environ.get("RIVERDASH_API_BASE") or "http://127.0.0.1:8000").rstrip("/")

# ── Upstream services ─────────────────────────────────────────────────────────
USGS_SITE_URL = os.environ.get("USGS_SITE_URL", "https://waterservices.usgs.gov/nwis/site/")
USGS_IV_URL   = os.environ.get("USGS_IV_URL",   "https://waterservices.usgs.gov/nwis/iv/")
USGS_DV_URL   = os.environ.get("USGS_DV_URL",   "https://waterservices.usgs.gov/nwis/dv/")
NWS_BASE      = os.environ.get("NWS_BASE",      "https://api.weather.gov").rstrip("/")

USER_AGENT = os.environ.get(
    "USER_AGENT", "DelawareRiverDashboard/1.0 (contact@example.com)"
)
UPSTREAM_HEADERS = {"User-Agent": USER_AGENT, "Accept": "application/json, text/plain, */*"}

# State codes queried for NWS active alerts (the basin spans NY, PA and NJ)
ALERT_AREA = os.environ.get("ALERT_AREA", "NY,PA,NJ")

FISHING_REPORTS_URL = os.environ.get("FISHING_REPORTS_URL", "").strip()
if not FISHING_REPORTS_URL:
    log.info("FISHING_REPORTS_URL not set — fishing reports will use fallback data")

# ── Fetch / cache behaviour ───────────────────────────────────────────────────
REQUEST_TIMEOUT_S      = _env_float("REQUEST_TIMEOUT_S", 10.0)
DEDUPE_WINDOW_S        = _env_float("DEDUPE_WINDOW_S", 10.0)
MAX_RETRIES            = _env_int("MAX_RETRIES", 3)
ERROR_RETRY_INTERVAL_S = _env_float("ERROR_RETRY_INTERVAL_S", 5.0)

STATIONS_REFRESH_S = _env_float("STATIONS_REFRESH_S", 30 * 60)       # 30 min
STATION_REFRESH_S  = _env_float("STATION_REFRESH_S", 30 * 60)        # 30 min
WEATHER_REFRESH_S  = _env_float("WEATHER_REFRESH_S", 60 * 60)        # 1 hour
ALERTS_REFRESH_S   = _env_float("ALERTS_REFRESH_S", 30 * 60)         # 30 min
FISHING_REFRESH_S  = _env_float("FISHING_REFRESH_S", 24 * 60 * 60)   # daily

HISTORY_DAYS = 7

# Default coordinates for the Upper Delaware region (used when no device
# location is supplied)
DEFAULT_COORDS: tuple[float, float] = (41.6, -75.0)

# ── Monitored stations ────────────────────────────────────────────────────────
STATION_IDS: list[str] = [
    "01427510",  # Delaware River at Callicoon, NY
    "01428500",  # Delaware River at Barryville, NY
    "01434000",  # Delaware River at Port Jervis, NY
    "01417500",  # East Branch Delaware River at Harvard, NY
    "01423000",  # West Branch Delaware River at Hancock, NY
    "01437500",  # Neversink River at Godeffroy, NY
    "01420500",  # Beaver Kill at Cooks Falls, NY
    "01365000",  # Willowemoc Creek near Livingston Manor, NY
]

RIVER_BY_SITE: dict[str, str] = {
    "01427510": "Upper Delaware River",
    "01428500": "Upper Delaware River",
    "01434000": "Upper Delaware River",
    "01417500": "East Branch Delaware River",
    "01423000": "West Branch Delaware River",
    "01437500": "Neversink River",
    "01420500": "Beaverkill",
    "01365000": "Willowemoc",
}
DEFAULT_RIVER = "Upper Delaware River"

# Station-name substring → river, checked in order
RIVER_NAME_PATTERNS: list[tuple[str, str]] = [
    ("East Branch Delaware", "East Branch Delaware River"),
    ("West Branch Delaware", "West Branch Delaware River"),
    ("Neversink",            "Neversink River"),
    ("Beaver Kill",          "Beaverkill"),
    ("Willowemoc",           "Willowemoc"),
]

# ── Status thresholds (policy data) ───────────────────────────────────────────
# value > high → "high", value < low → "low", otherwise "normal"
STATUS_THRESHOLDS: dict[str, dict[str, float]] = {
    "flow":        {"high": 2500.0, "low": 1500.0},   # cfs
    "height":      {"high": 4.0,    "low": 3.0},      # ft
    "temperature": {"high": 70.0,   "low": 40.0},     # °F, trout health
}

# USGS parameter codes
PARAM_FLOW   = "00060"
PARAM_HEIGHT = "00065"
PARAM_TEMP   = "00010"
PARAMETER_CODES = {PARAM_FLOW: "flow", PARAM_HEIGHT: "height", PARAM_TEMP: "temperature"}
