"""
riverdash/scrapers/usgs.py
═══════════════════════════════════════════════════════════════════════════════
USGS WaterServices — station metadata, live readings, 7-day daily history.

Endpoints used:
  /nwis/site/?format=rdb&sites=...&siteOutput=expanded   → station list (RDB)
  /nwis/iv/?format=json&sites={id}&parameterCd=...       → latest readings
  /nwis/dv/?format=json&sites={id}&startDT=&endDT=       → daily values

Parameter codes: 00060 flow (cfs), 00065 gage height (ft), 00010 water
temperature (°C upstream → converted to °F here so it matches the
thresholds and the mock data).

Functions raise httpx errors / ValueError on failure; the routers decide
whether to fall back to mock data.
═══════════════════════════════════════════════════════════════════════════════
"""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union

from riverdash.core.config import (
    USGS_SITE_URL, USGS_IV_URL, USGS_DV_URL, STATION_IDS, HISTORY_DAYS,
    RIVER_BY_SITE, RIVER_NAME_PATTERNS, DEFAULT_RIVER, STATUS_THRESHOLDS,
    PARAMETER_CODES, PARAM_TEMP, LOCAL_TZ,
)
from riverdash.core.http_client import usgs_client

log = logging.getLogger("usgs")

_NO_DATA = -999999.0


# ── Helpers ───────────────────────────────────────────────────────────────────

def day_label(value: Union[date, datetime]) -> str:
    """date/datetime → 'Apr 10' (datetimes converted to Eastern time first)."""
    if isinstance(value, datetime):
        value = value.astimezone(LOCAL_TZ) if value.tzinfo else value
    return f"{value:%b} {value.day}"


def determine_river(station_name: str, site_no: str = "") -> str:
    name = station_name or ""
    if "Delaware" in name and "Branch" not in name:
        return "Upper Delaware River"
    for needle, river in RIVER_NAME_PATTERNS:
        if needle in name:
            return river
    return RIVER_BY_SITE.get(site_no, DEFAULT_RIVER)


def classify_status(kind: str, value: Optional[float]) -> str:
    """'high' | 'normal' | 'low' against STATUS_THRESHOLDS, 'unknown' if no value."""
    if value is None:
        return "unknown"
    limits = STATUS_THRESHOLDS.get(kind)
    if not limits:
        return "unknown"
    if value > limits["high"]:
        return "high"
    if value < limits["low"]:
        return "low"
    return "normal"


def _to_float(raw) -> Optional[float]:
    try:
        v = float(raw)
    except (TypeError, ValueError):
        return None
    return None if v == _NO_DATA else v


def _c_to_f(celsius: Optional[float]) -> Optional[float]:
    if celsius is None:
        return None
    return round(celsius * 9 / 5 + 32, 1)


def _param_code(series: dict) -> str:
    codes = series.get("variable", {}).get("variableCode") or [{}]
    return codes[0].get("value", "")


def _series_values(series: dict) -> list[dict]:
    blocks = series.get("values") or [{}]
    return blocks[0].get("value") or []


# ── Station list ──────────────────────────────────────────────────────────────

def parse_site_rdb(text: str) -> list[dict]:
    """
    Parse the tab-delimited RDB site listing.
    Comment lines start with '#', the header row starts with 'agency_cd' and is
    followed by a format row ('5s  15s ...') that is skipped.
    """
    headers: list[str] = []
    stations: list[dict] = []
    skip_format_row = False

    for line in text.splitlines():
        if not line.strip() or line.startswith("#"):
            continue
        if line.startswith("agency_cd"):
            headers = line.split("\t")
            skip_format_row = True
            continue
        if skip_format_row:
            skip_format_row = False
            continue
        if not headers:
            continue

        row = dict(zip(headers, line.split("\t")))
        site_no = row.get("site_no", "").strip()
        name    = row.get("station_nm", "").strip()
        lat     = _to_float(row.get("dec_lat_va"))
        lng     = _to_float(row.get("dec_long_va"))
        if not site_no or lat is None or lng is None:
            log.debug(f"Skipping incomplete RDB row: {row}")
            continue
        stations.append({
            "id":    site_no,
            "name":  name,
            "lat":   lat,
            "lng":   lng,
            "river": determine_river(name, site_no),
        })
    return stations


async def scrape_stations(station_ids: Optional[list[str]] = None) -> list[dict]:
    ids = station_ids or STATION_IDS
    resp = await usgs_client().get(USGS_SITE_URL, params={
        "format":     "rdb",
        "sites":      ",".join(ids),
        "siteStatus": "all",
        "siteOutput": "expanded",
    })
    resp.raise_for_status()
    stations = parse_site_rdb(resp.text)
    if not stations:
        raise ValueError("USGS site service returned no stations")
    log.info(f"USGS: {len(stations)} stations")
    return stations


# ── Live readings ─────────────────────────────────────────────────────────────

def parse_iv(payload: dict) -> tuple[str, dict]:
    """IV JSON → (station name, {flow, height, temperature}) using the latest value per parameter."""
    try:
        series_list = payload["value"]["timeSeries"]
    except (KeyError, TypeError) as ex:
        raise ValueError(f"Unexpected IV payload: {ex}") from ex

    name = ""
    current: dict[str, Optional[float]] = {"flow": None, "height": None, "temperature": None}
    for series in series_list:
        name = series.get("sourceInfo", {}).get("siteName", name)
        code = _param_code(series)
        field = PARAMETER_CODES.get(code)
        values = _series_values(series)
        if not field or not values:
            continue
        value = _to_float(values[-1].get("value"))
        current[field] = _c_to_f(value) if code == PARAM_TEMP else value
    return name, current


async def scrape_station(station_id: str) -> dict:
    """Live readings + status for one station (no history)."""
    resp = await usgs_client().get(USGS_IV_URL, params={
        "format":      "json",
        "sites":       station_id,
        "parameterCd": ",".join(PARAMETER_CODES),
        "siteStatus":  "all",
    })
    resp.raise_for_status()
    name, current = parse_iv(resp.json())
    return {
        "id":   station_id,
        "name": name,
        "current": {
            **current,
            "updated": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        },
        "status": {kind: classify_status(kind, current[kind]) for kind in ("height", "flow", "temperature")},
    }


# ── History ───────────────────────────────────────────────────────────────────

def parse_dv(payload: dict) -> list[dict]:
    """DV JSON → [{date, flow, height, temperature}] one row per day, oldest first."""
    try:
        series_list = payload["value"]["timeSeries"]
    except (KeyError, TypeError) as ex:
        raise ValueError(f"Unexpected DV payload: {ex}") from ex

    by_date: dict[str, dict] = {}
    for series in series_list:
        code = _param_code(series)
        field = PARAMETER_CODES.get(code)
        if not field:
            continue
        for entry in _series_values(series):
            iso_day = (entry.get("dateTime") or "").split("T")[0]
            if not iso_day:
                continue
            row = by_date.setdefault(iso_day, {
                "date": day_label(date.fromisoformat(iso_day)),
                "flow": None, "height": None, "temperature": None,
            })
            value = _to_float(entry.get("value"))
            row[field] = _c_to_f(value) if code == PARAM_TEMP else value

    return [by_date[d] for d in sorted(by_date)]


async def scrape_history(station_id: str, days: int = HISTORY_DAYS, today: Optional[date] = None) -> list[dict]:
    end   = today or datetime.now(LOCAL_TZ).date()
    start = end - timedelta(days=days)
    resp = await usgs_client().get(USGS_DV_URL, params={
        "format":      "json",
        "sites":       station_id,
        "startDT":     start.isoformat(),
        "endDT":       end.isoformat(),
        "parameterCd": ",".join(PARAMETER_CODES),
        "siteStatus":  "all",
    })
    resp.raise_for_status()
    return parse_dv(resp.json())
