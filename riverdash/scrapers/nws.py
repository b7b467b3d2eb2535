"""
riverdash/scrapers/nws.py
═══════════════════════════════════════════════════════════════════════════════
National Weather Service API (api.weather.gov, no key, User-Agent required).

  /points/{lat},{lng}          → forecast URL for the grid cell
  {forecast URL}               → 12-hour periods (day / night)
  /alerts/active?area=NY,PA,NJ → active alerts, filtered to water-related ones

Shapes returned:
  weather → {current:{temp,condition,precipitation,wind},
             forecast:[{day,high,low,condition,precipitation}]}
  alerts  → [{type,river,message,severity,expires}]
═══════════════════════════════════════════════════════════════════════════════
"""

import logging
from datetime import datetime
from typing import Optional

from riverdash.core.config import NWS_BASE, ALERT_AREA, LOCAL_TZ
from riverdash.core.http_client import nws_client

log = logging.getLogger("nws")

FORECAST_DAYS = 5

_WATER_WORDS = ("river", "water", "stream", "flood")


# ── Helpers ───────────────────────────────────────────────────────────────────

def _json_object(resp) -> dict:
    body = resp.json()
    if not isinstance(body, dict):
        raise ValueError(f"expected a JSON object from {resp.url}, got {type(body).__name__}")
    return body


def _pop(period: dict) -> str:
    """Probability of precipitation as '40%'."""
    value = (period.get("probabilityOfPrecipitation") or {}).get("value")
    return f"{int(value or 0)}%"


def _wind(period: dict) -> str:
    direction = (period.get("windDirection") or "").strip()
    speed     = (period.get("windSpeed") or "").strip()
    return f"{direction} {speed}".strip()


def _period_day(period: dict) -> Optional[datetime]:
    raw = period.get("startTime")
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).astimezone(LOCAL_TZ)
    except ValueError:
        return None


def shape_forecast(periods: list[dict], days: int = FORECAST_DAYS) -> dict:
    """NWS 12-hour periods → dashboard weather payload."""
    if not periods:
        raise ValueError("NWS forecast has no periods")

    first = periods[0]
    current = {
        "temp":          first.get("temperature"),
        "condition":     first.get("shortForecast", ""),
        "precipitation": _pop(first),
        "wind":          _wind(first),
    }

    by_day: dict = {}
    order: list = []
    for period in periods:
        dt = _period_day(period)
        if dt is None:
            continue
        d = dt.date()
        if d not in by_day:
            by_day[d] = {"high": None, "low": None, "condition": "", "precipitation": "0%"}
            order.append(d)
        slot = by_day[d]
        temp = period.get("temperature")
        if period.get("isDaytime", True):
            slot["high"] = temp
            slot["condition"] = period.get("shortForecast", "")
            slot["precipitation"] = _pop(period)
        else:
            slot["low"] = temp
            if not slot["condition"]:
                slot["condition"] = period.get("shortForecast", "")
                slot["precipitation"] = _pop(period)

    forecast = []
    for i, d in enumerate(order[:days]):
        slot = by_day[d]
        forecast.append({
            "day":           "Today" if i == 0 else f"{d:%a}",
            "high":          slot["high"] if slot["high"] is not None else slot["low"],
            "low":           slot["low"] if slot["low"] is not None else slot["high"],
            "condition":     slot["condition"],
            "precipitation": slot["precipitation"],
        })
    return {"current": current, "forecast": forecast}


def map_severity(nws_severity: Optional[str]) -> str:
    s = (nws_severity or "").lower()
    if s in ("extreme", "severe"):
        return "high"
    if s == "moderate":
        return "moderate"
    return "low"


def _is_water_related(props: dict) -> bool:
    event = (props.get("event") or "").lower()
    description = (props.get("description") or "").lower()
    return "flood" in event or any(w in description for w in _WATER_WORDS)


def shape_alerts(features: list[dict]) -> list[dict]:
    alerts = []
    for feature in features:
        props = feature.get("properties") or {}
        if not _is_water_related(props):
            continue
        headline = props.get("headline") or props.get("event") or "Weather alert"
        first_sentence = (props.get("description") or "").split(".")[0].strip()
        message = f"{headline}: {first_sentence}." if first_sentence else headline
        alerts.append({
            "type":     "weather",
            "river":    "All Areas",
            "message":  " ".join(message.split()),
            "severity": map_severity(props.get("severity")),
            "expires":  props.get("expires") or props.get("ends") or "",
        })
    return alerts


# ── Fetchers ──────────────────────────────────────────────────────────────────

async def fetch_weather(lat: float, lng: float) -> dict:
    client = nws_client()
    resp = await client.get(f"{NWS_BASE}/points/{lat:.4f},{lng:.4f}")
    resp.raise_for_status()
    forecast_url = (_json_object(resp).get("properties") or {}).get("forecast")
    if not forecast_url:
        raise ValueError(f"No NWS forecast for {lat},{lng}")

    resp = await client.get(forecast_url)
    resp.raise_for_status()
    periods = (_json_object(resp).get("properties") or {}).get("periods") or []
    weather = shape_forecast(periods)
    log.info(f"NWS: forecast for {lat:.2f},{lng:.2f} ({len(weather['forecast'])} days)")
    return weather


async def fetch_alerts(area: str = ALERT_AREA) -> list[dict]:
    resp = await nws_client().get(f"{NWS_BASE}/alerts/active", params={"area": area})
    resp.raise_for_status()
    features = _json_object(resp).get("features") or []
    alerts = shape_alerts(features)
    log.info(f"NWS: {len(alerts)} water-related alerts of {len(features)} active")
    return alerts
