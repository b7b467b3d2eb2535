"""
riverdash/dashboard.py
═══════════════════════════════════════════════════════════════════════════════
Dashboard orchestrator: the one consumer that composes every resource key.

  stations            → /api/stations          (30 min, fallback stations)
  station/{id}        → /api/station/{id}      (30 min, one per visible station)
  weather/{lat}/{lng} → /api/weather/...       (60 min, fallback weather)
  alerts              → /api/alerts            (30 min, fallback alerts)
  fishing-reports     → /api/fishing-reports   (24 h,   fallback reports)

The visible station set is recomputed on every stations change and on every
river filter change; per-station subscriptions follow that set.
═══════════════════════════════════════════════════════════════════════════════
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Optional

from riverdash.core import config
from riverdash.core.cache import CacheEntry
from riverdash.core.hub import Subscription, SubscriptionHub
from riverdash.core.resource import (
    FetchConfig,
    alerts_key,
    fishing_reports_key,
    station_key,
    stations_key,
    weather_key,
)
from riverdash.fallback import (
    FALLBACK_FISHING_REPORTS,
    FALLBACK_STATIONS,
    FALLBACK_WEATHER,
    fallback_alerts,
)

log = logging.getLogger("dashboard")

ALL_RIVERS = "all"


class Dashboard:
    def __init__(
        self,
        hub: SubscriptionHub,
        coords: tuple[float, float] = config.DEFAULT_COORDS,
        river: str = ALL_RIVERS,
        on_change: Optional[Callable[["Dashboard"], None]] = None,
    ):
        self.hub          = hub
        self.river        = river
        self.coords       = coords
        self.on_change    = on_change
        self.last_updated: Optional[datetime] = None

        self.configs = {
            "stations": FetchConfig(refresh_interval_s=config.STATIONS_REFRESH_S, fallback_data=FALLBACK_STATIONS),
            "station":  FetchConfig(refresh_interval_s=config.STATION_REFRESH_S),
            "weather":  FetchConfig(refresh_interval_s=config.WEATHER_REFRESH_S, fallback_data=FALLBACK_WEATHER),
            "alerts":   FetchConfig(refresh_interval_s=config.ALERTS_REFRESH_S, fallback_data=fallback_alerts()),
            "fishing":  FetchConfig(refresh_interval_s=config.FISHING_REFRESH_S, fallback_data=FALLBACK_FISHING_REPORTS),
        }

        self._subs:          dict[str, Subscription] = {}
        self._station_subs:  dict[str, Subscription] = {}
        self._stations_data: Any = None
        self._visible:       list[dict] = []
        self._started = False

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def start(self) -> "Dashboard":
        """Subscribe to every resource. Needs a running event loop."""
        if self._started:
            return self
        self._started = True
        self._subs["stations"] = self.hub.subscribe(stations_key(), self.configs["stations"], self._on_stations)
        self._subs["weather"]  = self.hub.subscribe(weather_key(*self.coords), self.configs["weather"], self._on_entry)
        self._subs["alerts"]   = self.hub.subscribe(alerts_key(), self.configs["alerts"], self._on_entry)
        self._subs["fishing"]  = self.hub.subscribe(fishing_reports_key(), self.configs["fishing"], self._on_entry)
        log.info(f"Dashboard started: river={self.river} coords={self.coords}")
        return self

    def close(self) -> None:
        for sub in list(self._station_subs.values()):
            sub.unsubscribe()
        self._station_subs.clear()
        for sub in list(self._subs.values()):
            sub.unsubscribe()
        self._subs.clear()
        self._started = False

    # ── Derived views ─────────────────────────────────────────────────────────

    @property
    def stations(self) -> list[dict]:
        """Stations list: cached data, or fallback stations while loading."""
        return self._stations_data if self._stations_data is not None else []

    @property
    def visible_stations(self) -> list[dict]:
        return list(self._visible)

    @property
    def river_options(self) -> list[str]:
        rivers = []
        for s in self.stations:
            river = s.get("river")
            if river and river not in rivers:
                rivers.append(river)
        return [ALL_RIVERS, *rivers]

    @property
    def weather(self) -> Any:
        return self._data("weather")

    @property
    def alerts(self) -> list[dict]:
        return self._data("alerts") or []

    @property
    def fishing_reports(self) -> list[dict]:
        return self._data("fishing") or []

    def station(self, station_id: str) -> Optional[dict]:
        """Live + historical readings for a visible station, if fetched."""
        sub = self._station_subs.get(station_id)
        return sub.data if sub is not None else None

    def errors(self) -> dict[str, str]:
        subs = [*self._subs.values(), *self._station_subs.values()]
        return {str(s.key): str(s.error) for s in subs if s.error is not None}

    # ── Inputs ────────────────────────────────────────────────────────────────

    def set_river(self, river: str) -> None:
        self.river = river or ALL_RIVERS
        self._recompute()
        self._changed()

    def set_coordinates(self, lat: float, lng: float) -> None:
        """Point the weather widget at new coordinates (e.g. from geolocation)."""
        if (lat, lng) == tuple(self.coords):
            return
        self.coords = (lat, lng)
        if not self._started:
            return
        old = self._subs.pop("weather", None)
        self._subs["weather"] = self.hub.subscribe(weather_key(lat, lng), self.configs["weather"], self._on_entry)
        if old is not None:
            old.unsubscribe()

    async def refresh_all(self) -> list[CacheEntry]:
        """Invalidate every subscribed key and wait for the refetches."""
        keys = self.hub.subscribed_keys()
        log.info(f"Refreshing {len(keys)} resources")
        entries = await asyncio.gather(*(self.hub.invalidate(k) for k in keys))
        self.last_updated = datetime.now(config.LOCAL_TZ)
        self._changed()
        return list(entries)

    # ── Listeners ─────────────────────────────────────────────────────────────

    def _on_stations(self, entry: CacheEntry) -> None:
        data = entry.data if entry.data is not None else self.configs["stations"].fallback_data
        if entry.data is not None and entry.data is not self._stations_data:
            self.last_updated = datetime.now(config.LOCAL_TZ)
        self._stations_data = data
        self._recompute()
        self._changed()

    def _on_entry(self, entry: CacheEntry) -> None:
        self._changed()

    def _recompute(self) -> None:
        stations = self.stations
        if self.river == ALL_RIVERS:
            self._visible = list(stations)
        else:
            self._visible = [s for s in stations if s.get("river") == self.river]
        if self._started:
            self._sync_station_subs()

    def _sync_station_subs(self) -> None:
        wanted = [s["id"] for s in self._visible if s.get("id")]
        for station_id in list(self._station_subs):
            if station_id not in wanted:
                self._station_subs.pop(station_id).unsubscribe()
        for station_id in wanted:
            if station_id not in self._station_subs:
                self._station_subs[station_id] = self.hub.subscribe(
                    station_key(station_id), self.configs["station"], self._on_entry
                )

    def _changed(self) -> None:
        if self.on_change is None:
            return
        try:
            self.on_change(self)
        except Exception:
            log.exception("Dashboard change callback failed")

    def _data(self, name: str) -> Any:
        sub = self._subs.get(name)
        if sub is None:
            return self.configs[name].fallback_data
        return sub.data

    # ── Snapshot ──────────────────────────────────────────────────────────────

    def snapshot(self) -> dict:
        stations = []
        for s in self._visible:
            readings = self.station(s.get("id", "")) or {}
            stations.append({
                **s,
                "current": readings.get("current"),
                "status":  readings.get("status"),
            })
        return {
            "river":           self.river,
            "river_options":   self.river_options,
            "last_updated":    self.last_updated.isoformat() if self.last_updated else None,
            "coords":          list(self.coords),
            "stations":        stations,
            "weather":         self.weather,
            "alerts":          self.alerts,
            "fishing_reports": self.fishing_reports,
            "errors":          self.errors(),
        }


def _fmt(value: Any, unit: str = "") -> str:
    if value is None:
        return "n/a"
    return f"{value}{unit}"


def render_text(snap: dict) -> str:
    """Plain-text rendering of Dashboard.snapshot() for the terminal."""
    lines = [
        "Delaware River Dashboard",
        f"Updated: {snap.get('last_updated') or 'never'}   River: {snap.get('river')}",
        "",
        "Stations",
    ]
    for s in snap.get("stations", []):
        current = s.get("current") or {}
        status  = s.get("status") or {}
        lines.append(
            f"  {s.get('name', s.get('id'))} [{s.get('river')}]  "
            f"flow {_fmt(current.get('flow'), ' cfs')} ({status.get('flow', 'unknown')})  "
            f"height {_fmt(current.get('height'), ' ft')} ({status.get('height', 'unknown')})  "
            f"temp {_fmt(current.get('temperature'), '°F')} ({status.get('temperature', 'unknown')})"
        )
    if not snap.get("stations"):
        lines.append("  (no stations)")

    weather = snap.get("weather") or {}
    current = weather.get("current") or {}
    lines += ["", "Weather"]
    lines.append(
        f"  Now: {_fmt(current.get('temp'), '°F')} {current.get('condition', '')}  "
        f"precip {current.get('precipitation', 'n/a')}  wind {current.get('wind', 'n/a')}"
    )
    for day in weather.get("forecast") or []:
        lines.append(
            f"  {day.get('day'):<6} {_fmt(day.get('high'))}/{_fmt(day.get('low'))}  "
            f"{day.get('condition')}  {day.get('precipitation')}"
        )

    lines += ["", "Alerts"]
    for a in snap.get("alerts") or []:
        lines.append(f"  [{a.get('severity', 'low').upper()}] {a.get('river')}: {a.get('message')}")
    if not snap.get("alerts"):
        lines.append("  (none)")

    lines += ["", "Fishing reports"]
    for r in snap.get("fishing_reports") or []:
        lines.append(f"  {r.get('river')} / {r.get('section')} ({r.get('date')})")
        lines.append(f"    flies: {', '.join(r.get('flies') or [])}")

    errors = snap.get("errors") or {}
    if errors:
        lines += ["", "Errors"]
        for key, err in errors.items():
            lines.append(f"  {key}: {err}")
    return "\n".join(lines)
