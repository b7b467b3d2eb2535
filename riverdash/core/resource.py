"""
riverdash/core/resource.py
Value types shared by the fetch/cache core.

  ResourceKey  → one cacheable unit, e.g. stations, station/01427510,
                 weather/41.6/-75.0
  FetchConfig  → per-key refresh / dedupe / retry / fallback policy
  FetchResult  → tagged outcome of one fetch (data xor error)
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from riverdash.core import config
from riverdash.core.errors import FetchError


@dataclass(frozen=True)
class ResourceKey:
    name:   str
    params: tuple = ()

    @property
    def path(self) -> str:
        """API path this key resolves to, e.g. /api/station/01427510."""
        parts = [self.name, *(str(p) for p in self.params)]
        return "/api/" + "/".join(parts)

    def __str__(self) -> str:
        if not self.params:
            return self.name
        return f"{self.name}:" + ",".join(str(p) for p in self.params)


def stations_key() -> ResourceKey:
    return ResourceKey("stations")


def station_key(station_id: str) -> ResourceKey:
    return ResourceKey("station", (station_id,))


def weather_key(lat: float, lng: float) -> ResourceKey:
    return ResourceKey("weather", (lat, lng))


def alerts_key() -> ResourceKey:
    return ResourceKey("alerts")


def fishing_reports_key() -> ResourceKey:
    return ResourceKey("fishing-reports")


@dataclass
class FetchResult:
    data:  Any = None
    error: Optional[FetchError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


FetchFn = Callable[[ResourceKey], Awaitable[FetchResult]]


@dataclass
class FetchConfig:
    """
    Policy attached to a key at subscription time.
    refresh_interval_s == 0 disables periodic polling (retries still apply).
    fetch overrides the hub's default Resource Fetcher for this key.
    """

    refresh_interval_s:     float = 0.0
    dedupe_window_s:        float = field(default_factory=lambda: config.DEDUPE_WINDOW_S)
    max_retries:            int   = field(default_factory=lambda: config.MAX_RETRIES)
    error_retry_interval_s: float = field(default_factory=lambda: config.ERROR_RETRY_INTERVAL_S)
    fallback_data:          Any   = None
    fetch:                  Optional[FetchFn] = None
