"""Test helpers: a manual clock, scriptable fetch functions and sample data."""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import httpx

from riverdash.core.errors import FetchError
from riverdash.core.fetcher import ResourceFetcher
from riverdash.core.resource import FetchResult, ResourceKey


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedFetch:
    """
    Fetch function that records calls and answers from a script.
    Each script item is a payload, a FetchError (returned as a failure)
    or an Exception (raised). The last item repeats once the script runs out.
    Set hold() to keep fetches in flight until release().
    """

    def __init__(self, *script: Any) -> None:
        self.script = list(script) or [None]
        self.calls: list[ResourceKey] = []
        self._gate: asyncio.Event | None = None

    def hold(self) -> None:
        self._gate = asyncio.Event()

    def release(self) -> None:
        if self._gate is not None:
            self._gate.set()

    async def __call__(self, key: ResourceKey) -> FetchResult:
        self.calls.append(key)
        if self._gate is not None:
            await self._gate.wait()
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, FetchError):
            return FetchResult(error=item)
        if isinstance(item, Exception):
            raise item
        return FetchResult(data=item)


class RoutedFetch:
    """Fetch function answering per resource name; values may be callables of the key."""

    def __init__(self, routes: dict[str, Any]) -> None:
        self.routes = routes
        self.calls: list[ResourceKey] = []

    def count(self, name: str) -> int:
        return sum(1 for k in self.calls if k.name == name)

    async def __call__(self, key: ResourceKey) -> FetchResult:
        self.calls.append(key)
        value = self.routes[key.name]
        if callable(value):
            value = value(key)
        if isinstance(value, FetchError):
            return FetchResult(error=value)
        return FetchResult(data=value)


def mock_fetcher(handler: Callable[[httpx.Request], httpx.Response]) -> ResourceFetcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://riverdash.test")
    return ResourceFetcher(client)


STATIONS = [
    {"id": "01427510", "name": "Delaware River at Callicoon, NY",  "lat": 41.76, "lng": -75.06, "river": "Upper Delaware River"},
    {"id": "01428500", "name": "Delaware River at Barryville, NY", "lat": 41.51, "lng": -74.91, "river": "Upper Delaware River"},
    {"id": "01434000", "name": "Delaware River at Port Jervis, NY", "lat": 41.37, "lng": -74.70, "river": "Upper Delaware River"},
    {"id": "01437500", "name": "Neversink River at Godeffroy, NY", "lat": 41.44, "lng": -74.60, "river": "Neversink River"},
    {"id": "01420500", "name": "Beaver Kill at Cooks Falls, NY",   "lat": 41.95, "lng": -74.98, "river": "Beaverkill"},
    {"id": "01365000", "name": "Willowemoc Creek near Livingston Manor, NY", "lat": 41.90, "lng": -74.80, "river": "Willowemoc"},
]
