"""
riverdash/core/cache.py
═══════════════════════════════════════════════════════════════════════════
Stale-while-revalidate cache store.
  • One CacheEntry per ResourceKey, created lazily, never evicted
  • At most one in-flight fetch per key; later callers attach to it
  • Requests inside the dedupe window are served from cache (unless forced)
  • Failed fetch never clears good data → stale data stays visible
  • Failed fetch with no data + fallback configured → fallback adopted,
    error still recorded
  • Every mutation is pushed to listeners synchronously
═══════════════════════════════════════════════════════════════════════════
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from riverdash.core.errors import FetchError
from riverdash.core.resource import FetchConfig, FetchFn, FetchResult, ResourceKey

log = logging.getLogger("cache")

Listener = Callable[[ResourceKey, "CacheEntry"], None]


@dataclass
class CacheEntry:
    key:               ResourceKey
    data:              Any = None
    error:             Optional[FetchError] = None
    last_fetched_at:   Optional[float] = None     # last time data was stored
    last_completed_at: Optional[float] = None     # last fetch outcome, success or not
    in_flight:         Optional[asyncio.Task] = None
    is_fallback:       bool = False
    retry_count:       int = 0                    # consecutive failures

    @property
    def is_validating(self) -> bool:
        return self.in_flight is not None


class CacheStore:
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._store: dict[ResourceKey, CacheEntry] = {}
        self._listeners: list[Listener] = []
        self._clock = clock

    # ── Entries ───────────────────────────────────────────────────────────────

    def get(self, key: ResourceKey) -> CacheEntry:
        """Entry for key, created empty on first access."""
        entry = self._store.get(key)
        if entry is None:
            entry = CacheEntry(key=key)
            self._store[key] = entry
        return entry

    def peek(self, key: ResourceKey) -> Optional[CacheEntry]:
        return self._store.get(key)

    def __contains__(self, key: ResourceKey) -> bool:
        return key in self._store

    def keys(self) -> list[ResourceKey]:
        return list(self._store.keys())

    def set(self, key: ResourceKey, mutator: Callable[[CacheEntry], None]) -> CacheEntry:
        """Apply mutator to the entry in place, then notify listeners."""
        entry = self.get(key)
        mutator(entry)
        self._notify(entry)
        return entry

    def is_fresh(self, key: ResourceKey, window_s: float) -> bool:
        entry = self._store.get(key)
        if entry is None or entry.last_completed_at is None:
            return False
        return self._clock() - entry.last_completed_at < window_s

    def now(self) -> float:
        return self._clock()

    # ── Listeners ─────────────────────────────────────────────────────────────

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, entry: CacheEntry) -> None:
        for listener in list(self._listeners):
            try:
                listener(entry.key, entry)
            except Exception:
                log.exception(f"Cache listener failed for {entry.key}")

    # ── Revalidation ──────────────────────────────────────────────────────────

    def start(
        self,
        key: ResourceKey,
        fetch: FetchFn,
        config: FetchConfig,
        force: bool = False,
    ) -> Optional[asyncio.Task]:
        """
        Begin a fetch for key without waiting for it. The entry is marked
        validating before this returns. Returns the in-flight task (an existing
        one if a fetch is already running), or None inside the dedupe window.
        """
        entry = self.get(key)

        if entry.in_flight is not None:
            log.debug(f"{key}: attaching to in-flight fetch")
            return entry.in_flight

        if not force and self.is_fresh(key, config.dedupe_window_s):
            log.debug(f"{key}: inside dedupe window — serving cache")
            return None

        task = asyncio.ensure_future(self._run_fetch(entry, fetch, config))
        self.set(key, lambda e: setattr(e, "in_flight", task))
        return task

    async def revalidate(
        self,
        key: ResourceKey,
        fetch: FetchFn,
        config: FetchConfig,
        force: bool = False,
    ) -> CacheEntry:
        task = self.start(key, fetch, config, force=force)
        if task is None:
            return self.get(key)
        # Callers may be cancelled; the fetch itself runs to completion
        return await asyncio.shield(task)

    async def invalidate(self, key: ResourceKey, fetch: FetchFn, config: FetchConfig) -> CacheEntry:
        """Bypass the dedupe window and refetch now."""
        return await self.revalidate(key, fetch, config, force=True)

    async def _run_fetch(self, entry: CacheEntry, fetch: FetchFn, config: FetchConfig) -> CacheEntry:
        try:
            result = await fetch(entry.key)
        except asyncio.CancelledError:
            entry.in_flight = None
            self._notify(entry)
            raise
        except Exception as ex:
            log.error(f"{entry.key}: fetch function raised {ex!r}")
            result = FetchResult(error=FetchError(f"Fetch failed: {ex}", cause=ex))
        if not isinstance(result, FetchResult):
            # plain coroutine fetchers return the payload directly
            result = FetchResult(data=result)

        self.set(entry.key, lambda e: self._apply(e, result, config))
        return entry

    def _apply(self, entry: CacheEntry, result: FetchResult, config: FetchConfig) -> None:
        now = self._clock()
        entry.in_flight = None
        entry.last_completed_at = now

        if result.ok:
            entry.data            = result.data
            entry.error           = None
            entry.last_fetched_at = now
            entry.is_fallback     = False
            entry.retry_count     = 0
            return

        entry.error = result.error
        entry.retry_count += 1

        if entry.data is None and config.fallback_data is not None:
            entry.data            = config.fallback_data
            entry.last_fetched_at = now
            entry.is_fallback     = True
            log.info(f"{entry.key}: fetch failed ({result.error!r}) — using fallback data")
        elif entry.data is not None:
            log.warning(f"{entry.key}: fetch failed ({result.error!r}) — keeping stale data")
        else:
            log.warning(f"{entry.key}: fetch failed ({result.error!r}) — no data available")

    # ── Introspection ─────────────────────────────────────────────────────────

    def summary(self) -> dict:
        """Per-key metadata, no payloads."""
        now = self._clock()
        return {
            str(k): {
                "age_s":      round(now - e.last_fetched_at, 1) if e.last_fetched_at is not None else None,
                "error":      repr(e.error) if e.error else None,
                "fallback":   e.is_fallback,
                "validating": e.is_validating,
            }
            for k, e in self._store.items()
        }
