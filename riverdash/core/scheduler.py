"""
riverdash/core/scheduler.py
═══════════════════════════════════════════════════════════════════════════════
Per-key revalidation timers.

State machine per key:   Idle → Scheduled → Fetching → Idle

  1. First activation with no entry (or a stale one) → fetch immediately
  2. Every completion (success or failure) schedules the next fetch:
       failure, retries left → error_retry_interval_s * 2**(n-1)
                               (capped at refresh_interval_s when set)
       otherwise             → refresh_interval_s (0 = no polling)
  3. invalidate(key) cancels the pending timer and fetches now; the timer is
     rescheduled from that completion
  4. deactivate(key) (last subscriber gone) cancels the timer only; an
     already-issued fetch still completes and lands in the cache
  5. The most recently activated config for a key governs its timer
═══════════════════════════════════════════════════════════════════════════════
"""

import asyncio
import logging
from typing import Optional

from riverdash.core.cache import CacheEntry, CacheStore
from riverdash.core.resource import FetchConfig, FetchFn, ResourceKey

log = logging.getLogger("scheduler")

IDLE      = "idle"
SCHEDULED = "scheduled"
FETCHING  = "fetching"


class RevalidationScheduler:
    def __init__(self, store: CacheStore, default_fetch: FetchFn):
        self.store          = store
        self._default_fetch = default_fetch
        self._configs: dict[ResourceKey, FetchConfig] = {}
        self._timers:  dict[ResourceKey, asyncio.TimerHandle] = {}
        self._active:  set[ResourceKey] = set()
        self._tasks:   set[asyncio.Task] = set()

    # ── Introspection ─────────────────────────────────────────────────────────

    def state(self, key: ResourceKey) -> str:
        entry = self.store.peek(key)
        if entry is not None and entry.is_validating:
            return FETCHING
        if key in self._timers:
            return SCHEDULED
        return IDLE

    def config_for(self, key: ResourceKey) -> FetchConfig:
        return self._configs.get(key) or FetchConfig()

    def is_active(self, key: ResourceKey) -> bool:
        return key in self._active

    def active_keys(self) -> list[ResourceKey]:
        return list(self._active)

    # ── Activation ────────────────────────────────────────────────────────────

    def activate(self, key: ResourceKey, config: FetchConfig) -> None:
        """Start (or keep) watching key. Fetches now if nothing usable is cached."""
        self._configs[key] = config
        self._active.add(key)

        entry = self.store.peek(key)
        if entry is not None and entry.is_validating:
            return
        if entry is None or entry.last_completed_at is None:
            log.debug(f"{key}: first subscription — fetching")
            self._spawn(key, force=False)
            return
        if not self.store.is_fresh(key, config.dedupe_window_s):
            self._spawn(key, force=False)
            return
        # Pending timers follow the latest config
        elapsed = self.store.now() - entry.last_completed_at
        delay = self._next_delay(entry, config)
        if delay is None:
            self._cancel_timer(key)
        else:
            self._schedule(key, max(0.0, delay - elapsed))

    def deactivate(self, key: ResourceKey) -> None:
        """Stop polling key. The cache entry is kept."""
        self._active.discard(key)
        if self._cancel_timer(key):
            log.debug(f"{key}: no subscribers left — timer cancelled")

    # ── Revalidation ──────────────────────────────────────────────────────────

    def trigger(self, key: ResourceKey, force: bool = False) -> asyncio.Task:
        self._cancel_timer(key)
        return self._spawn(key, force=force)

    async def invalidate(self, key: ResourceKey) -> CacheEntry:
        """Fetch now regardless of timer state or dedupe window."""
        self._cancel_timer(key)
        return await self._revalidate(key, force=True)

    async def _revalidate(self, key: ResourceKey, force: bool) -> CacheEntry:
        config = self.config_for(key)
        fetch  = config.fetch or self._default_fetch
        entry  = await self.store.revalidate(key, fetch, config, force=force)
        self._schedule_next(key)
        return entry

    async def _revalidate_logged(self, key: ResourceKey, force: bool) -> None:
        try:
            await self._revalidate(key, force)
        except asyncio.CancelledError:
            raise
        except Exception as ex:
            log.error(f"{key}: revalidation error (continuing): {ex!r}")

    def _spawn(self, key: ResourceKey, force: bool) -> asyncio.Task:
        config = self.config_for(key)
        # Marks the entry validating before returning
        self.store.start(key, config.fetch or self._default_fetch, config, force=force)
        task = asyncio.ensure_future(self._revalidate_logged(key, force))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # ── Timers ────────────────────────────────────────────────────────────────

    def _next_delay(self, entry: CacheEntry, config: FetchConfig) -> Optional[float]:
        if entry.error is not None and 0 < entry.retry_count <= config.max_retries:
            delay = config.error_retry_interval_s * (2 ** (entry.retry_count - 1))
            if config.refresh_interval_s > 0:
                delay = min(delay, config.refresh_interval_s)
            return delay
        return config.refresh_interval_s if config.refresh_interval_s > 0 else None

    def _schedule_next(self, key: ResourceKey) -> None:
        if key not in self._active:
            self._cancel_timer(key)
            return
        entry = self.store.get(key)
        if entry.is_validating:
            return
        delay = self._next_delay(entry, self.config_for(key))
        if delay is None:
            self._cancel_timer(key)
            return
        self._schedule(key, delay)

    def _schedule(self, key: ResourceKey, delay: float) -> None:
        self._cancel_timer(key)
        loop = asyncio.get_running_loop()
        self._timers[key] = loop.call_later(delay, self._fire, key)
        log.debug(f"{key}: next revalidation in {delay:.1f}s")

    def _fire(self, key: ResourceKey) -> None:
        self._timers.pop(key, None)
        entry = self.store.get(key)
        # retries bypass the dedupe window; plain refresh ticks do not
        self._spawn(key, force=entry.error is not None)

    def _cancel_timer(self, key: ResourceKey) -> bool:
        handle = self._timers.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    async def idle(self) -> None:
        """Wait until no revalidation task is running."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        for key in list(self._timers):
            self._cancel_timer(key)
        self._active.clear()
        tasks = list(self._tasks)
        for t in tasks:
            t.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
