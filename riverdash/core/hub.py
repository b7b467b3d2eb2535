"""
riverdash/core/hub.py
Subscription hub: widgets subscribe to a key and get the CacheEntry pushed
to them synchronously: once immediately on subscribe (cached / stale /
empty), then on every mutation of that key's entry.

Several subscribers on one key share a single fetch and a single timer.
Dropping the last subscriber cancels the key's timer; the entry stays cached.

Must be used from inside a running event loop.
"""

import logging
from typing import Any, Callable, Optional

from riverdash.core.cache import CacheEntry, CacheStore
from riverdash.core.fetcher import ResourceFetcher
from riverdash.core.resource import FetchConfig, FetchFn, ResourceKey
from riverdash.core.scheduler import RevalidationScheduler

log = logging.getLogger("hub")

Subscriber = Callable[[CacheEntry], None]


class Subscription:
    """Handle returned by subscribe(). Calling it unsubscribes."""

    def __init__(self, hub: "SubscriptionHub", key: ResourceKey, config: FetchConfig, listener: Subscriber):
        self.hub      = hub
        self.key      = key
        self.config   = config
        self.listener = listener
        self.active   = True

    @property
    def entry(self) -> CacheEntry:
        return self.hub.store.get(self.key)

    @property
    def data(self) -> Any:
        """Cached data, or this subscriber's fallback while nothing is cached."""
        data = self.entry.data
        return data if data is not None else self.config.fallback_data

    @property
    def error(self):
        return self.entry.error

    def unsubscribe(self) -> None:
        self.hub.unsubscribe(self)

    __call__ = unsubscribe

    def __repr__(self) -> str:
        return f"Subscription({self.key}, active={self.active})"


class SubscriptionHub:
    def __init__(self, store: Optional[CacheStore] = None, fetch: Optional[FetchFn] = None):
        self.store     = store if store is not None else CacheStore()
        self.fetch     = fetch if fetch is not None else ResourceFetcher()
        self.scheduler = RevalidationScheduler(self.store, self.fetch)
        self._subs: dict[ResourceKey, list[Subscription]] = {}
        self.store.add_listener(self._on_change)

    def subscribe(self, key: ResourceKey, config: FetchConfig, listener: Subscriber) -> Subscription:
        self.scheduler.activate(key, config)
        entry = self.store.get(key)
        sub = Subscription(self, key, config, listener)
        self._subs.setdefault(key, []).append(sub)
        self._deliver(sub, entry)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        if not sub.active:
            return
        sub.active = False
        subs = self._subs.get(sub.key, [])
        if sub in subs:
            subs.remove(sub)
        if not subs:
            self._subs.pop(sub.key, None)
            self.scheduler.deactivate(sub.key)

    async def invalidate(self, key: ResourceKey) -> CacheEntry:
        return await self.scheduler.invalidate(key)

    async def settle(self) -> None:
        """Wait for every fetch started by subscriptions or timers to land."""
        await self.scheduler.idle()

    def subscribed_keys(self) -> list[ResourceKey]:
        return list(self._subs.keys())

    def subscriber_count(self, key: ResourceKey) -> int:
        return len(self._subs.get(key, []))

    def _on_change(self, key: ResourceKey, entry: CacheEntry) -> None:
        for sub in list(self._subs.get(key, [])):
            self._deliver(sub, entry)

    def _deliver(self, sub: Subscription, entry: CacheEntry) -> None:
        try:
            sub.listener(entry)
        except Exception:
            log.exception(f"Subscriber for {sub.key} failed")

    async def close(self) -> None:
        for subs in list(self._subs.values()):
            for sub in list(subs):
                self.unsubscribe(sub)
        await self.scheduler.close()
        self.store.remove_listener(self._on_change)
