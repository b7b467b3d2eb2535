import asyncio

import pytest

from riverdash.core.cache import CacheStore
from riverdash.core.errors import NetworkError
from riverdash.core.resource import FetchConfig, stations_key
from riverdash.core.scheduler import FETCHING, IDLE, SCHEDULED, RevalidationScheduler

from helpers import ScriptedFetch

KEY = stations_key()
STATIONS = [{"id": "01427510", "river": "Upper Delaware River"}]


@pytest.mark.asyncio
async def test_first_activation_fetches_immediately():
    fetch = ScriptedFetch(STATIONS)
    scheduler = RevalidationScheduler(CacheStore(), fetch)
    scheduler.activate(KEY, FetchConfig(refresh_interval_s=60))
    await scheduler.idle()
    assert len(fetch.calls) == 1
    assert scheduler.store.get(KEY).data == STATIONS
    assert scheduler.state(KEY) == SCHEDULED
    await scheduler.close()


@pytest.mark.asyncio
async def test_state_machine_passes_through_fetching():
    fetch = ScriptedFetch(STATIONS)
    fetch.hold()
    scheduler = RevalidationScheduler(CacheStore(), fetch)
    assert scheduler.state(KEY) == IDLE
    scheduler.activate(KEY, FetchConfig(refresh_interval_s=60))
    assert scheduler.state(KEY) == FETCHING
    await asyncio.sleep(0)
    assert scheduler.state(KEY) == FETCHING
    fetch.release()
    await scheduler.idle()
    assert scheduler.state(KEY) == SCHEDULED
    await scheduler.close()
    assert scheduler.state(KEY) == IDLE


@pytest.mark.asyncio
async def test_periodic_refresh():
    fetch = ScriptedFetch(STATIONS)
    scheduler = RevalidationScheduler(CacheStore(), fetch)
    scheduler.activate(KEY, FetchConfig(refresh_interval_s=0.05, dedupe_window_s=0))
    await asyncio.sleep(0.3)
    assert len(fetch.calls) >= 3
    await scheduler.close()


@pytest.mark.asyncio
async def test_zero_interval_does_not_poll():
    fetch = ScriptedFetch(STATIONS)
    scheduler = RevalidationScheduler(CacheStore(), fetch)
    scheduler.activate(KEY, FetchConfig(refresh_interval_s=0, dedupe_window_s=0))
    await asyncio.sleep(0.1)
    assert len(fetch.calls) == 1
    assert scheduler.state(KEY) == IDLE


@pytest.mark.asyncio
async def test_deactivate_cancels_timer_and_keeps_entry():
    fetch = ScriptedFetch(STATIONS)
    scheduler = RevalidationScheduler(CacheStore(), fetch)
    scheduler.activate(KEY, FetchConfig(refresh_interval_s=0.05, dedupe_window_s=0))
    await scheduler.idle()
    scheduler.deactivate(KEY)
    assert scheduler.state(KEY) == IDLE
    calls = len(fetch.calls)
    await asyncio.sleep(0.2)
    assert len(fetch.calls) == calls
    assert scheduler.store.get(KEY).data == STATIONS


@pytest.mark.asyncio
async def test_invalidate_while_timer_pending_fetches_once_and_reschedules():
    fetch = ScriptedFetch(STATIONS)
    scheduler = RevalidationScheduler(CacheStore(), fetch)
    scheduler.activate(KEY, FetchConfig(refresh_interval_s=60))
    await scheduler.idle()
    pending = scheduler._timers[KEY]

    await scheduler.invalidate(KEY)
    assert len(fetch.calls) == 2
    assert pending.cancelled()
    assert scheduler.state(KEY) == SCHEDULED
    assert scheduler._timers[KEY] is not pending
    await scheduler.close()


@pytest.mark.asyncio
async def test_invalidate_during_fetch_attaches():
    fetch = ScriptedFetch(STATIONS)
    fetch.hold()
    scheduler = RevalidationScheduler(CacheStore(), fetch)
    scheduler.activate(KEY, FetchConfig(refresh_interval_s=60))
    await asyncio.sleep(0)
    invalidation = asyncio.ensure_future(scheduler.invalidate(KEY))
    await asyncio.sleep(0)
    fetch.release()
    entry = await invalidation
    await scheduler.idle()
    assert len(fetch.calls) == 1
    assert entry.data == STATIONS
    await scheduler.close()


@pytest.mark.asyncio
async def test_failed_fetch_retries_with_backoff_then_stops():
    fetch = ScriptedFetch(NetworkError("down"))
    scheduler = RevalidationScheduler(CacheStore(), fetch)
    config = FetchConfig(refresh_interval_s=0, max_retries=2, error_retry_interval_s=0.02)
    scheduler.activate(KEY, config)
    await asyncio.sleep(0.3)
    # first attempt + 2 retries
    assert len(fetch.calls) == 3
    assert scheduler.store.get(KEY).retry_count == 3
    assert scheduler.state(KEY) == IDLE


@pytest.mark.asyncio
async def test_retry_delay_is_capped_by_refresh_interval():
    scheduler = RevalidationScheduler(CacheStore(), ScriptedFetch())
    entry = scheduler.store.get(KEY)
    entry.error = NetworkError("down")
    config = FetchConfig(refresh_interval_s=12, max_retries=3, error_retry_interval_s=5)

    entry.retry_count = 1
    assert scheduler._next_delay(entry, config) == 5
    entry.retry_count = 2
    assert scheduler._next_delay(entry, config) == 10
    entry.retry_count = 3
    assert scheduler._next_delay(entry, config) == 12
    entry.retry_count = 4
    assert scheduler._next_delay(entry, config) == 12


@pytest.mark.asyncio
async def test_success_after_failure_resets_retries():
    fetch = ScriptedFetch(NetworkError("down"), STATIONS)
    scheduler = RevalidationScheduler(CacheStore(), fetch)
    scheduler.activate(KEY, FetchConfig(refresh_interval_s=60, error_retry_interval_s=0.02))
    await asyncio.sleep(0.15)
    entry = scheduler.store.get(KEY)
    assert len(fetch.calls) == 2
    assert entry.data == STATIONS
    assert entry.error is None
    assert entry.retry_count == 0
    await scheduler.close()


@pytest.mark.asyncio
async def test_last_activation_config_wins():
    scheduler = RevalidationScheduler(CacheStore(), ScriptedFetch(STATIONS))
    first = FetchConfig(refresh_interval_s=100)
    second = FetchConfig(refresh_interval_s=200)
    scheduler.activate(KEY, first)
    scheduler.activate(KEY, second)
    assert scheduler.config_for(KEY) is second
    await scheduler.close()


@pytest.mark.asyncio
async def test_per_key_fetch_override():
    default = ScriptedFetch(["default"])
    custom = ScriptedFetch(["custom"])
    scheduler = RevalidationScheduler(CacheStore(), default)
    scheduler.activate(KEY, FetchConfig(fetch=custom))
    await scheduler.idle()
    assert scheduler.store.get(KEY).data == ["custom"]
    assert default.calls == []


@pytest.mark.asyncio
async def test_reactivation_moves_timer_deadline(clock):
    scheduler = RevalidationScheduler(CacheStore(clock), ScriptedFetch(STATIONS))
    scheduler.activate(KEY, FetchConfig(refresh_interval_s=3600, dedupe_window_s=10))
    await scheduler.idle()
    loop = asyncio.get_running_loop()
    assert scheduler._timers[KEY].when() - loop.time() > 3000

    clock.advance(2)
    scheduler.activate(KEY, FetchConfig(refresh_interval_s=30, dedupe_window_s=10))
    # remaining delay is measured from the last completed fetch
    assert scheduler._timers[KEY].when() - loop.time() <= 28.5
    await scheduler.close()
