import pytest

from riverdash.core.errors import HttpError
from riverdash.core.hub import SubscriptionHub
from riverdash.core.resource import station_key, weather_key
from riverdash.dashboard import Dashboard, render_text
from riverdash.fallback import FALLBACK_STATIONS

from helpers import STATIONS, RoutedFetch

WEATHER = {
    "current": {"temp": 61, "condition": "Sunny", "precipitation": "0%", "wind": "W 3 mph"},
    "forecast": [{"day": "Today", "high": 64, "low": 44, "condition": "Sunny", "precipitation": "0%"}],
}
ALERTS = [{
    "type": "weather", "river": "All Areas", "message": "Flood Watch: Heavy rain.",
    "severity": "high", "expires": "2025-04-11T12:00:00Z",
}]
REPORTS = [{"river": "Neversink River", "section": "Main Stem", "report": "Clear water.", "date": "April 9, 2025", "flies": ["Adams #16"]}]


def reading(key):
    return {
        "id": key.params[0],
        "name": f"Station {key.params[0]}",
        "current": {"height": 3.4, "flow": 1800, "temperature": 52.0, "updated": "2025-04-10T12:00:00Z"},
        "status": {"height": "normal", "flow": "normal", "temperature": "normal"},
        "historical": [],
    }


def routed(**overrides) -> RoutedFetch:
    routes = {
        "stations":        STATIONS,
        "station":         reading,
        "weather":         WEATHER,
        "alerts":          ALERTS,
        "fishing-reports": REPORTS,
    }
    routes.update(overrides)
    return RoutedFetch(routes)


async def started(fetch: RoutedFetch, **kwargs) -> Dashboard:
    dashboard = Dashboard(SubscriptionHub(fetch=fetch), **kwargs).start()
    await dashboard.hub.settle()
    return dashboard


@pytest.mark.asyncio
async def test_filter_by_river():
    dashboard = await started(routed())
    assert len(dashboard.visible_stations) == 6

    dashboard.set_river("Neversink River")
    visible = dashboard.visible_stations
    assert len(visible) == 1
    assert visible[0]["id"] == "01437500"

    dashboard.set_river("all")
    assert len(dashboard.visible_stations) == 6
    dashboard.close()
    await dashboard.hub.close()


@pytest.mark.asyncio
async def test_river_options_in_station_order():
    dashboard = await started(routed())
    assert dashboard.river_options == [
        "all", "Upper Delaware River", "Neversink River", "Beaverkill", "Willowemoc",
    ]
    dashboard.close()
    await dashboard.hub.close()


@pytest.mark.asyncio
async def test_fallback_stations_shown_while_loading():
    fetch = routed()
    dashboard = Dashboard(SubscriptionHub(fetch=fetch)).start()
    assert len(dashboard.visible_stations) == len(FALLBACK_STATIONS)
    await dashboard.hub.settle()
    assert len(dashboard.visible_stations) == 6
    dashboard.close()
    await dashboard.hub.close()


@pytest.mark.asyncio
async def test_station_subscriptions_follow_visible_set():
    dashboard = await started(routed())
    hub = dashboard.hub
    assert hub.subscriber_count(station_key("01427510")) == 1

    dashboard.set_river("Neversink River")
    subscribed = {k for k in hub.subscribed_keys() if k.name == "station"}
    assert subscribed == {station_key("01437500")}
    # unsubscribed stations keep their cached readings
    assert hub.store.get(station_key("01427510")).data is not None
    dashboard.close()
    await hub.close()


@pytest.mark.asyncio
async def test_station_readings_reach_snapshot():
    dashboard = await started(routed(), river="Beaverkill")
    snap = dashboard.snapshot()
    assert snap["river"] == "Beaverkill"
    assert [s["id"] for s in snap["stations"]] == ["01420500"]
    assert snap["stations"][0]["current"]["flow"] == 1800
    assert snap["weather"] == WEATHER
    assert snap["alerts"] == ALERTS
    assert snap["fishing_reports"] == REPORTS
    assert snap["errors"] == {}
    assert snap["last_updated"] is not None
    dashboard.close()
    await dashboard.hub.close()


@pytest.mark.asyncio
async def test_refresh_all_invalidates_every_subscribed_key():
    fetch = routed()
    dashboard = await started(fetch)
    before = len(fetch.calls)
    keys = dashboard.hub.subscribed_keys()

    entries = await dashboard.refresh_all()
    assert len(entries) == len(keys)
    assert len(fetch.calls) - before == len(keys)
    assert fetch.count("stations") == 2
    dashboard.close()
    await dashboard.hub.close()


@pytest.mark.asyncio
async def test_station_list_failure_uses_fallback_and_reports_error():
    fetch = routed(stations=HttpError(500, info={"error": "Failed to fetch station data"}))
    dashboard = await started(fetch)
    assert len(dashboard.stations) == len(FALLBACK_STATIONS)
    assert "stations" in dashboard.errors()
    dashboard.close()
    await dashboard.hub.close()


@pytest.mark.asyncio
async def test_set_coordinates_swaps_weather_subscription():
    fetch = routed()
    dashboard = await started(fetch)
    hub = dashboard.hub
    dashboard.set_coordinates(41.95, -75.28)
    await hub.settle()
    assert weather_key(41.95, -75.28) in hub.subscribed_keys()
    assert weather_key(41.6, -75.0) not in hub.subscribed_keys()
    assert fetch.count("weather") == 2
    dashboard.close()
    await hub.close()


@pytest.mark.asyncio
async def test_on_change_is_called():
    calls = []
    dashboard = await started(routed(), on_change=lambda d: calls.append(d.river))
    assert calls
    dashboard.set_river("Willowemoc")
    assert calls[-1] == "Willowemoc"
    dashboard.close()
    await dashboard.hub.close()


@pytest.mark.asyncio
async def test_render_text():
    dashboard = await started(routed(), river="Neversink River")
    text = render_text(dashboard.snapshot())
    assert "Delaware River Dashboard" in text
    assert "Neversink River at Godeffroy, NY" in text
    assert "flow 1800 cfs (normal)" in text
    assert "[HIGH] All Areas: Flood Watch: Heavy rain." in text
    assert "flies: Adams #16" in text
    dashboard.close()
    await dashboard.hub.close()
