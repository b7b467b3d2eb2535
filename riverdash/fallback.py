"""
riverdash/fallback.py
Mock / fallback payloads, shaped exactly like the live API responses.
Served by the API when an upstream call fails outside production, and handed
to the dashboard as per-key fallback_data.
"""

import random
from datetime import datetime, timedelta, timezone
from typing import Optional

from riverdash.scrapers.usgs import classify_status, day_label

FALLBACK_STATIONS: list[dict] = [
    {"id": "01427510", "name": "Delaware River at Callicoon, NY",            "lat": 41.76056, "lng": -75.05833, "river": "Upper Delaware River"},
    {"id": "01428500", "name": "Delaware River at Barryville, NY",           "lat": 41.50822, "lng": -74.91306, "river": "Upper Delaware River"},
    {"id": "01434000", "name": "Delaware River at Port Jervis, NY",          "lat": 41.37128, "lng": -74.69757, "river": "Upper Delaware River"},
    {"id": "01417500", "name": "East Branch Delaware River at Harvard, NY",  "lat": 42.0201,  "lng": -75.1035,  "river": "East Branch Delaware River"},
    {"id": "01423000", "name": "West Branch Delaware River at Hancock, NY",  "lat": 41.9551,  "lng": -75.2829,  "river": "West Branch Delaware River"},
    {"id": "01437500", "name": "Neversink River at Godeffroy, NY",           "lat": 41.44056, "lng": -74.60056, "river": "Neversink River"},
    {"id": "01420500", "name": "Beaver Kill at Cooks Falls, NY",             "lat": 41.94611, "lng": -74.97639, "river": "Beaverkill"},
    {"id": "01365000", "name": "Willowemoc Creek near Livingston Manor, NY", "lat": 41.9026,  "lng": -74.8004,  "river": "Willowemoc"},
]

FALLBACK_WEATHER: dict = {
    "current": {
        "temp": 58,
        "condition": "Partly Cloudy",
        "precipitation": "0%",
        "wind": "SW 5 mph",
    },
    "forecast": [
        {"day": "Today", "high": 62, "low": 45, "condition": "Partly Cloudy", "precipitation": "10%"},
        {"day": "Thu",   "high": 64, "low": 48, "condition": "Mostly Sunny",  "precipitation": "5%"},
        {"day": "Fri",   "high": 59, "low": 52, "condition": "Rain",          "precipitation": "70%"},
        {"day": "Sat",   "high": 55, "low": 45, "condition": "Showers",       "precipitation": "40%"},
        {"day": "Sun",   "high": 60, "low": 44, "condition": "Partly Cloudy", "precipitation": "20%"},
    ],
}

FALLBACK_FISHING_REPORTS: list[dict] = [
    {
        "river": "Upper Delaware River",
        "section": "Callicoon",
        "report": "Fishing has been excellent with the recent water levels. Sulphur hatches in the evenings. "
                  "Most success with size 16-18 dry flies. Water clarity is good, with some staining in deeper pools.",
        "date": "April 10, 2025",
        "flies": ["Sulphur Dun #16", "Light Cahill #16", "Blue Winged Olive #18"],
    },
    {
        "river": "Neversink River",
        "section": "Main Stem",
        "report": "Water running clear. Good numbers of rainbow and brown trout being caught. Nymphing most "
                  "effective in deeper pools. Some dry fly action in the evenings with Blue Winged Olives.",
        "date": "April 9, 2025",
        "flies": ["Pheasant Tail Nymph #16", "Hare's Ear #14", "Prince Nymph #16"],
    },
    {
        "river": "Beaverkill",
        "section": "Cooks Falls",
        "report": "Good action in the riffles and runs. Water temperatures in the optimal range. Some great dry "
                  "fly action in the evenings with caddis hatches. Browns and rainbows both active.",
        "date": "April 7, 2025",
        "flies": ["Elk Hair Caddis #16", "Woolly Bugger #10", "Adams #16"],
    },
    {
        "river": "Willowemoc",
        "section": "Main Stem",
        "report": "Consistent action in the early mornings. Clear water with good visibility. Medium-sized brown "
                  "trout responding well to nymphs fished in riffle-pool transitions.",
        "date": "April 8, 2025",
        "flies": ["Copper John #16", "Parachute Adams #16", "CDC Caddis #14"],
    },
    {
        "river": "East Branch Delaware River",
        "section": "Harvard",
        "report": "Excellent dry fly fishing in the afternoon with good hatches of March Browns and Blue Winged "
                  "Olives. Water levels stable and clear. Trout are selective but feeding well on the surface.",
        "date": "April 8, 2025",
        "flies": ["March Brown #12", "Blue Winged Olive #18", "Isonychia #12"],
    },
]


def fallback_alerts(now: Optional[datetime] = None) -> list[dict]:
    """Mock alerts; expiry is relative to now so they never look stale."""
    now = now or datetime.now(timezone.utc)

    def _expires(hours: int) -> str:
        return (now + timedelta(hours=hours)).isoformat().replace("+00:00", "Z")

    return [
        {
            "type": "release",
            "river": "Upper Delaware River",
            "message": "Scheduled water release from Cannonsville Reservoir, 6:00 AM - 12:00 PM. Expect rising water levels.",
            "severity": "moderate",
            "expires": _expires(24),
        },
        {
            "type": "weather",
            "river": "All Areas",
            "message": "Heavy rainfall expected. Flash flood watch in effect for smaller tributaries.",
            "severity": "high",
            "expires": _expires(48),
        },
        {
            "type": "condition",
            "river": "Beaverkill",
            "message": "Unusually high water temperatures near Cooks Falls. Fishing not recommended during "
                       "mid-day hours to avoid stressing fish.",
            "severity": "moderate",
            "expires": _expires(72),
        },
    ]


def station_name(station_id: str) -> str:
    for s in FALLBACK_STATIONS:
        if s["id"] == station_id:
            return s["name"]
    return f"Station {station_id}"


def mock_history(
    base_height: float = 3.0,
    base_flow: float = 1500.0,
    base_temp: float = 52.0,
    days: int = 7,
    rng: Optional[random.Random] = None,
) -> list[dict]:
    rng = rng or random.Random()
    today = datetime.now(timezone.utc)
    out = []
    for i in range(days - 1, -1, -1):
        out.append({
            "date":        day_label(today - timedelta(days=i)),
            "height":      round(base_height + rng.uniform(-0.25, 0.25), 2),
            "flow":        round(base_flow + rng.uniform(-200, 200)),
            "temperature": round(base_temp + rng.uniform(-1, 1), 1),
        })
    return out


def mock_station_data(station_id: str, rng: Optional[random.Random] = None) -> dict:
    rng = rng or random.Random()
    base_height = rng.uniform(2, 5)
    base_flow   = rng.uniform(1000, 3000)
    base_temp   = rng.uniform(50, 55)

    height      = round(base_height + rng.uniform(-0.25, 0.25), 2)
    flow        = round(base_flow + rng.uniform(-200, 200))
    temperature = round(base_temp + rng.uniform(-1, 1), 1)

    return {
        "id": station_id,
        "name": station_name(station_id),
        "current": {
            "height": height,
            "flow": flow,
            "temperature": temperature,
            "updated": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        },
        "status": {
            "height":      classify_status("height", height),
            "flow":        classify_status("flow", flow),
            "temperature": classify_status("temperature", temperature),
        },
        "historical": mock_history(base_height, base_flow, base_temp, rng=rng),
    }
