"""
riverdash/scrapers/fishing.py
Fishing reports scraped from an HTML page (FISHING_REPORTS_URL).

Expected markup, one block per report:
  <div class="report-entry">
    <h3 class="report-title">West Branch – Hale Eddy</h3>
    <span class="report-date">April 10, 2025</span>
    <div class="report-content">...</div>
    <li class="recommended-fly">Sulphur Dun #16</li> ...
  </div>

River and section are inferred from the title. No URL configured → ValueError,
which the router turns into fallback reports.
"""

import logging
import re

from bs4 import BeautifulSoup

from riverdash.core.config import FISHING_REPORTS_URL
from riverdash.core.http_client import plain_client

log = logging.getLogger("fishing")

# Title substring → river, checked in order
_RIVERS = [
    ("West Branch", "West Branch Delaware River"),
    ("East Branch", "East Branch Delaware River"),
    ("Neversink",   "Neversink River"),
    ("Beaver",      "Beaverkill"),
    ("Willowemoc",  "Willowemoc"),
    ("Lackawaxen",  "Lackawaxen River"),
]
_DEFAULT_RIVER   = "Upper Delaware River"
_DEFAULT_SECTION = "Main Stem"
_NO_FLIES        = ["No specific flies mentioned"]


def _text(node) -> str:
    return " ".join(node.get_text(" ", strip=True).split()) if node else ""


def river_and_section(title: str) -> tuple[str, str]:
    river = _DEFAULT_RIVER
    for needle, name in _RIVERS:
        if needle.lower() in title.lower():
            river = name
            break
    # "West Branch – Hale Eddy" / "Neversink: Main Stem" → text after the separator
    parts = re.split(r"\s+[-–—:|]\s+|:\s+", title, maxsplit=1)
    section = parts[1].strip() if len(parts) > 1 and parts[1].strip() else _DEFAULT_SECTION
    return river, section


def parse_reports(html: str) -> list[dict]:
    soup = BeautifulSoup(html, "html.parser")
    reports = []
    for el in soup.select(".report-entry"):
        title   = _text(el.select_one(".report-title"))
        content = _text(el.select_one(".report-content"))
        if not content:
            continue
        river, section = river_and_section(title)
        flies = [_text(f) for f in el.select(".recommended-fly") if _text(f)]
        reports.append({
            "river":   river,
            "section": section,
            "report":  content,
            "date":    _text(el.select_one(".report-date")),
            "flies":   flies or list(_NO_FLIES),
        })
    return reports


async def scrape_fishing_reports(url: str = "") -> list[dict]:
    url = url or FISHING_REPORTS_URL
    if not url:
        raise ValueError("FISHING_REPORTS_URL is not configured")
    resp = await plain_client().get(url)
    resp.raise_for_status()
    reports = parse_reports(resp.text)
    if not reports:
        raise ValueError(f"No fishing reports found at {url}")
    log.info(f"Fishing: {len(reports)} reports from {url}")
    return reports
