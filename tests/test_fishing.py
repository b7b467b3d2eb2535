import httpx
import pytest

from riverdash.scrapers import fishing

HTML = """
<html><body>
  <div class="report-entry">
    <h3 class="report-title">West Branch – Hale Eddy</h3>
    <span class="report-date">April 10, 2025</span>
    <div class="report-content">
      Sulphurs in the evening.   Fish are   selective.
    </div>
    <ul>
      <li class="recommended-fly">Sulphur Dun #16</li>
      <li class="recommended-fly">Light Cahill #14</li>
    </ul>
  </div>
  <div class="report-entry">
    <h3 class="report-title">Neversink: Lower River</h3>
    <span class="report-date">April 9, 2025</span>
    <div class="report-content">Water running clear.</div>
  </div>
  <div class="report-entry">
    <h3 class="report-title">Shop news</h3>
    <div class="report-content"></div>
  </div>
</body></html>
"""


def test_parse_reports():
    reports = fishing.parse_reports(HTML)
    assert reports == [
        {
            "river": "West Branch Delaware River",
            "section": "Hale Eddy",
            "report": "Sulphurs in the evening. Fish are selective.",
            "date": "April 10, 2025",
            "flies": ["Sulphur Dun #16", "Light Cahill #14"],
        },
        {
            "river": "Neversink River",
            "section": "Lower River",
            "report": "Water running clear.",
            "date": "April 9, 2025",
            "flies": ["No specific flies mentioned"],
        },
    ]


def test_river_and_section_defaults():
    assert fishing.river_and_section("Callicoon") == ("Upper Delaware River", "Main Stem")
    assert fishing.river_and_section("Beaverkill - Cooks Falls") == ("Beaverkill", "Cooks Falls")


@pytest.mark.asyncio
async def test_scrape_without_url_raises(monkeypatch):
    monkeypatch.setattr(fishing, "FISHING_REPORTS_URL", "")
    with pytest.raises(ValueError):
        await fishing.scrape_fishing_reports()


@pytest.mark.asyncio
async def test_scrape_reports(monkeypatch):
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, text=HTML)))
    monkeypatch.setattr(fishing, "plain_client", lambda: client)
    reports = await fishing.scrape_fishing_reports("https://flyshop.example/reports")
    assert len(reports) == 2


@pytest.mark.asyncio
async def test_scrape_page_without_reports_raises(monkeypatch):
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, text="<p>closed</p>")))
    monkeypatch.setattr(fishing, "plain_client", lambda: client)
    with pytest.raises(ValueError):
        await fishing.scrape_fishing_reports("https://flyshop.example/reports")
