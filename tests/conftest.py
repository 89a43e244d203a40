from pathlib import Path

import pytest

import cache
from catalog_loader import normalize_sites
from config import Settings
from facets import CatalogSession


SAMPLE_SITES = [
    {
        "title": "Capital Plan Dashboard",
        "url": "https://www.onesanfrancisco.org/capital-plan",
        "tags": ["Public CIP", "Power BI"],
    },
    {
        "title": "Zero Waste Tracker",
        "url": "https://sfenvironment.org/zero-waste",
        "tags": ["Zero Waste", "Scorecard"],
    },
    {
        "title": "Budget Book",
        "url": "https://budget.seattle.gov/",
        "tags": ["Budget", "Tableau"],
    },
    {
        "title": "Austin CIP Explorer",
        "url": "https://capitalprojects.austintexas.gov/",
        "tags": ["Public CIP", "ArcGIS", "Zero Waste"],
    },
    {
        "title": "Storytelling Gallery",
        "url": "https://example.org/stories",
        "tags": ["Storytelling", "Built-in"],
    },
]


class FakeTimer:
    """Stands in for threading.Timer; fires only when the test says so."""

    def __init__(self, interval, function, args=(), kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args
        self.kwargs = kwargs or {}
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.function(*self.args, **self.kwargs)


@pytest.fixture
def timers():
    created = []

    def factory(interval, function, args=(), kwargs=None):
        timer = FakeTimer(interval, function, args=args, kwargs=kwargs)
        created.append(timer)
        return timer

    factory.created = created
    return factory


@pytest.fixture
def sites():
    return normalize_sites(SAMPLE_SITES)


@pytest.fixture
def session(sites):
    return CatalogSession.from_sites(sites)


def build_scenario_sites():
    """70 dashboards: 30 mention 'waste', 10 carry both Zero Waste and Public CIP."""
    raw = []
    for i in range(70):
        item = {"title": f"Dashboard {i}", "url": f"https://city{i}.example.gov/", "tags": ["Power BI"]}
        if i < 10:
            item["tags"] = ["Zero Waste", "Public CIP"]
        elif i < 20:
            item["tags"] = ["Zero Waste"]
        elif i < 30:
            item["tags"] = ["Public CIP"]
        elif i < 35:
            item.update(title=f"Waste hauling map {i}", tags=["ArcGIS"])
        elif i < 40:
            item.update(url=f"https://wastewise.example.org/{i}", tags=["Tableau"])
        else:
            item.update(title=f"Budget dashboard {i}", tags=["Budget"])
        raw.append(item)
    return normalize_sites(raw)


@pytest.fixture
def scenario_session():
    return CatalogSession.from_sites(build_scenario_sites())


@pytest.fixture
def make_settings(tmp_path: Path):
    def _make(**overrides) -> Settings:
        values = dict(
            port=8080,
            sites_path=str(tmp_path / "sites.json"),
            cache_dir=str(tmp_path / "cache"),
            blurb_cache_ttl_sec=3600,
            blurb_proxy_base="https://r.jina.ai/http://",
            blurb_max_chars=280,
            search_debounce_ms=300,
            prefs_path=str(tmp_path / "prefs.json"),
            http_timeout_sec=5.0,
        )
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture(autouse=True)
def _clear_memory_cache():
    cache._MEMORY_CACHE.clear()
    yield
    cache._MEMORY_CACHE.clear()
