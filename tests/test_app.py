import httpx
import pytest
from fastapi.testclient import TestClient

import app as app_module
from blurb_client import BlurbClient
from prefs_store import PreferenceStore


@pytest.fixture
def client(monkeypatch, session, make_settings, tmp_path):
    monkeypatch.setattr(app_module, "SESSION", session)
    monkeypatch.setattr(app_module, "prefs", PreferenceStore(tmp_path / "prefs.json"))
    transport = httpx.MockTransport(
        lambda request: httpx.Response(
            200, text="<p>Capital projects mapped by district with funding, schedule and status for residents.</p>"
        )
    )
    monkeypatch.setattr(app_module, "blurb_client", BlurbClient(make_settings(), transport=transport))
    return TestClient(app_module.app)


def test_healthz(client):
    assert client.get("/healthz").json() == {"ok": True}


def test_sites_lists_normalized_catalog(client, session):
    payload = client.get("/sites").json()

    assert len(payload) == session.total
    assert payload[0]["domain"] == "onesanfrancisco.org"


def test_view_without_params_shows_everything(client, session):
    payload = client.get("/view").json()

    assert payload["query_string"] == ""
    assert payload["visible"] == session.total
    assert payload["announcement"] == f"Showing all {session.total} dashboards"
    assert payload["active_filters"] == []
    assert payload["empty"] is False
    assert payload["has_active_filters"] is False


def test_view_sanitizes_untrusted_link(client):
    response = client.get("/view", params={"tags": "zero-waste,evil", "filter": "nope", "sort": "banana", "utm": "x"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["state"] == {
        "query": "",
        "selected_tags": ["Zero Waste"],
        "dropdown": "all",
        "sort": "default",
    }
    assert payload["query_string"] == "tags=zero-waste"
    assert [item["title"] for item in payload["items"]] == ["Zero Waste Tracker", "Austin CIP Explorer"]
    assert payload["announcement"] == "Showing 2 of 5 dashboards"
    assert payload["active_filters"][0]["remaining_query"] == ""


def test_view_sorted_and_empty_state(client):
    payload = client.get("/view?q=zzz&sort=title").json()

    assert payload["empty"] is True
    assert payload["announcement"] == "No dashboards match your filters"
    assert [f["kind"] for f in payload["active_filters"]] == ["query", "sort"]


def test_view_remove_single_filter(client):
    response = client.get("/view/remove?kind=tag&value=Public%20CIP&tags=zero-waste,public-cip")

    payload = response.json()
    assert payload["query_string"] == "tags=zero-waste"
    assert payload["visible"] == 2


def test_view_remove_resets_dropdown_whatever_the_value(client):
    response = client.get("/view/remove?kind=dropdown&value=Budget&filter=public%20cip&sort=title")

    payload = response.json()
    assert payload["state"]["dropdown"] == "all"
    assert payload["query_string"] == "sort=title"
    assert payload["visible"] == 5


def test_view_remove_rejects_unknown_kind(client):
    assert client.get("/view/remove?kind=colour").status_code == 422


def test_facets(client):
    payload = client.get("/facets?tags=public-cip").json()

    groups = {g["facet"]: g for g in payload["groups"]}
    assert list(groups) == ["platform", "use-case", "audience", "pattern", "other"]
    assert "Public CIP" in groups["audience"]["tags"]
    assert groups["audience"]["active_count"] == 1
    assert groups["other"]["tags"] == ["Built-in", "Storytelling"]
    assert payload["dropdown"][0] == {"value": "all", "label": "All types"}
    assert [o["value"] for o in payload["sort"]] == ["default", "title", "domain"]


def test_blurb_endpoint(client):
    payload = client.get("/blurb", params={"url": "https://example.org/cip"}).json()

    assert payload["text"].startswith("Capital projects mapped")
    assert client.get("/blurb/cache").json()["entry_count"] == 1
    assert client.delete("/blurb/cache").json() == {"removed": 1}


def test_prefs_roundtrip(client):
    assert client.get("/prefs/abc/role").json() == {"role": "student"}
    assert client.put("/prefs/abc/role", json={"role": "coach"}).json() == {"role": "coach"}
    assert client.put("/prefs/abc/role", json={"role": "root"}).status_code == 422

    assert client.get("/prefs/abc/onboarding").json() == {"seen": False}
    client.post("/prefs/abc/onboarding")
    assert client.get("/prefs/abc/onboarding").json() == {"seen": True}
    client.delete("/prefs/abc/onboarding")
    assert client.get("/prefs/abc/onboarding").json() == {"seen": False}

    client.put("/prefs/abc/notes/coach", json={"text": "scorecards first"})
    assert client.get("/prefs/abc/notes/coach").json()["text"] == "scorecards first"
    assert client.get("/prefs/abc/notes/admin").status_code == 404
    assert client.get("/prefs/abc").json()["role"] == "coach"
