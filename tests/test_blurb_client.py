import httpx
import pytest

import blurb_client
from blurb_client import BlurbClient, extract_blurb, proxied_readable_url, truncate

LONG_PARAGRAPH = "This dashboard tracks every active capital project across all city departments and districts."


def test_truncate():
    assert truncate("abc", 5) == "abc"
    assert truncate("abcdef", 5) == "abcd…"
    assert truncate("", 5) == ""


def test_proxied_url_drops_scheme():
    assert proxied_readable_url("https://r.jina.ai/http://", "https://example.org/a") == "https://r.jina.ai/http://example.org/a"


def test_extract_prefers_clean_paragraph():
    html = f"""
    <html><body>
      <p>Short intro.</p>
      <p>We use cookies to improve your experience on this website, please accept them all.</p>
      <p>{LONG_PARAGRAPH}</p>
    </body></html>
    """

    assert extract_blurb(html) == LONG_PARAGRAPH


def test_extract_falls_back_to_long_block():
    block = "x" * 90
    html = f"<html><body><div>tiny</div>\n\n<div>{block}</div></body></html>"

    assert extract_blurb(html) == block


def test_extract_empty_document():
    assert extract_blurb("") == ""


@pytest.fixture
def no_sleep(monkeypatch):
    monkeypatch.setattr(blurb_client.time, "sleep", lambda _: None)


def test_fetch_blurb_caches_result(make_settings):
    calls = []

    def handler(request):
        calls.append(str(request.url))
        return httpx.Response(200, text=f"<p>{LONG_PARAGRAPH}</p>")

    client = BlurbClient(make_settings(), transport=httpx.MockTransport(handler))

    assert client.fetch_blurb("https://example.org/cip") == LONG_PARAGRAPH
    assert client.fetch_blurb("https://example.org/cip") == LONG_PARAGRAPH
    assert calls == ["https://r.jina.ai/http://example.org/cip"]
    assert client.cache_info()["entry_count"] == 1

    assert client.clear_cache() == 1
    assert client.cache_info()["entry_count"] == 0


def test_fetch_blurb_truncates(make_settings):
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text=f"<p>{LONG_PARAGRAPH}</p>"))
    client = BlurbClient(make_settings(blurb_max_chars=20), transport=transport)

    text = client.fetch_blurb("https://example.org/short")

    assert len(text) == 20
    assert text.endswith("…")


def test_fetch_blurb_returns_empty_on_http_error(make_settings, no_sleep):
    calls = []

    def handler(request):
        calls.append(1)
        return httpx.Response(404)

    client = BlurbClient(make_settings(), transport=httpx.MockTransport(handler))

    assert client.fetch_blurb("https://example.org/gone") == ""
    assert len(calls) == 1


def test_fetch_blurb_retries_transient_errors(make_settings, no_sleep):
    responses = iter([httpx.Response(503), httpx.Response(200, text=f"<p>{LONG_PARAGRAPH}</p>")])
    client = BlurbClient(make_settings(), transport=httpx.MockTransport(lambda request: next(responses)))

    assert client.fetch_blurb("https://example.org/flaky") == LONG_PARAGRAPH


def test_fetch_blurb_network_failure(make_settings, no_sleep):
    def handler(request):
        raise httpx.ConnectError("boom", request=request)

    client = BlurbClient(make_settings(), transport=httpx.MockTransport(handler))

    assert client.fetch_blurb("https://example.org/down") == ""


def test_disabled_client_skips_network(make_settings):
    def handler(request):  # pragma: no cover - must not be called
        raise AssertionError("network used")

    client = BlurbClient(make_settings(blurb_proxy_base=""), transport=httpx.MockTransport(handler))

    assert client.fetch_blurb("https://example.org/") == ""
