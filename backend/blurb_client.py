"""Short description blurbs for catalog cards, fetched through a readable-text proxy."""

from __future__ import annotations

import re
import time
from typing import Any, Dict, Optional

import httpx
from bs4 import BeautifulSoup

from cache import cache_clear, cache_get, cache_info, cache_set, make_key
from config import Settings

CACHE_NAMESPACE = "blurb"
MIN_PARAGRAPH_WORDS = 10
MIN_BLOCK_CHARS = 80

_NOISE = re.compile(r"cookie|javascript|enable|subscribe|sign in|accept", re.IGNORECASE)
_SCHEME = re.compile(r"^https?://", re.IGNORECASE)
_BLOCK_SPLIT = re.compile(r"\n{2,}")


class BlurbError(RuntimeError):
    """Upstream page could not be fetched."""


def truncate(text: str, limit: int = 260) -> str:
    if text and len(text) > limit:
        return text[: limit - 1] + "…"
    return text or ""


def proxied_readable_url(base: str, url: str) -> str:
    return f"{base}{_SCHEME.sub('', url)}"


def extract_blurb(html: str) -> str:
    """First substantial paragraph without boilerplate, else the first long text block."""
    soup = BeautifulSoup(html or "", "html.parser")

    for p in soup.find_all("p"):
        text = p.get_text(" ", strip=True)
        if len(text.split()) >= MIN_PARAGRAPH_WORDS and not _NOISE.search(text):
            return text

    body = soup.body or soup
    body_text = body.get_text("\n").strip()
    for block in _BLOCK_SPLIT.split(body_text):
        if len(block.strip()) > MIN_BLOCK_CHARS:
            return block.strip()
    return ""


class BlurbClient:
    def __init__(self, settings: Settings, transport: Optional[httpx.BaseTransport] = None) -> None:
        self._settings = settings
        self._transport = transport

    def is_enabled(self) -> bool:
        return self._settings.blurbs_enabled

    def fetch_blurb(self, url: str) -> str:
        """Cached blurb for ``url``; empty string when the page is unavailable."""
        if not url or not self.is_enabled():
            return ""

        key = make_key(CACHE_NAMESPACE, {"url": url})
        cached = cache_get(self._settings.cache_dir, key)
        if isinstance(cached, str) and cached:
            return cached

        try:
            html = self._request(url)
        except BlurbError as exc:
            print(f"[BLURB] failed for {url}: {exc}")
            return ""

        text = truncate(extract_blurb(html), self._settings.blurb_max_chars)
        if text:
            cache_set(self._settings.cache_dir, key, text, self._settings.blurb_cache_ttl_sec)
        return text

    def clear_cache(self) -> int:
        return cache_clear(self._settings.cache_dir, CACHE_NAMESPACE)

    def cache_info(self) -> Dict[str, int]:
        return cache_info(self._settings.cache_dir, CACHE_NAMESPACE)

    def _request(self, url: str) -> str:
        retries = 1
        backoff = 0.5
        target = proxied_readable_url(self._settings.blurb_proxy_base, url)
        headers = {"User-Agent": "dashboard-showcase/1.0 (+blurb fetcher)"}

        for attempt in range(retries + 1):
            try:
                print(f"[BLURB] GET {target}")
                client_kwargs: Dict[str, Any] = {"timeout": self._settings.http_timeout_sec}
                if self._transport is not None:
                    client_kwargs["transport"] = self._transport
                with httpx.Client(**client_kwargs) as client:
                    resp = client.get(target, headers=headers)
                resp.raise_for_status()
                return resp.text
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                if status in {429, 500, 502, 503, 504} and attempt < retries:
                    sleep_for = backoff * (2 ** attempt)
                    print(f"[BLURB] HTTP {status} retry in {sleep_for:.1f}s")
                    time.sleep(sleep_for)
                    continue
                raise BlurbError(f"HTTP {status}") from exc
            except httpx.RequestError as exc:
                if attempt < retries:
                    sleep_for = backoff * (2 ** attempt)
                    print(f"[BLURB] request error {exc!s} retry in {sleep_for:.1f}s")
                    time.sleep(sleep_for)
                    continue
                raise BlurbError(f"request failed: {exc}") from exc

        return ""
