"""Environment-backed configuration helpers."""

from __future__ import annotations

from pathlib import Path
from dotenv import load_dotenv
import os
from dataclasses import dataclass

BACKEND_DIR = Path(__file__).resolve().parent

# .env рядом с app.py
load_dotenv(dotenv_path=BACKEND_DIR / ".env", override=False)

# fallback: корень репо
load_dotenv(dotenv_path=BACKEND_DIR.parent / ".env", override=False)

@dataclass(slots=True)
class Settings:
    port: int
    sites_path: str
    cache_dir: str
    blurb_cache_ttl_sec: int
    blurb_proxy_base: str
    blurb_max_chars: int
    search_debounce_ms: int
    prefs_path: str
    http_timeout_sec: float

    @classmethod
    def load(cls) -> "Settings":
        return cls(
            port=int(os.getenv("PORT", "8080")),
            sites_path=os.getenv("SITES_PATH", str(BACKEND_DIR / "data" / "sites.json")),
            cache_dir=os.getenv("CACHE_DIR", "./cache"),
            blurb_cache_ttl_sec=int(os.getenv("BLURB_CACHE_TTL_SEC", str(7 * 24 * 3600))),
            blurb_proxy_base=os.getenv("BLURB_PROXY_BASE", "https://r.jina.ai/http://"),
            blurb_max_chars=int(os.getenv("BLURB_MAX_CHARS", "280")),
            search_debounce_ms=int(os.getenv("SEARCH_DEBOUNCE_MS", "300")),
            prefs_path=os.getenv("PREFS_PATH", "./cache/prefs.json"),
            http_timeout_sec=float(os.getenv("HTTP_TIMEOUT_SEC", "20")),
        )

    @property
    def search_debounce_sec(self) -> float:
        return max(self.search_debounce_ms, 0) / 1000.0

    @property
    def blurbs_enabled(self) -> bool:
        return bool(self.blurb_proxy_base and self.blurb_proxy_base.strip())
