#!/usr/bin/env python3
"""Generate frontend runtime config from the backend settings."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Dict

ROOT_DIR = Path(__file__).resolve().parents[1]
FRONTEND_CONFIG = ROOT_DIR / "frontend" / "config.js"

if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from config import Settings  # noqa: E402
from facets import FACET_LABELS, FACETS  # noqa: E402
from filter_state import MAX_SELECTED_TAGS  # noqa: E402
from filters import SORT_KEYS  # noqa: E402


def build_config(settings: Settings) -> Dict[str, Any]:
    return {
        "SEARCH_DEBOUNCE_MS": settings.search_debounce_ms,
        "MAX_SELECTED_TAGS": MAX_SELECTED_TAGS,
        "FACETS": [{"id": facet, "label": FACET_LABELS[facet]} for facet in FACETS],
        "SORT_KEYS": list(SORT_KEYS),
        "BLURBS_ENABLED": settings.blurbs_enabled,
    }


def write_frontend_config(values: Dict[str, Any], target: Path = FRONTEND_CONFIG) -> Path:
    """Render config.js for the static frontend."""
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = f"window.__CONFIG__ = {json.dumps(values, ensure_ascii=False)};\n"
    target.write_text(payload, encoding="utf-8")
    return target


def main(settings: Settings | None = None, target: Path = FRONTEND_CONFIG) -> Path:
    path = write_frontend_config(build_config(settings or Settings.load()), target)
    print(f"Generated {path}")
    return path


if __name__ == "__main__":
    main()
