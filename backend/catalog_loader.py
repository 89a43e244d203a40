"""Load the dashboard catalog into memory."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, List

from typing_extensions import TypedDict

UNCATEGORIZED = "Uncategorized"
UNTITLED = "Untitled dashboard"


class CatalogError(RuntimeError):
    """Catalog file is missing, malformed or empty."""


class Site(TypedDict):
    title: str
    url: str
    tags: list[str]
    description: str
    techniques: list[str]


DEFAULT_SITES_PATH = Path(__file__).parent / "data" / "sites.json"


def normalize_site(raw: Any) -> Site:
    """Apply catalog defaults so every item has a title, a url and at least one tag."""
    site = raw if isinstance(raw, dict) else {}

    tags = site.get("tags")
    tags = [str(t) for t in tags if t] if isinstance(tags, list) else []
    if not tags:
        tags.append(UNCATEGORIZED)

    techniques = site.get("techniques")
    description = site.get("description")

    return Site(
        title=site.get("title") or UNTITLED,
        url=site.get("url") or "#",
        tags=tags,
        description=description.strip() if isinstance(description, str) else "",
        techniques=[str(t) for t in techniques if t] if isinstance(techniques, list) else [],
    )


def normalize_sites(items: Iterable[Any]) -> List[Site]:
    return [normalize_site(item) for item in items]


def load_sites(path: str | Path | None = None) -> List[Site]:
    """Read ``sites.json`` (a list, or an object with a ``sites`` list)."""
    sites_path = Path(path) if path else DEFAULT_SITES_PATH
    try:
        with sites_path.open("r", encoding="utf-8") as fh:
            payload = json.load(fh)
    except FileNotFoundError as exc:
        raise CatalogError(f"Catalog file not found: {sites_path}") from exc
    except (json.JSONDecodeError, OSError) as exc:
        raise CatalogError(f"Catalog file unreadable: {sites_path}: {exc}") from exc

    if isinstance(payload, dict):
        payload = payload.get("sites") or []

    if not isinstance(payload, list) or not payload:
        raise CatalogError("No sites found in configuration")

    sites = normalize_sites(payload)
    print(f"[CATALOG] loaded {len(sites)} sites from {sites_path}")
    return sites
