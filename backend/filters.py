"""Visibility predicate, sort stage and result summaries for the catalog grid."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Sequence
from urllib.parse import urlsplit

from catalog_loader import Site
from facets import collation_key

SORT_DEFAULT = "default"
SORT_TITLE = "title"
SORT_DOMAIN = "domain"
SORT_KEYS: tuple[str, ...] = (SORT_DEFAULT, SORT_TITLE, SORT_DOMAIN)

DROPDOWN_ALL = "all"

ITEM_NOUN = "dashboards"


def hostname(url: str) -> str:
    """Host of ``url`` without ``www.``; the raw value when it has no host."""
    try:
        host = urlsplit(url or "").hostname
    except ValueError:
        host = None
    if not host:
        return url or ""
    return host[4:] if host.startswith("www.") else host


def site_title(site: Site) -> str:
    return (site.get("title") or "").lower()


def site_domain(site: Site) -> str:
    return hostname(site.get("url") or "").lower()


def site_tags(site: Site) -> List[str]:
    return [t.lower() for t in site.get("tags") or [] if t]


def matches_query(query: str, title: str, domain: str, tags: Sequence[str]) -> bool:
    if not query:
        return True
    return query in title or query in domain or any(query in t for t in tags)


def matches_dropdown(choice: str, tags: Sequence[str]) -> bool:
    if not choice or choice == DROPDOWN_ALL:
        return True
    return choice.lower() in tags


def matches_chips(chips: Iterable[str], tags: Sequence[str]) -> bool:
    return all(chip.lower() in tags for chip in chips)


def is_visible(query: str, dropdown: str, chips: Iterable[str], site: Site) -> bool:
    """Free text ORs across fields, the dropdown is exact, chips AND together."""
    tags = site_tags(site)
    return (
        matches_query((query or "").strip().lower(), site_title(site), site_domain(site), tags)
        and matches_dropdown(dropdown, tags)
        and matches_chips(chips or (), tags)
    )


def sort_items(sort_key: str, sites: Sequence[Site]) -> List[Site]:
    """Reorder the visible subset. ``default`` keeps catalog order."""
    if sort_key == SORT_TITLE:
        return sorted(sites, key=lambda s: collation_key(site_title(s))[0])
    if sort_key == SORT_DOMAIN:
        return sorted(sites, key=lambda s: collation_key(site_domain(s))[0])
    return list(sites)


def announce(visible: int, total: int) -> str:
    """Live-region text for assistive technology."""
    if visible == total:
        return f"Showing all {total} {ITEM_NOUN}"
    if visible == 0:
        return f"No {ITEM_NOUN} match your filters"
    return f"Showing {visible} of {total} {ITEM_NOUN}"


def summary(visible: int, total: int) -> str:
    if visible == total:
        return "Filters Active"
    return f"Showing {visible} of {total} {ITEM_NOUN}"


def filter_indicator(visible: int, total: int) -> str:
    return f"(showing {visible})" if visible != total else ""


@dataclass
class FilterResult:
    visible: List[Site] = field(default_factory=list)
    flags: List[bool] = field(default_factory=list)
    total: int = 0

    @property
    def visible_count(self) -> int:
        return len(self.visible)

    @property
    def hidden_count(self) -> int:
        return self.total - self.visible_count

    @property
    def is_empty(self) -> bool:
        return self.visible_count == 0

    @property
    def announcement(self) -> str:
        return announce(self.visible_count, self.total)

    @property
    def summary(self) -> str:
        return summary(self.visible_count, self.total)

    @property
    def indicator(self) -> str:
        return filter_indicator(self.visible_count, self.total)


def apply_filters(
    query: str,
    dropdown: str,
    chips: Iterable[str],
    sort_key: str,
    sites: Sequence[Site],
) -> FilterResult:
    chips = [c for c in chips or () if c]
    flags = [is_visible(query, dropdown, chips, site) for site in sites]
    visible = [site for site, shown in zip(sites, flags) if shown]
    result = FilterResult(
        visible=sort_items(sort_key, visible),
        flags=flags,
        total=len(sites),
    )
    print(f"[FILTER] {result.visible_count}/{result.total} visible sort={sort_key}")
    return result
