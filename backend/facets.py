"""Tag vocabulary and facet categorization for the dashboard catalog."""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Sequence

from catalog_loader import Site

PLATFORM = "platform"
USE_CASE = "use-case"
AUDIENCE = "audience"
PATTERN = "pattern"
OTHER = "other"

FACETS: tuple[str, ...] = (PLATFORM, USE_CASE, AUDIENCE, PATTERN, OTHER)

FACET_LABELS = {
    PLATFORM: "Platform",
    USE_CASE: "Use case",
    AUDIENCE: "Audience",
    PATTERN: "Pattern",
    OTHER: "Other",
}

EMPTY_FACET_TEXT = "No filters in this category"


@dataclass(frozen=True)
class FacetRule:
    facet: str
    keywords: tuple[str, ...]

    def matches(self, tag_lower: str) -> bool:
        return any(kw in tag_lower for kw in self.keywords)


FACET_RULES: tuple[FacetRule, ...] = (
    FacetRule(PLATFORM, (
        "power bi", "tableau", "arcgis", "saas", "platform", "excel", "dashboard", "data",
    )),
    FacetRule(USE_CASE, (
        "cip", "municipal", "policy", "program", "budget", "capital", "infrastructure",
        "portfolio", "waste", "recovery", "management", "benchmark", "reference",
        "resource", "guidance",
    )),
    FacetRule(AUDIENCE, (
        "public", "executive", "staff", "citizen", "resident", "internal", "community",
    )),
    FacetRule(PATTERN, (
        "visualization", "report", "matrix", "scorecard", "ranking", "prioritization",
        "pattern", "playbook",
    )),
)

# Точное совпадение (lower-case) -> фасеты; дополняет эвристику ключевых слов
FACET_OVERRIDES: dict[str, tuple[str, ...]] = {
    "public cip": (USE_CASE, AUDIENCE),
    "portfolio management": (USE_CASE,),
    "resource recovery": (USE_CASE,),
    "zero waste": (USE_CASE,),
    "c&d waste": (USE_CASE,),
    "green halo": (USE_CASE,),
    "national policy": (USE_CASE,),
    "international benchmark": (USE_CASE,),
    "policy reference": (USE_CASE,),
    "reference data": (PLATFORM, USE_CASE),
    "open data": (PLATFORM, USE_CASE),
    "guidance": (AUDIENCE,),
}


def collation_key(text: str) -> tuple[str, str]:
    """Locale-style ordering: accents and case only break ties."""
    decomposed = unicodedata.normalize("NFKD", text or "")
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return (base.casefold(), (text or "").swapcase())


def tag_key(tag: str) -> str:
    return (tag or "").strip().casefold()


def facets_for_tag(
    tag: str,
    rules: Sequence[FacetRule] = FACET_RULES,
    overrides: Mapping[str, Sequence[str]] = FACET_OVERRIDES,
) -> set[str]:
    tag_lower = tag.lower()
    found = set(overrides.get(tag_lower, ()))
    for rule in rules:
        if rule.matches(tag_lower):
            found.add(rule.facet)
    if not found:
        found.add(OTHER)
    return found


def categorize_tags(
    tags: Iterable[str],
    rules: Sequence[FacetRule] = FACET_RULES,
    overrides: Mapping[str, Sequence[str]] = FACET_OVERRIDES,
) -> Dict[str, List[str]]:
    """Partition tags into facet buckets.

    A tag lands in every facet whose keyword list or override matches it, and
    in ``other`` only when nothing matched. Buckets are sorted so chip order is
    stable across reloads.
    """
    buckets: Dict[str, List[str]] = {facet: [] for facet in FACETS}
    for tag in tags:
        if not tag:
            continue
        for facet in facets_for_tag(tag, rules, overrides):
            bucket = buckets.setdefault(facet, [])
            if tag not in bucket:
                bucket.append(tag)

    for bucket in buckets.values():
        bucket.sort(key=collation_key)
    return buckets


def distinct_tags(sites: Iterable[Site]) -> List[str]:
    """Distinct tag spellings across the catalog, sorted for chips and the dropdown."""
    seen: dict[str, None] = {}
    for site in sites:
        for tag in site.get("tags") or []:
            if tag:
                seen.setdefault(tag, None)
    return sorted(seen, key=collation_key)


def build_vocabulary(sites: Iterable[Site]) -> Dict[str, str]:
    """Case-folded tag -> first display spelling seen in catalog order."""
    vocab: Dict[str, str] = {}
    for site in sites:
        for tag in site.get("tags") or []:
            key = tag_key(tag)
            if key and key not in vocab:
                vocab[key] = tag.strip()
    return vocab


@dataclass
class CatalogSession:
    """Everything derived from one catalog load, built once and passed around."""

    sites: List[Site] = field(default_factory=list)
    vocabulary: Dict[str, str] = field(default_factory=dict)
    tags: List[str] = field(default_factory=list)
    buckets: Dict[str, List[str]] = field(default_factory=lambda: {f: [] for f in FACETS})

    @classmethod
    def from_sites(cls, sites: Sequence[Site]) -> "CatalogSession":
        sites = list(sites)
        tags = distinct_tags(sites)
        buckets = categorize_tags(tags)
        print(
            f"[CATALOG] session: {len(sites)} sites, {len(tags)} tags, "
            + ", ".join(f"{facet}={len(buckets[facet])}" for facet in FACETS)
        )
        return cls(
            sites=sites,
            vocabulary=build_vocabulary(sites),
            tags=tags,
            buckets=buckets,
        )

    @property
    def total(self) -> int:
        return len(self.sites)

    def has_tag(self, tag: str) -> bool:
        return tag_key(tag) in self.vocabulary

    def canonical_tag(self, tag: str) -> str | None:
        return self.vocabulary.get(tag_key(tag))
