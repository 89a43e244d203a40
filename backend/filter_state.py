"""Filter state value and its query-string codec.

The state travels in shareable links as ``q``, ``tags``, ``filter`` and
``sort``. Anything read back from a link (initial load, back/forward, hand
edited URLs) is untrusted and must go through :func:`validate_filter_state`
before it reaches the widgets.

Tags travel lower-cased with spaces as hyphens, so two tags that differ only
in case, spacing or hyphens (``Built In`` and ``Built-in``) share one link
form. Such a token decodes to the spaced spelling when the vocabulary has it,
otherwise to the first tag in catalog order with that link form.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Tuple
from urllib.parse import parse_qs, urlencode

from facets import tag_key
from filters import DROPDOWN_ALL, SORT_DEFAULT, SORT_KEYS

MAX_SELECTED_TAGS = 10

PARAM_QUERY = "q"
PARAM_TAGS = "tags"
PARAM_FILTER = "filter"
PARAM_SORT = "sort"

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True, eq=False)
class FilterState:
    query: str = ""
    selected_tags: Tuple[str, ...] = field(default_factory=tuple)
    dropdown: str = DROPDOWN_ALL
    sort: str = SORT_DEFAULT

    def _identity(self) -> tuple:
        return (
            self.query,
            frozenset(tag_key(t) for t in self.selected_tags),
            tag_key(self.dropdown),
            self.sort,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FilterState):
            return NotImplemented
        return self._identity() == other._identity()

    def __hash__(self) -> int:
        return hash(self._identity())

    @property
    def is_default(self) -> bool:
        return self == DEFAULT_STATE

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "selected_tags": list(self.selected_tags),
            "dropdown": self.dropdown,
            "sort": self.sort,
        }


DEFAULT_STATE = FilterState()


def tag_to_param(tag: str) -> str:
    """``"Zero Waste"`` -> ``"zero-waste"``."""
    return _WHITESPACE.sub("-", tag.strip().lower())


def tag_from_param(token: str) -> str:
    """``"zero-waste"`` -> ``"Zero Waste"``. Best effort, not an exact inverse."""
    return " ".join(word[:1].upper() + word[1:] for word in token.split("-"))


def serialize_filters(state: FilterState) -> str:
    """Encode ``state`` as a query string, leaving out every default value."""
    params: list[tuple[str, str]] = []

    if state.query:
        params.append((PARAM_QUERY, state.query))

    if state.selected_tags:
        params.append((PARAM_TAGS, ",".join(tag_to_param(t) for t in state.selected_tags)))

    if state.dropdown and state.dropdown != DROPDOWN_ALL:
        params.append((PARAM_FILTER, state.dropdown.lower()))

    if state.sort and state.sort != SORT_DEFAULT:
        params.append((PARAM_SORT, state.sort.lower()))

    return urlencode(params, safe=",")


def _first(params: Mapping[str, Any], name: str) -> str:
    value = params.get(name)
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    return value if isinstance(value, str) else ""


def deserialize_filters(params: str | Mapping[str, Any]) -> FilterState:
    """Decode a query string (or an already parsed mapping) into a state.

    Missing fields fall back to their defaults. The result is not validated.
    """
    if isinstance(params, str):
        params = parse_qs(params.lstrip("?"), keep_blank_values=False)

    query = _first(params, PARAM_QUERY).strip()

    tags = tuple(
        tag_from_param(token)
        for token in (t.strip() for t in _first(params, PARAM_TAGS).split(","))
        if token
    )

    dropdown = _first(params, PARAM_FILTER).strip().lower() or DROPDOWN_ALL

    sort = _first(params, PARAM_SORT).strip().lower()
    if sort not in SORT_KEYS:
        sort = SORT_DEFAULT

    return FilterState(query=query, selected_tags=tags, dropdown=dropdown, sort=sort)


def _get(state: Any, *names: str) -> Any:
    for name in names:
        if isinstance(state, Mapping):
            if name in state:
                return state[name]
        elif hasattr(state, name):
            return getattr(state, name)
    return None


def _resolver(vocabulary: Iterable[str] | Mapping[str, str]):
    if isinstance(vocabulary, Mapping):
        by_key = {tag_key(k): v for k, v in vocabulary.items()}
    else:
        by_key = {tag_key(v): v for v in vocabulary}
    by_param = {}
    for display in by_key.values():
        by_param.setdefault(tag_to_param(display), display)

    def resolve(tag: Any) -> str | None:
        if not isinstance(tag, str) or not tag.strip():
            return None
        found = by_key.get(tag_key(tag))
        if found is None:
            found = by_param.get(tag_to_param(tag))
        return found

    return resolve


def validate_filter_state(state: Any, vocabulary: Iterable[str] | Mapping[str, str]) -> FilterState:
    """Narrow ``state`` to the nearest safe value for ``vocabulary``. Never raises.

    ``vocabulary`` is either a mapping of case-folded tag -> display spelling
    (see ``facets.build_vocabulary``) or a plain collection of tags. Kept tags
    and the dropdown are rewritten to the vocabulary's spelling.
    """
    resolve = _resolver(vocabulary)

    query = _get(state, "query")
    query = query.strip() if isinstance(query, str) else ""

    selected: list[str] = []
    seen: set[str] = set()
    raw_tags = _get(state, "selected_tags", "selectedTags")
    if isinstance(raw_tags, (list, tuple, set, frozenset)):
        for tag in raw_tags:
            display = resolve(tag)
            if display is None or tag_key(display) in seen:
                continue
            seen.add(tag_key(display))
            selected.append(display)
    selected = selected[:MAX_SELECTED_TAGS]

    dropdown = DROPDOWN_ALL
    raw_dropdown = _get(state, "dropdown")
    if isinstance(raw_dropdown, str) and raw_dropdown.strip().lower() != DROPDOWN_ALL:
        dropdown = resolve(raw_dropdown) or DROPDOWN_ALL

    sort = SORT_DEFAULT
    raw_sort = _get(state, "sort")
    if isinstance(raw_sort, str) and raw_sort.strip().lower() in SORT_KEYS:
        sort = raw_sort.strip().lower()

    return FilterState(query=query, selected_tags=tuple(selected), dropdown=dropdown, sort=sort)


def state_from_query_string(query_string: str, vocabulary: Iterable[str] | Mapping[str, str]) -> FilterState:
    return validate_filter_state(deserialize_filters(query_string), vocabulary)
