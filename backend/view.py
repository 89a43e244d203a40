"""Headless catalog view: keeps widgets, URL and the active-filter tray in sync.

Every interaction goes through one pipeline: read (or receive) a state,
validate it against the session vocabulary, write it back into the widgets,
run the predicate and sort, then re-serialize the URL and rebuild the tray.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from functools import partial
from typing import Any, Callable, Dict, List, Optional

from facets import EMPTY_FACET_TEXT, FACET_LABELS, FACETS, CatalogSession, tag_key
from filter_state import (
    DEFAULT_STATE,
    FilterState,
    serialize_filters,
    state_from_query_string,
    validate_filter_state,
)
from filters import DROPDOWN_ALL, SORT_DEFAULT, SORT_DOMAIN, SORT_KEYS, SORT_TITLE, FilterResult, apply_filters

DEFAULT_DEBOUNCE_SEC = 0.3

KIND_QUERY = "query"
KIND_TAG = "tag"
KIND_DROPDOWN = "dropdown"
KIND_SORT = "sort"

SORT_LABELS = {
    SORT_DEFAULT: "Default order",
    SORT_TITLE: "Title A→Z",
    SORT_DOMAIN: "Domain A→Z",
}

STATUS_IDLE = "idle"
STATUS_PENDING = "pending"

TimerFactory = Callable[..., Any]


class Debouncer:
    """Single pending timer; scheduling again replaces it."""

    def __init__(self, func: Callable[..., Any], wait: float, timer_factory: TimerFactory = threading.Timer) -> None:
        self._func = func
        self._wait = wait
        self._timer_factory = timer_factory
        self._timer: Any = None
        self._pending_call: tuple[tuple, dict] | None = None
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def schedule(self, *args: Any, **kwargs: Any) -> None:
        with self._lock:
            self._cancel_locked()
            generation = self._generation
            timer = self._timer_factory(self._wait, self._fire, args=(generation,))
            if hasattr(timer, "daemon"):
                timer.daemon = True
            self._timer = timer
            self._pending_call = (args, kwargs)
            timer.start()

    def cancel(self) -> None:
        with self._lock:
            self._cancel_locked()

    def flush(self) -> bool:
        """Run the pending call now. Returns False when nothing was pending."""
        with self._lock:
            if self._timer is None or self._pending_call is None:
                return False
            args, kwargs = self._pending_call
            self._cancel_locked()
        self._func(*args, **kwargs)
        return True

    def _cancel_locked(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None
        self._pending_call = None
        self._generation += 1

    def _fire(self, generation: int) -> None:
        with self._lock:
            # superseded or cancelled while the timer thread was waking up
            if generation != self._generation or self._pending_call is None:
                return
            args, kwargs = self._pending_call
            self._timer = None
            self._pending_call = None
        self._func(*args, **kwargs)


@dataclass
class WidgetState:
    """Raw values as the controls hold them; may be stale or malformed."""

    search_text: str = ""
    dropdown: str = DROPDOWN_ALL
    sort: str = SORT_DEFAULT
    pressed: List[str] = field(default_factory=list)


@dataclass
class ActiveFilter:
    kind: str
    label: str
    value: str
    remaining_query: str = ""
    on_remove: Optional[Callable[[], Any]] = field(default=None, repr=False, compare=False)

    @property
    def aria_label(self) -> str:
        return f"Remove {self.label} filter: {self.value}"

    def remove(self) -> Any:
        if self.on_remove is not None:
            return self.on_remove()
        return None

    def to_dict(self) -> Dict[str, str]:
        return {
            "kind": self.kind,
            "label": self.label,
            "value": self.value,
            "aria_label": self.aria_label,
            "remaining_query": self.remaining_query,
        }


@dataclass
class FacetGroup:
    facet: str
    label: str
    tags: List[str]
    active_count: int = 0

    @property
    def placeholder(self) -> str:
        return "" if self.tags else EMPTY_FACET_TEXT


def from_widgets(widgets: WidgetState) -> FilterState:
    """Widget values -> state, degrading anything malformed to its default."""
    search = widgets.search_text if isinstance(widgets.search_text, str) else ""
    dropdown = widgets.dropdown if isinstance(widgets.dropdown, str) and widgets.dropdown else DROPDOWN_ALL
    sort = widgets.sort if widgets.sort in SORT_KEYS else SORT_DEFAULT
    pressed = tuple(t for t in widgets.pressed or () if isinstance(t, str) and t)
    return FilterState(query=search.strip(), selected_tags=pressed, dropdown=dropdown, sort=sort)


def to_widgets(state: FilterState, widgets: WidgetState) -> WidgetState:
    widgets.search_text = state.query
    widgets.dropdown = state.dropdown or DROPDOWN_ALL
    widgets.sort = state.sort or SORT_DEFAULT
    widgets.pressed = list(state.selected_tags)
    return widgets


def remove_from_state(state: FilterState, kind: str, value: str = "") -> FilterState:
    """Reset one axis of ``state``; other axes are untouched.

    ``value`` names the tag to drop and is ignored for the other axes.
    """
    if kind == KIND_QUERY:
        return replace(state, query="")
    if kind == KIND_TAG:
        key = tag_key(value)
        return replace(state, selected_tags=tuple(t for t in state.selected_tags if tag_key(t) != key))
    if kind == KIND_DROPDOWN:
        return replace(state, dropdown=DROPDOWN_ALL)
    if kind == KIND_SORT:
        return replace(state, sort=SORT_DEFAULT)
    return state


def describe_active_filters(state: FilterState) -> List[tuple[str, str, str, str]]:
    """(kind, label, shown value, reset value) for every non-default axis."""
    entries: List[tuple[str, str, str, str]] = []
    if state.query:
        entries.append((KIND_QUERY, "Search", state.query, ""))
    for tag in state.selected_tags:
        entries.append((KIND_TAG, "Tag", tag, tag))
    if state.dropdown and state.dropdown != DROPDOWN_ALL:
        entries.append((KIND_DROPDOWN, "Category", state.dropdown, DROPDOWN_ALL))
    if state.sort and state.sort != SORT_DEFAULT:
        entries.append((KIND_SORT, "Sort", SORT_LABELS.get(state.sort, state.sort), SORT_DEFAULT))
    return entries


class FilterView:
    """Owns the filter state for one catalog view."""

    def __init__(
        self,
        session: CatalogSession,
        *,
        debounce_sec: float = DEFAULT_DEBOUNCE_SEC,
        timer_factory: TimerFactory = threading.Timer,
        on_url_change: Optional[Callable[[str], Any]] = None,
    ) -> None:
        self.session = session
        self.widgets = WidgetState()
        self.url = ""
        self.tray: List[ActiveFilter] = []
        self.result = FilterResult(visible=list(session.sites), flags=[True] * session.total, total=session.total)
        self._on_url_change = on_url_change
        self._lock = threading.RLock()
        self._debouncer = Debouncer(self._search_settled, debounce_sec, timer_factory)

    # -------- projections ----------
    def read_state(self) -> FilterState:
        return from_widgets(self.widgets)

    def write_state(self, state: FilterState) -> None:
        with self._lock:
            to_widgets(state, self.widgets)

    def current_state(self) -> FilterState:
        return validate_filter_state(self.read_state(), self.session.vocabulary)

    @property
    def status(self) -> str:
        return STATUS_PENDING if self._debouncer.pending else STATUS_IDLE

    @property
    def has_active_filters(self) -> bool:
        """Search, dropdown or any chip set; sort alone does not count."""
        state = self.current_state()
        return bool(state.query or state.selected_tags or state.dropdown != DROPDOWN_ALL)

    # -------- pipeline ----------
    def apply(self) -> FilterResult:
        with self._lock:
            state = self.current_state()
            self.result = apply_filters(
                state.query,
                state.dropdown,
                state.selected_tags,
                state.sort,
                self.session.sites,
            )
            return self.result

    def sync_url(self) -> str:
        with self._lock:
            state = self.current_state()
            self.url = serialize_filters(state)
            self.tray = self.render_active_filters(state)
        if self._on_url_change is not None:
            self._on_url_change(self.url)
        return self.url

    def refresh(self) -> FilterResult:
        """Recompute from the widgets. The search box keeps its text as typed."""
        self._debouncer.cancel()
        with self._lock:
            typed = self.widgets.search_text
            self.write_state(self.current_state())
            self.widgets.search_text = typed
            result = self.apply()
            self.sync_url()
            return result

    def render_active_filters(self, state: FilterState) -> List[ActiveFilter]:
        return [
            ActiveFilter(
                kind=kind,
                label=label,
                value=shown,
                remaining_query=serialize_filters(remove_from_state(state, kind, reset)),
                on_remove=partial(self.remove_filter, kind, reset),
            )
            for kind, label, shown, reset in describe_active_filters(state)
        ]

    # -------- interaction handlers ----------
    def search_input(self, text: str) -> None:
        """Keystroke: widget updates now, the recompute waits for a quiet period."""
        with self._lock:
            self.widgets.search_text = text if isinstance(text, str) else ""
        self._debouncer.schedule()

    def flush_search(self) -> bool:
        return self._debouncer.flush()

    def _search_settled(self) -> None:
        self.refresh()

    def toggle_chip(self, tag: str) -> FilterResult:
        with self._lock:
            display = self.session.canonical_tag(tag)
            if display is None:
                print(f"[FILTER] ignoring unknown chip {tag!r}")
                return self.result
            key = tag_key(display)
            pressed = [t for t in self.widgets.pressed if tag_key(t) != key]
            if len(pressed) == len(self.widgets.pressed):
                pressed.append(display)
            self.widgets.pressed = pressed
            return self.refresh()

    def select_dropdown(self, value: str) -> FilterResult:
        with self._lock:
            self.widgets.dropdown = value
            return self.refresh()

    def select_sort(self, value: str) -> FilterResult:
        with self._lock:
            self.widgets.sort = value
            return self.refresh()

    def remove_filter(self, kind: str, value: str = "") -> FilterResult:
        with self._lock:
            self.write_state(remove_from_state(self.read_state(), kind, value))
            return self.refresh()

    def clear_all(self) -> FilterResult:
        self._debouncer.cancel()
        with self._lock:
            self.write_state(DEFAULT_STATE)
            return self.refresh()

    def navigate(self, query_string: str) -> FilterResult:
        """Initial load and back/forward: the link wins over any pending keystrokes."""
        self._debouncer.cancel()
        with self._lock:
            self.write_state(state_from_query_string(query_string or "", self.session.vocabulary))
            return self.refresh()

    def close(self) -> None:
        self._debouncer.cancel()

    # -------- facet chips ----------
    def facet_groups(self) -> List[FacetGroup]:
        pressed = {tag_key(t) for t in self.current_state().selected_tags}
        return [
            FacetGroup(
                facet=facet,
                label=FACET_LABELS[facet],
                tags=list(self.session.buckets.get(facet, [])),
                active_count=sum(1 for t in self.session.buckets.get(facet, []) if tag_key(t) in pressed),
            )
            for facet in FACETS
        ]

    def dropdown_options(self) -> List[tuple[str, str]]:
        return [(DROPDOWN_ALL, "All types")] + [(tag, tag) for tag in self.session.tags]
