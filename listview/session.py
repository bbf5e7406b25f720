"""Per-screen controller wiring user events to the table engine."""

from __future__ import annotations

import threading
from typing import Any, Iterable, Sequence

from listview.debounce import SearchDebouncer
from listview.engine import (
    FilterState,
    PageRequest,
    Record,
    SortDirective,
    TableView,
    toggle_sort,
)
from listview.errors import UnregisteredSortFieldError
from listview.filter_panel import FilterPanel
from listview.identity import IdentityResolver
from listview.logging_config import get_logger
from listview.screens import ScreenSpec


LOGGER = get_logger(__name__)


class ListViewSession:
    """State of one open list screen.

    Any change to filters, search or the active tab returns to page 1 and
    clears the selection; so does moving to another page. The record
    collection is only ever replaced as a whole.

    Debounced search commits arrive on a timer thread, so every read and
    write of the navigation state goes through one re-entrant lock.
    """

    def __init__(
        self,
        spec: ScreenSpec,
        records: Iterable[Record] = (),
        *,
        page_size: int = 10,
        search_debounce_ms: int = 500,
        identity: IdentityResolver | None = None,
    ) -> None:
        self.spec = spec
        self.engine = spec.engine()
        self.page_size = PageRequest(page_size=page_size).page_size
        self.identity = identity
        self._records: list[Record] = list(records)
        self.filter_state = FilterState.default(spec.filters.keys())
        self.sort = SortDirective(
            field=spec.default_sort,
            direction="desc" if spec.default_direction == "desc" else "asc",
        )
        self.page_number = 1
        self.selection: set[str] = set()
        self.panel = FilterPanel(self.filter_state, on_commit=self.set_filters)
        self._debouncer = SearchDebouncer(self.on_search_commit, search_debounce_ms)
        self._closed = False
        self._lock = threading.RLock()

    @property
    def records(self) -> Sequence[Record]:
        return self._records

    @property
    def dealer_id(self) -> str | None:
        return self.identity.dealer_id if self.identity is not None else None

    def replace_records(self, records: Iterable[Record]) -> None:
        with self._lock:
            self._records = list(records)
            self._reset_navigation()
            count = len(self._records)
        LOGGER.debug("Records replaced", extra={"screen": self.spec.name, "count": count})

    def view(self) -> TableView:
        with self._lock:
            return self.engine.run(
                self._records,
                self.filter_state,
                self.sort,
                PageRequest(page_number=self.page_number, page_size=self.page_size),
            )

    def ordered_records(self) -> list[Record]:
        """Every filtered and sorted record across all pages."""

        with self._lock:
            return self.engine.ordered(self._records, self.filter_state, self.sort)

    def set_filters(self, state: FilterState) -> None:
        with self._lock:
            self.filter_state = state
            self.panel.sync(state)
            self._reset_navigation()

    def on_filter_change(self, key: str, value: Any) -> None:
        with self._lock:
            self.set_filters(self.filter_state.with_value(key, value))

    def reset_filters(self) -> None:
        with self._lock:
            self.set_filters(self.filter_state.reset())

    def on_search_input(self, query: str) -> None:
        """Keystroke-level search input; committed after the debounce delay."""

        if self._closed:
            return
        self._debouncer.submit(query)

    def on_search_commit(self, query: str) -> None:
        with self._lock:
            if self._closed:
                return
            self.set_filters(self.filter_state.with_search(query))

    def on_tab_change(self, tab: str | None) -> None:
        with self._lock:
            self.set_filters(self.filter_state.with_tab(tab))

    def on_sort_toggle(self, field_name: str) -> SortDirective:
        if field_name not in self.engine.sorts:
            raise UnregisteredSortFieldError(field_name, list(self.engine.sorts))
        with self._lock:
            self.sort = toggle_sort(self.sort, field_name)
            return self.sort

    def on_page_change(self, page_number: int) -> None:
        with self._lock:
            self.page_number = max(int(page_number), 1)
            self.selection.clear()

    def visible_ids(self) -> list[str]:
        ids: list[str] = []
        for record in self.view().rows:
            record_id = self.spec.id_accessor(record)
            if record_id is not None:
                ids.append(str(record_id))
        return ids

    def on_selection_toggle(self, record_id: str) -> bool:
        """Flip *record_id* in the selection; returns whether it is now selected."""

        with self._lock:
            if record_id in self.selection:
                self.selection.discard(record_id)
                return False
            self.selection.add(record_id)
            return True

    def on_select_all_on_page(self) -> set[str]:
        with self._lock:
            visible = set(self.visible_ids())
            if visible and visible <= self.selection:
                self.selection.clear()
            else:
                self.selection = visible
            return set(self.selection)

    def selected_records(self) -> list[Record]:
        with self._lock:
            rows = self.view().rows
            selected = set(self.selection)
        return [record for record in rows if str(self.spec.id_accessor(record)) in selected]

    def close(self) -> None:
        """Tear down: drop any pending debounced search."""

        with self._lock:
            self._closed = True
        self._debouncer.cancel()

    def _reset_navigation(self) -> None:
        self.page_number = 1
        self.selection.clear()
