"""Draft/apply lifecycle of a screen's filter panel."""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable

from listview.engine import FilterState, count_applied_filters
from listview.logging_config import get_logger


LOGGER = get_logger(__name__)


class PanelState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"


class FilterPanel:
    """Holds the committed filters and the draft edited while the panel is open.

    ``on_commit`` is called with the new committed state after Apply or Reset.
    Closing without Apply discards the draft.
    """

    def __init__(
        self,
        committed: FilterState,
        on_commit: Callable[[FilterState], None] | None = None,
    ) -> None:
        self._committed = committed
        self._draft: FilterState | None = None
        self._on_commit = on_commit
        self.state = PanelState.CLOSED

    @property
    def committed(self) -> FilterState:
        return self._committed

    @property
    def draft(self) -> FilterState | None:
        return self._draft

    @property
    def applied_count(self) -> int:
        return count_applied_filters(self._committed)

    def sync(self, committed: FilterState) -> None:
        """Track a committed state changed outside the panel (badge removal, tab switch).

        An open panel re-seeds its draft so a later Apply cannot write back a
        stale search or tab.
        """

        self._committed = committed
        if self.state is PanelState.OPEN:
            self._draft = committed

    def open(self) -> FilterState:
        self._draft = self._committed
        self.state = PanelState.OPEN
        return self._draft

    def toggle(self) -> None:
        if self.state is PanelState.OPEN:
            self.close()
        else:
            self.open()

    def set(self, key: str, value: Any) -> FilterState:
        draft = self._require_draft()
        self._draft = draft.with_value(key, value)
        return self._draft

    def set_search(self, search: str) -> FilterState:
        draft = self._require_draft()
        self._draft = draft.with_search(search)
        return self._draft

    def apply(self) -> FilterState:
        draft = self._require_draft()
        self._commit(draft)
        return self._committed

    def reset(self) -> FilterState:
        self._commit(self._committed.reset())
        return self._committed

    def close(self) -> None:
        """Close without applying (escape, outside click, close button)."""

        self._draft = None
        self.state = PanelState.CLOSED

    def _require_draft(self) -> FilterState:
        if self.state is not PanelState.OPEN or self._draft is None:
            raise RuntimeError("Filter panel is not open")
        return self._draft

    def _commit(self, state: FilterState) -> None:
        self._committed = state
        self._draft = None
        self.state = PanelState.CLOSED
        LOGGER.debug("Filters committed", extra={"applied": count_applied_filters(state)})
        if self._on_commit is not None:
            self._on_commit(state)
