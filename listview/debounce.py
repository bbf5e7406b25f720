"""Trailing-edge debounce for free-text search input."""

from __future__ import annotations

import threading
from typing import Callable


class SearchDebouncer:
    """Commit the latest submitted query after *delay_ms* of quiet.

    Each ``submit`` restarts the timer. ``cancel`` drops a pending commit and
    must be called when the owning screen goes away.
    """

    def __init__(self, commit: Callable[[str], None], delay_ms: int = 500) -> None:
        self._commit = commit
        self._delay = max(delay_ms, 0) / 1000.0
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._generation = 0
        self._pending: str | None = None

    @property
    def pending(self) -> str | None:
        return self._pending

    def submit(self, query: str) -> None:
        if self._delay == 0:
            with self._lock:
                self._cancel_locked()
                self._pending = query
            self.flush()
            return
        with self._lock:
            self._cancel_locked()
            self._pending = query
            self._generation += 1
            timer = threading.Timer(self._delay, self._fire, args=(self._generation,))
            timer.daemon = True
            self._timer = timer
        timer.start()

    def flush(self) -> None:
        """Commit the pending query now, if any."""

        with self._lock:
            self._cancel_locked()
            query = self._pending
            self._pending = None
        if query is not None:
            self._commit(query)

    def cancel(self) -> None:
        with self._lock:
            self._cancel_locked()
            self._pending = None

    def _cancel_locked(self) -> None:
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self, generation: int) -> None:
        with self._lock:
            # A newer submit or a cancel superseded this timer.
            if generation != self._generation:
                return
            self._timer = None
            query = self._pending
            self._pending = None
        if query is not None:
            self._commit(query)
