"""Pagination bar helpers."""

from __future__ import annotations

ELLIPSIS = "..."


def page_window(current: int, total: int) -> list[int | str]:
    """Return the page links to render, with ``ELLIPSIS`` between gaps.

    Shows the first and last pages plus the current page and its direct
    neighbours. Nothing is rendered for a single page.
    """

    if total <= 1:
        return []
    candidates = {1, total, current - 1, current, current + 1}
    pages = sorted(page for page in candidates if 1 <= page <= total)

    window: list[int | str] = []
    previous: int | None = None
    for page in pages:
        if previous is not None and page - previous > 1:
            window.append(ELLIPSIS)
        window.append(page)
        previous = page
    return window


def item_range(current: int, page_size: int, total_items: int) -> tuple[int, int]:
    """1-based (first, last) item numbers shown on *current*."""

    if total_items <= 0:
        return (0, 0)
    start = (max(current, 1) - 1) * page_size + 1
    end = min(current * page_size, total_items)
    if start > total_items:
        return (0, 0)
    return (start, end)
