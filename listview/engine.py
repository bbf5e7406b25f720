"""Filter, sort and paginate pipeline shared by every dashboard list screen."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from decimal import Decimal
from numbers import Real
from typing import Any, Callable, Iterable, Literal, Mapping, Sequence

from listview.errors import UnregisteredSortFieldError
from listview.logging_config import get_logger


LOGGER = get_logger(__name__)

Record = Mapping[str, Any]
Accessor = Callable[[Record], Any]
SortDirection = Literal["asc", "desc"]

ALL = "all"
_ACCESSOR_ERRORS = (AttributeError, IndexError, KeyError, TypeError, ValueError)


@dataclass(frozen=True)
class FilterState:
    """Committed constraints for a list view."""

    values: Mapping[str, Any] = field(default_factory=dict)
    search: str = ""
    tab: str | None = None

    @classmethod
    def default(cls, keys: Iterable[str], *, tab: str | None = None) -> "FilterState":
        return cls(values={key: ALL for key in keys}, search="", tab=tab)

    def with_value(self, key: str, value: Any) -> "FilterState":
        values = dict(self.values)
        values[key] = value
        return replace(self, values=values)

    def with_search(self, search: str | None) -> "FilterState":
        return replace(self, search=search or "")

    def with_tab(self, tab: str | None) -> "FilterState":
        return replace(self, tab=tab)

    def reset(self) -> "FilterState":
        """Return the default state for the same keys, keeping the active tab."""

        return FilterState.default(self.values.keys(), tab=self.tab)


@dataclass(frozen=True)
class SortDirective:
    field: str | None = None
    direction: SortDirection = "asc"


@dataclass(frozen=True)
class PageRequest:
    page_number: int = 1
    page_size: int = 10

    def __post_init__(self) -> None:
        if self.page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {self.page_size}")


@dataclass
class TableView:
    """Everything a list screen needs to render one page."""

    rows: list[Record]
    total_filtered: int
    total_pages: int
    page_number: int
    page_size: int
    applied_filters: int
    options: dict[str, list[str]]
    sort: SortDirective

    @property
    def is_empty(self) -> bool:
        return self.total_filtered == 0


def _safe_get(accessor: Accessor, record: Record) -> Any:
    try:
        return accessor(record)
    except _ACCESSOR_ERRORS:
        return None


def _is_unconstrained(value: Any) -> bool:
    return value is None or value == "" or value == ALL


def _matches(value: Any, wanted: Any) -> bool:
    if value is None:
        return False
    if value == wanted:
        return True
    # Query-string filters arrive as text.
    return str(value) == str(wanted)


def derive_options(records: Iterable[Record], accessor: Accessor) -> list[str]:
    """Return the distinct non-empty display values for *accessor*, sorted."""

    seen: set[str] = set()
    for record in records:
        value = _safe_get(accessor, record)
        if value is None:
            continue
        text = str(value)
        if not text.strip():
            continue
        seen.add(text)
    return sorted(seen)


def apply_filters(
    records: Iterable[Record],
    filter_state: FilterState,
    *,
    filters: Mapping[str, Accessor] | None = None,
    searchable: Sequence[Accessor] = (),
    tab_accessor: Accessor | None = None,
) -> list[Record]:
    """Return the records that satisfy *filter_state*, in input order.

    Applied as: tab partition, then each exact-match filter in the order of
    *filters*, then the free-text search. Keys present in the state but not
    in *filters* are ignored.
    """

    result = list(records)

    if tab_accessor is not None and not _is_unconstrained(filter_state.tab):
        result = [r for r in result if _matches(_safe_get(tab_accessor, r), filter_state.tab)]

    for key, accessor in (filters or {}).items():
        wanted = filter_state.values.get(key, ALL)
        if _is_unconstrained(wanted):
            continue
        result = [r for r in result if _matches(_safe_get(accessor, r), wanted)]

    query = (filter_state.search or "").strip().lower()
    if query and searchable:
        result = [r for r in result if _search_hit(r, query, searchable)]

    return result


def _search_hit(record: Record, query: str, searchable: Sequence[Accessor]) -> bool:
    for accessor in searchable:
        value = _safe_get(accessor, record)
        if value is None:
            continue
        if query in str(value).lower():
            return True
    return False


def _is_number(value: Any) -> bool:
    return isinstance(value, (Real, Decimal)) and not isinstance(value, bool)


def _numeric_key(value: Any) -> float:
    if value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _sort_keys(values: list[Any]) -> list[Any]:
    present = [value for value in values if value is not None]
    if present and all(_is_number(value) for value in present):
        return [_numeric_key(value) for value in values]
    return ["" if value is None else str(value).lower() for value in values]


def apply_sort(
    records: Iterable[Record],
    directive: SortDirective,
    accessors: Mapping[str, Accessor],
) -> list[Record]:
    """Return *records* ordered by *directive*.

    A field whose values are all numeric sorts numerically; anything else
    sorts on the lower-cased text. Missing values sort as ``0`` or ``""``.
    Descending order reverses the ascending key, so ties keep their input
    order in both directions.
    """

    rows = list(records)
    if directive.field is None:
        return rows
    accessor = accessors.get(directive.field)
    if accessor is None:
        raise UnregisteredSortFieldError(directive.field, list(accessors))

    keys = _sort_keys([_safe_get(accessor, row) for row in rows])
    order = sorted(
        range(len(rows)),
        key=keys.__getitem__,
        reverse=directive.direction == "desc",
    )
    return [rows[index] for index in order]


def total_pages(count: int, page_size: int) -> int:
    if count <= 0:
        return 0
    return (count + page_size - 1) // page_size


def paginate(records: Sequence[Record], page: PageRequest) -> list[Record]:
    """Return the slice for *page*; pages past the end are empty."""

    number = max(page.page_number, 1)
    start = (number - 1) * page.page_size
    return list(records[start : start + page.page_size])


def toggle_sort(current: SortDirective, field_name: str) -> SortDirective:
    if current.field == field_name:
        flipped: SortDirection = "desc" if current.direction == "asc" else "asc"
        return SortDirective(field=field_name, direction=flipped)
    return SortDirective(field=field_name, direction="asc")


def count_applied_filters(filter_state: FilterState) -> int:
    count = sum(1 for value in filter_state.values.values() if value and value != ALL)
    if (filter_state.search or "").strip():
        count += 1
    return count


class OptionsCache:
    """Facet lists memoised on the identity of the source collection."""

    def __init__(self, accessors: Mapping[str, Accessor]) -> None:
        self._accessors = dict(accessors)
        self._source: Sequence[Record] | None = None
        self._options: dict[str, list[str]] = {}
        self.recomputations = 0

    def get(self, records: Sequence[Record]) -> dict[str, list[str]]:
        if records is not self._source:
            self._options = {
                key: derive_options(records, accessor)
                for key, accessor in self._accessors.items()
            }
            self._source = records
            self.recomputations += 1
        return {key: list(values) for key, values in self._options.items()}


class TableViewEngine:
    """Runs the full pipeline for one screen's accessor configuration."""

    def __init__(
        self,
        *,
        filters: Mapping[str, Accessor] | None = None,
        sorts: Mapping[str, Accessor] | None = None,
        searchable: Sequence[Accessor] = (),
        tab_accessor: Accessor | None = None,
    ) -> None:
        self.filters = dict(filters or {})
        self.sorts = dict(sorts or {})
        self.searchable = tuple(searchable)
        self.tab_accessor = tab_accessor
        self._options = OptionsCache(self.filters)

    def options(self, records: Sequence[Record]) -> dict[str, list[str]]:
        return self._options.get(records)

    def filter(self, records: Iterable[Record], filter_state: FilterState) -> list[Record]:
        return apply_filters(
            records,
            filter_state,
            filters=self.filters,
            searchable=self.searchable,
            tab_accessor=self.tab_accessor,
        )

    def sort(self, records: Iterable[Record], directive: SortDirective) -> list[Record]:
        return apply_sort(records, directive, self.sorts)

    def ordered(
        self,
        records: Iterable[Record],
        filter_state: FilterState,
        directive: SortDirective,
    ) -> list[Record]:
        """Filtered then sorted records, without pagination."""

        return self.sort(self.filter(records, filter_state), directive)

    def run(
        self,
        records: Sequence[Record],
        filter_state: FilterState,
        directive: SortDirective,
        page: PageRequest,
    ) -> TableView:
        ordered = self.ordered(records, filter_state, directive)
        rows = paginate(ordered, page)
        LOGGER.debug(
            "Table pipeline",
            extra={
                "source": len(records),
                "filtered": len(ordered),
                "page": page.page_number,
                "sort": directive.field,
            },
        )
        return TableView(
            rows=rows,
            total_filtered=len(ordered),
            total_pages=total_pages(len(ordered), page.page_size),
            page_number=page.page_number,
            page_size=page.page_size,
            applied_filters=count_applied_filters(filter_state),
            options=self.options(records),
            sort=directive,
        )
