from __future__ import annotations

import pytest

from listview.engine import (
    ALL,
    FilterState,
    OptionsCache,
    PageRequest,
    SortDirective,
    TableViewEngine,
    apply_filters,
    apply_sort,
    count_applied_filters,
    derive_options,
    paginate,
    toggle_sort,
    total_pages,
)
from listview.errors import UnregisteredSortFieldError


def _get(key):
    return lambda record: record[key]


PRODUCTS = [
    {"id": "1", "name": "Brake Pad", "brand": "Bosch", "status": "Active", "price": 40},
    {"id": "2", "name": "oil filter", "brand": "Mahle", "status": "Pending", "price": 12.5},
    {"id": "3", "name": "Air Filter", "brand": "Bosch", "status": "Active", "price": None},
    {"id": "4", "name": "Spark Plug", "brand": None, "status": "Rejected", "price": 8},
    {"id": "5", "status": "Active"},
]
FILTERS = {"brand": _get("brand"), "status": _get("status")}
SEARCHABLE = (_get("name"), _get("brand"))


def test_status_filter_keeps_matching_records_in_order() -> None:
    records = [{"status": "Active"}, {"status": "Pending"}, {"status": "Active"}]
    state = FilterState(values={"status": "Active"})
    result = apply_filters(records, state, filters={"status": _get("status")})
    assert result == [records[0], records[2]]
    assert result[0] is records[0]
    assert result[1] is records[2]


def test_all_filters_and_blank_search_are_a_no_op() -> None:
    state = FilterState.default(FILTERS.keys()).with_search("   ")
    result = apply_filters(PRODUCTS, state, filters=FILTERS, searchable=SEARCHABLE)
    assert result == PRODUCTS
    assert result is not PRODUCTS


def test_adding_constraints_only_shrinks_the_result() -> None:
    loose = FilterState(values={"brand": "Bosch", "status": ALL})
    tight = loose.with_value("status", "Active").with_search("air")
    loose_ids = [r["id"] for r in apply_filters(PRODUCTS, loose, filters=FILTERS, searchable=SEARCHABLE)]
    tight_ids = [r["id"] for r in apply_filters(PRODUCTS, tight, filters=FILTERS, searchable=SEARCHABLE)]
    assert set(tight_ids) <= set(loose_ids)
    assert tight_ids == ["3"]


def test_search_is_trimmed_case_insensitive_and_tolerates_missing_fields() -> None:
    state = FilterState().with_search("  FILTER ")
    result = apply_filters(PRODUCTS, state, searchable=SEARCHABLE)
    assert [r["id"] for r in result] == ["2", "3"]


def test_search_with_no_hit_returns_empty() -> None:
    state = FilterState().with_search("windscreen")
    assert apply_filters(PRODUCTS, state, searchable=SEARCHABLE) == []


def test_empty_input_yields_empty_output() -> None:
    state = FilterState(values={"brand": "Bosch"}, search="x")
    assert apply_filters([], state, filters=FILTERS, searchable=SEARCHABLE) == []


def test_tab_partition_is_applied_first() -> None:
    state = FilterState(values={"brand": "Bosch"}, tab="Active")
    result = apply_filters(PRODUCTS, state, filters=FILTERS, tab_accessor=_get("status"))
    assert [r["id"] for r in result] == ["1", "3"]


def test_filter_does_not_mutate_input() -> None:
    records = list(PRODUCTS)
    apply_filters(records, FilterState(values={"status": "Active"}), filters=FILTERS)
    assert records == PRODUCTS


def test_numeric_field_matches_text_filter_value() -> None:
    records = [{"year": 2020}, {"year": 2021}]
    result = apply_filters(records, FilterState(values={"year": "2021"}), filters={"year": _get("year")})
    assert result == [{"year": 2021}]


def test_sort_by_name_is_case_insensitive() -> None:
    records = [{"name": "Banana"}, {"name": "apple"}, {"name": "Cherry"}]
    result = apply_sort(records, SortDirective("name", "asc"), {"name": _get("name")})
    assert [r["name"] for r in result] == ["apple", "Banana", "Cherry"]


def test_sort_numeric_treats_missing_as_zero() -> None:
    accessors = {"price": lambda r: r.get("price")}
    result = apply_sort(PRODUCTS, SortDirective("price", "asc"), accessors)
    assert [r["id"] for r in result] == ["3", "5", "4", "2", "1"]


def test_sort_numeric_is_not_lexical() -> None:
    records = [{"n": 10}, {"n": 9}, {"n": 100}]
    result = apply_sort(records, SortDirective("n"), {"n": _get("n")})
    assert [r["n"] for r in result] == [9, 10, 100]


def test_sort_without_field_keeps_source_order() -> None:
    assert apply_sort(PRODUCTS, SortDirective(), {}) == PRODUCTS


def test_sort_is_stable_in_both_directions() -> None:
    records = [
        {"id": "a", "group": "x"},
        {"id": "b", "group": "y"},
        {"id": "c", "group": "x"},
        {"id": "d", "group": "y"},
    ]
    accessors = {"group": _get("group")}
    asc = apply_sort(records, SortDirective("group", "asc"), accessors)
    desc = apply_sort(records, SortDirective("group", "desc"), accessors)
    assert [r["id"] for r in asc] == ["a", "c", "b", "d"]
    assert [r["id"] for r in desc] == ["b", "d", "a", "c"]


def test_desc_is_reverse_of_asc_without_ties() -> None:
    records = [{"name": n} for n in ("delta", "Alpha", "charlie", "Bravo")]
    accessors = {"name": _get("name")}
    asc = apply_sort(records, SortDirective("name", "asc"), accessors)
    desc = apply_sort(records, SortDirective("name", "desc"), accessors)
    assert desc == list(reversed(asc))


def test_sort_on_unregistered_field_raises() -> None:
    with pytest.raises(UnregisteredSortFieldError) as exc:
        apply_sort(PRODUCTS, SortDirective("weight"), {"name": _get("name")})
    assert "SORT_FIELD_NOT_REGISTERED" in str(exc.value)
    assert exc.value.known == ["name"]


def test_sort_survives_accessor_errors() -> None:
    records = [{"name": "b"}, {}, {"name": "a"}]
    result = apply_sort(records, SortDirective("name"), {"name": _get("name")})
    assert result == [{}, {"name": "a"}, {"name": "b"}]


def test_pagination_of_twenty_five_records() -> None:
    records = [{"id": str(i)} for i in range(25)]
    assert total_pages(len(records), 10) == 3
    assert len(paginate(records, PageRequest(3, 10))) == 5
    assert paginate(records, PageRequest(4, 10)) == []


def test_pages_concatenate_to_the_full_sequence() -> None:
    records = [{"id": str(i)} for i in range(23)]
    pages = total_pages(len(records), 7)
    joined = []
    for number in range(1, pages + 1):
        joined.extend(paginate(records, PageRequest(number, 7)))
    assert joined == records


def test_page_number_below_one_reads_first_page() -> None:
    records = [{"id": str(i)} for i in range(5)]
    assert paginate(records, PageRequest(0, 2)) == records[:2]


def test_page_size_must_be_positive() -> None:
    with pytest.raises(ValueError):
        PageRequest(1, 0)


def test_total_pages_for_empty_set() -> None:
    assert total_pages(0, 10) == 0


def test_toggle_sort_flips_same_field_and_resets_new_field() -> None:
    first = toggle_sort(SortDirective(), "price")
    second = toggle_sort(first, "price")
    assert first == SortDirective("price", "asc")
    assert second == SortDirective("price", "desc")
    assert toggle_sort(second, "name") == SortDirective("name", "asc")
    assert toggle_sort(second, "price").direction != second.direction


def test_count_applied_filters() -> None:
    state = FilterState.default(["brand", "status"])
    assert count_applied_filters(state) == 0
    state = state.with_value("brand", "Bosch")
    assert count_applied_filters(state) == 1
    state = state.with_value("status", "Active")
    assert count_applied_filters(state) == 2
    assert count_applied_filters(state.with_search("  ")) == 2
    assert count_applied_filters(state.with_search("pad")) == 3
    assert count_applied_filters(state.reset()) == 0


def test_derive_options_dedupes_and_sorts() -> None:
    options = derive_options(PRODUCTS, _get("brand"))
    assert options == ["Bosch", "Mahle"]
    records = [{"s": "b"}, {"s": "B"}, {"s": "a"}, {"s": ""}, {}]
    assert derive_options(records, _get("s")) == ["B", "a", "b"]


def test_options_cache_recomputes_only_for_new_collection() -> None:
    cache = OptionsCache({"brand": _get("brand")})
    records = list(PRODUCTS)
    first = cache.get(records)
    cache.get(records)
    assert cache.recomputations == 1
    cache.get(list(PRODUCTS))
    assert cache.recomputations == 2
    assert first == {"brand": ["Bosch", "Mahle"]}


def test_engine_run_composes_pipeline() -> None:
    engine = TableViewEngine(
        filters=FILTERS,
        sorts={"name": lambda r: r.get("name")},
        searchable=SEARCHABLE,
    )
    state = FilterState.default(FILTERS.keys()).with_value("status", "Active")
    view = engine.run(PRODUCTS, state, SortDirective("name", "asc"), PageRequest(1, 2))
    assert view.total_filtered == 3
    assert view.total_pages == 2
    assert [r["id"] for r in view.rows] == ["5", "3"]
    assert view.applied_filters == 1
    assert view.options["status"] == ["Active", "Pending", "Rejected"]
    assert not view.is_empty


def test_non_finite_numbers_sort_as_zero() -> None:
    records = [{"id": "a", "n": 3.0}, {"id": "b", "n": float("nan")}, {"id": "c", "n": 1.0}]
    result = apply_sort(records, SortDirective("n", "asc"), {"n": _get("n")})
    assert [r["id"] for r in result] == ["b", "c", "a"]
    records.append({"id": "d", "n": float("-inf")})
    result = apply_sort(records, SortDirective("n", "desc"), {"n": _get("n")})
    assert [r["id"] for r in result] == ["a", "c", "b", "d"]


def test_boolean_column_sorts_as_text() -> None:
    records = [{"id": "a", "flag": True}, {"id": "b", "flag": False}]
    result = apply_sort(records, SortDirective("flag", "asc"), {"flag": _get("flag")})
    assert [r["id"] for r in result] == ["b", "a"]
    records.append({"id": "c", "flag": 5})
    result = apply_sort(records, SortDirective("flag", "asc"), {"flag": _get("flag")})
    assert [r["id"] for r in result] == ["c", "b", "a"]
