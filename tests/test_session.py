from __future__ import annotations

import base64
import json
import threading

import pytest

from listview.errors import UnregisteredSortFieldError
from listview.identity import IdentityResolver
from listview.screens import ORDERS, PRODUCTS
from listview.session import ListViewSession


def _orders(count: int) -> list[dict]:
    statuses = ("Confirmed", "Delivered", "Cancelled")
    return [
        {
            "id": f"o{i}",
            "orderId": f"ORD-{1000 + i}",
            "customer": f"Customer {i:02d}",
            "status": statuses[i % 3],
            "payment": "COD" if i % 2 else "Prepaid",
            "amount": str(100 + i),
            "orderDate": f"2024-01-{i + 1:02d}",
        }
        for i in range(count)
    ]


@pytest.fixture()
def session():
    view = ListViewSession(ORDERS, _orders(25), page_size=10, search_debounce_ms=0)
    yield view
    view.close()


def test_default_view_uses_screen_sort(session) -> None:
    view = session.view()
    assert view.total_filtered == 25
    assert view.total_pages == 3
    assert view.sort.field == "orderDate"
    assert view.rows[0]["orderId"] == "ORD-1024"


def test_filter_change_resets_page_and_selection(session) -> None:
    session.on_page_change(3)
    session.on_selection_toggle("o4")
    session.on_filter_change("status", "Delivered")
    assert session.page_number == 1
    assert session.selection == set()
    assert {row["status"] for row in session.view().rows} == {"Delivered"}


def test_page_change_clears_selection(session) -> None:
    session.on_select_all_on_page()
    assert len(session.selection) == 10
    session.on_page_change(2)
    assert session.selection == set()
    assert session.page_number == 2


def test_page_number_is_not_clamped_on_the_upper_bound(session) -> None:
    session.on_page_change(9)
    view = session.view()
    assert view.rows == []
    assert view.total_pages == 3


def test_select_all_toggles(session) -> None:
    selected = session.on_select_all_on_page()
    assert selected == set(session.visible_ids())
    assert session.on_select_all_on_page() == set()


def test_selection_toggle_and_selected_records(session) -> None:
    first_id = session.visible_ids()[0]
    assert session.on_selection_toggle(first_id) is True
    assert [row["id"] for row in session.selected_records()] == [first_id]
    assert session.on_selection_toggle(first_id) is False
    assert session.selected_records() == []


def test_search_commit_resets_navigation(session) -> None:
    session.on_page_change(2)
    session.on_search_input("ord-101")
    assert session.filter_state.search == "ord-101"
    assert session.page_number == 1
    assert session.view().total_filtered == 10


def test_sort_toggle(session) -> None:
    assert session.on_sort_toggle("amount").direction == "asc"
    assert session.view().rows[0]["amount"] == "100"
    assert session.on_sort_toggle("amount").direction == "desc"
    assert session.view().rows[0]["amount"] == "124"


def test_sort_toggle_on_unknown_field_raises(session) -> None:
    with pytest.raises(UnregisteredSortFieldError):
        session.on_sort_toggle("weight")


def test_panel_apply_updates_session(session) -> None:
    session.on_page_change(2)
    session.panel.open()
    session.panel.set("payment", "COD")
    session.panel.apply()
    assert session.filter_state.values["payment"] == "COD"
    assert session.page_number == 1
    assert session.view().applied_filters == 1


def test_panel_close_keeps_committed_filters(session) -> None:
    session.on_filter_change("status", "Cancelled")
    session.panel.open()
    session.panel.set("status", "Delivered")
    session.panel.close()
    assert session.filter_state.values["status"] == "Cancelled"
    assert session.panel.open().values["status"] == "Cancelled"


def test_replace_records_resets_navigation(session) -> None:
    session.on_page_change(2)
    session.replace_records(_orders(3))
    assert session.page_number == 1
    assert session.view().total_filtered == 3


def test_options_follow_the_record_collection(session) -> None:
    options = session.view().options
    assert options["status"] == ["Cancelled", "Confirmed", "Delivered"]
    assert options["payment"] == ["COD", "Prepaid"]


def test_tab_change_partitions_products() -> None:
    records = [
        {"id": "p1", "product_name": "Pad", "live_status": "Approved"},
        {"id": "p2", "product_name": "Disc", "live_status": "Pending"},
    ]
    view = ListViewSession(PRODUCTS, records, search_debounce_ms=0)
    view.on_tab_change("Pending")
    assert [row["id"] for row in view.view().rows] == ["p2"]
    view.on_tab_change("all")
    assert view.view().total_filtered == 2
    view.close()


def test_closed_session_ignores_late_search() -> None:
    view = ListViewSession(ORDERS, _orders(5), search_debounce_ms=10_000)
    view.on_search_input("ORD-1001")
    view.close()
    view.on_search_commit("ORD-1001")
    assert view.filter_state.search == ""


def test_dealer_id_resolved_once_per_session() -> None:
    body = base64.urlsafe_b64encode(json.dumps({"dealerId": "D-42"}).encode()).decode().rstrip("=")
    identity = IdentityResolver(f"header.{body}.sig")
    view = ListViewSession(ORDERS, [], identity=identity)
    assert view.dealer_id == "D-42"
    assert ListViewSession(ORDERS, []).dealer_id is None


def test_search_committed_while_panel_open_survives_apply(session) -> None:
    session.panel.open()
    session.on_search_commit("zed")
    session.panel.set("status", "Delivered")
    session.panel.apply()
    assert session.filter_state.search == "zed"
    assert session.filter_state.values["status"] == "Delivered"


def test_debounced_commit_waits_for_session_lock(session) -> None:
    session.on_page_change(2)
    worker = threading.Thread(target=session.on_search_commit, args=("Customer 1",))
    with session._lock:
        worker.start()
        worker.join(timeout=0.05)
        assert worker.is_alive()
        assert session.filter_state.search == ""
        assert session.page_number == 2
    worker.join(timeout=5)
    assert not worker.is_alive()
    assert session.filter_state.search == "Customer 1"
    assert session.page_number == 1
