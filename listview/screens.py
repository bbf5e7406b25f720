"""Accessor wiring for the dashboard's product, order and catalogue tables."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from listview.engine import Accessor, Record, TableViewEngine
from listview.errors import UnknownScreenError


def _walk(record: Any, path: str) -> Any:
    current = record
    for part in path.split("."):
        if current is None:
            return None
        if isinstance(current, Mapping):
            current = current.get(part)
        elif isinstance(current, Sequence) and not isinstance(current, str) and part.isdigit():
            index = int(part)
            current = current[index] if index < len(current) else None
        else:
            current = getattr(current, part, None)
    return current


def field_at(path: str) -> Accessor:
    """Accessor for a dotted *path*; any missing hop yields ``None``."""

    def _get(record: Record) -> Any:
        return _walk(record, path)

    _get.__name__ = f"field_at({path})"
    return _get


def first_of(*paths: str) -> Accessor:
    """Accessor returning the first non-empty value among *paths*."""

    def _get(record: Record) -> Any:
        for path in paths:
            value = _walk(record, path)
            if value is not None and value != "":
                return value
        return None

    _get.__name__ = f"first_of({', '.join(paths)})"
    return _get


def number_at(path: str) -> Accessor:
    """Numeric accessor; text such as ``"1,299.00"`` is parsed, junk becomes ``None``."""

    def _get(record: Record) -> Any:
        value = _walk(record, path)
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, Decimal):
            return value if value.is_finite() else None
        if isinstance(value, float):
            return value if math.isfinite(value) else None
        if isinstance(value, int):
            return value
        text = str(value).replace(",", "").strip()
        if not text:
            return None
        try:
            parsed = Decimal(text)
        except InvalidOperation:
            return None
        return parsed if parsed.is_finite() else None

    _get.__name__ = f"number_at({path})"
    return _get


@dataclass(frozen=True)
class ScreenSpec:
    """Declarative configuration for one list screen."""

    name: str
    title: str
    filters: Mapping[str, Accessor]
    sorts: Mapping[str, Accessor]
    searchable: Sequence[Accessor]
    id_accessor: Accessor = field(default_factory=lambda: first_of("id", "_id"))
    tab_accessor: Accessor | None = None
    tabs: Sequence[str] = ()
    default_sort: str | None = None
    default_direction: str = "asc"
    columns: Sequence[tuple[str, str]] = ()

    def engine(self) -> TableViewEngine:
        return TableViewEngine(
            filters=self.filters,
            sorts=self.sorts,
            searchable=self.searchable,
            tab_accessor=self.tab_accessor,
        )

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "title": self.title,
            "filters": list(self.filters),
            "sorts": list(self.sorts),
            "tabs": list(self.tabs),
            "default_sort": self.default_sort,
            "default_direction": self.default_direction,
        }


PRODUCT_TABS = ("Created", "Pending", "Approved", "Rejected")

PRODUCTS = ScreenSpec(
    name="products",
    title="Product Management",
    filters={
        "category": first_of("category.category_name", "category"),
        "brand": first_of("brand.brand_name", "brand"),
        "subCategory": first_of("sub_category.subcategory_name", "subCategory"),
    },
    sorts={
        "product_name": first_of("product_name", "name"),
        "mrp_with_gst": number_at("mrp_with_gst"),
        "created_at": field_at("created_at"),
    },
    searchable=(
        first_of("product_name", "name"),
        first_of("category.category_name", "category"),
        first_of("brand.brand_name", "brand"),
        first_of("sub_category.subcategory_name", "subCategory"),
        first_of("product_type", "productType"),
        field_at("sku_code"),
    ),
    tab_accessor=first_of("live_status", "liveStatus"),
    tabs=PRODUCT_TABS,
    default_sort="created_at",
    default_direction="desc",
    columns=(
        ("id", "ID"),
        ("sku_code", "SKU"),
        ("product_name", "Product Name"),
        ("brand.brand_name", "Brand"),
        ("category.category_name", "Category"),
        ("sub_category.subcategory_name", "Sub Category"),
        ("mrp_with_gst", "MRP (incl. GST)"),
        ("live_status", "Status"),
        ("created_at", "Created"),
    ),
)

ORDERS = ScreenSpec(
    name="orders",
    title="Order Management",
    filters={
        "status": first_of("status", "orderStatus"),
        "payment": first_of("payment", "paymentType"),
    },
    sorts={
        "orderDate": first_of("orderDate", "createdAt"),
        "amount": number_at("amount"),
        "customer": first_of("customer", "customerDetails.name"),
    },
    searchable=(
        first_of("orderId", "id"),
        first_of("customer", "customerDetails.name"),
        first_of("number", "customerDetails.phone"),
    ),
    default_sort="orderDate",
    default_direction="desc",
    columns=(
        ("orderId", "Order ID"),
        ("orderDate", "Date"),
        ("customer", "Customer"),
        ("number", "Phone"),
        ("payment", "Payment"),
        ("amount", "Amount"),
        ("status", "Status"),
    ),
)

CATALOGUES = ScreenSpec(
    name="catalogues",
    title="Catalogues",
    filters={
        "brand": first_of("brand.brand_name", "brand"),
        "model": first_of("model.model_name", "model"),
        "variant": first_of("variant.variant_name", "variant"),
    },
    sorts={
        "name": first_of("catalogue_name", "name"),
        "product_count": number_at("product_count"),
    },
    searchable=(
        first_of("catalogue_name", "name"),
        first_of("catalogue_description", "description"),
    ),
    default_sort="name",
    columns=(
        ("id", "ID"),
        ("catalogue_name", "Name"),
        ("brand.brand_name", "Brand"),
        ("model.model_name", "Model"),
        ("variant.variant_name", "Variant"),
        ("product_count", "Products"),
    ),
)

SCREENS: dict[str, ScreenSpec] = {spec.name: spec for spec in (PRODUCTS, ORDERS, CATALOGUES)}


def get_screen(name: str) -> ScreenSpec:
    spec = SCREENS.get((name or "").strip().lower())
    if spec is None:
        raise UnknownScreenError(name)
    return spec
