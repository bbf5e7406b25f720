"""FastAPI service exposing the dashboard list screens."""

from __future__ import annotations

import os
from io import BytesIO
from typing import Any, Literal

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from pydantic import BaseModel, Field, field_validator

from listview.config import Settings, load_settings
from listview.engine import (
    ALL,
    FilterState,
    PageRequest,
    Record,
    SortDirective,
    TableView,
    TableViewEngine,
    toggle_sort,
)
from listview.errors import UnknownScreenError, UnregisteredSortFieldError
from listview.export import default_columns, to_csv, workbook_bytes
from listview.logging_config import get_logger
from listview.pagination import item_range, page_window
from listview.screens import SCREENS, ScreenSpec, get_screen
from listview.sources import HttpSource, JsonFileSource


LOGGER = get_logger(__name__)

Direction = Literal["asc", "desc"]

settings: Settings = load_settings()
app = FastAPI(title="Dealer Dashboard List Views")

_RECORDS: dict[str, list[Record]] = {}
_ENGINES: dict[str, TableViewEngine] = {}


class RecordsPayload(BaseModel):
    records: list[dict[str, Any]] = Field(..., description="Full replacement record list.")

    @field_validator("records")
    @classmethod
    def _unique_ids(cls, value: list[dict[str, Any]]) -> list[dict[str, Any]]:
        seen: set[str] = set()
        for record in value:
            record_id = record.get("id", record.get("_id"))
            if record_id is None:
                continue
            key = str(record_id)
            if key in seen:
                raise ValueError(f"duplicate record id: {key}")
            seen.add(key)
        return value


class SortPayload(BaseModel):
    field: str | None = None
    direction: Direction = "asc"


class TablePayload(BaseModel):
    screen: str
    rows: list[dict[str, Any]]
    total_filtered: int
    total_pages: int
    page: int
    page_size: int
    applied_filters: int
    options: dict[str, list[str]]
    filters: dict[str, Any]
    search: str
    tab: str | None
    sort: SortPayload
    page_window: list[int | str]
    item_range: tuple[int, int]
    empty_message: str | None = None


def _source():
    if settings.source_url:
        return HttpSource(
            settings.source_url,
            timeout=settings.request_timeout,
            token=os.getenv("LISTVIEW_SOURCE_TOKEN"),
        )
    return JsonFileSource(settings.records_dir)


def _screen_or_404(name: str) -> ScreenSpec:
    try:
        return get_screen(name)
    except UnknownScreenError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


def _engine_for(spec: ScreenSpec) -> TableViewEngine:
    if spec.name not in _ENGINES:
        _ENGINES[spec.name] = spec.engine()
    return _ENGINES[spec.name]


def _records_for(spec: ScreenSpec) -> list[Record]:
    if spec.name not in _RECORDS:
        _RECORDS[spec.name] = _source().load(spec.name)
    return _RECORDS[spec.name]


def replace_records(screen: str, records: list[Record]) -> None:
    """Swap a screen's whole collection."""

    _RECORDS[get_screen(screen).name] = list(records)


def _filter_state(spec: ScreenSpec, request: Request, tab: str | None, search: str | None) -> FilterState:
    state = FilterState.default(spec.filters.keys(), tab=tab or None).with_search(search)
    for key in spec.filters:
        value = request.query_params.get(key)
        if value is not None and value.strip():
            state = state.with_value(key, value.strip())
    return state


def _sort_directive(
    spec: ScreenSpec, sort: str | None, direction: Direction | None, toggle: str | None
) -> SortDirective:
    if sort:
        current = SortDirective(field=sort, direction=direction or "asc")
    else:
        current = SortDirective(
            field=spec.default_sort,
            direction=direction or ("desc" if spec.default_direction == "desc" else "asc"),
        )
    if toggle:
        current = toggle_sort(current, toggle)
    if current.field is not None and current.field not in spec.sorts:
        error = UnregisteredSortFieldError(current.field, list(spec.sorts))
        LOGGER.error("Rejected sort request: %s", error)
        raise HTTPException(status_code=400, detail=str(error))
    return current


def _empty_message(spec: ScreenSpec, view: TableView) -> str | None:
    if not view.is_empty:
        return None
    if view.applied_filters:
        return f"No {spec.name} match your current filters."
    return f"No {spec.name} found."


def _serialize_view(spec: ScreenSpec, view: TableView, state: FilterState) -> dict[str, Any]:
    payload = TablePayload(
        screen=spec.name,
        rows=[dict(row) for row in view.rows],
        total_filtered=view.total_filtered,
        total_pages=view.total_pages,
        page=view.page_number,
        page_size=view.page_size,
        applied_filters=view.applied_filters,
        options=view.options,
        filters={key: state.values.get(key, ALL) for key in spec.filters},
        search=state.search,
        tab=state.tab,
        sort=SortPayload(field=view.sort.field, direction=view.sort.direction),
        page_window=page_window(view.page_number, view.total_pages),
        item_range=item_range(view.page_number, view.page_size, view.total_filtered),
        empty_message=_empty_message(spec, view),
    )
    return payload.model_dump()


@app.exception_handler(404)
async def not_found_handler(request: Request, exc: HTTPException) -> PlainTextResponse:
    detail = exc.detail if isinstance(exc.detail, str) else "Not Found"
    return PlainTextResponse(detail, status_code=404)


@app.get("/healthz")
def healthcheck() -> dict[str, Any]:
    return {
        "status": "ok",
        "screens": sorted(SCREENS),
        "loaded": {name: len(rows) for name, rows in _RECORDS.items()},
    }


@app.get("/api/screens")
def list_screens() -> JSONResponse:
    """Describe the registered list screens."""

    return JSONResponse(content={"screens": [spec.describe() for spec in SCREENS.values()]})


@app.get("/api/{screen}")
def table_view(
    screen: str,
    request: Request,
    tab: str | None = Query(None, description="Tab partition value."),
    search: str | None = Query(None, description="Free-text search."),
    sort: str | None = Query(None, description="Sort field key."),
    direction: Direction | None = Query(None, description="Sort direction."),
    toggle: str | None = Query(None, description="Field to toggle against the current sort."),
    page: int = Query(1, description="1-based page number."),
) -> JSONResponse:
    """Return one page of a screen with its facets and counts."""

    spec = _screen_or_404(screen)
    records = _records_for(spec)
    state = _filter_state(spec, request, tab, search)
    directive = _sort_directive(spec, sort, direction, toggle)
    view = _engine_for(spec).run(
        records,
        state,
        directive,
        PageRequest(page_number=max(page, 1), page_size=settings.page_size),
    )
    LOGGER.info(
        "Table payload | screen=%s filtered=%s page=%s/%s",
        spec.name,
        view.total_filtered,
        view.page_number,
        view.total_pages,
    )
    return JSONResponse(content=_serialize_view(spec, view, state))


@app.post("/api/{screen}/records")
def put_records(screen: str, payload: RecordsPayload) -> dict[str, Any]:
    """Replace a screen's record collection atomically."""

    spec = _screen_or_404(screen)
    replace_records(spec.name, payload.records)
    LOGGER.info("Replaced records | screen=%s count=%s", spec.name, len(payload.records))
    return {"ok": True, "screen": spec.name, "count": len(payload.records)}


def _export_rows(
    spec: ScreenSpec,
    request: Request,
    tab: str | None,
    search: str | None,
    sort: str | None,
    direction: Direction | None,
) -> list[Record]:
    state = _filter_state(spec, request, tab, search)
    directive = _sort_directive(spec, sort, direction, None)
    return _engine_for(spec).ordered(_records_for(spec), state, directive)


@app.get("/api/{screen}/export.csv")
def export_csv(
    screen: str,
    request: Request,
    tab: str | None = Query(None),
    search: str | None = Query(None),
    sort: str | None = Query(None),
    direction: Direction | None = Query(None),
) -> StreamingResponse:
    """Every filtered and sorted record as CSV."""

    spec = _screen_or_404(screen)
    rows = _export_rows(spec, request, tab, search, sort, direction)
    columns = list(spec.columns) or default_columns(rows)
    text = to_csv(rows, columns)
    LOGGER.info("CSV export | screen=%s rows=%s", spec.name, len(rows))
    return StreamingResponse(
        BytesIO(text.encode("utf-8")),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename={spec.name}.csv"},
    )


@app.get("/api/{screen}/export.xlsx")
def export_excel(
    screen: str,
    request: Request,
    tab: str | None = Query(None),
    search: str | None = Query(None),
    sort: str | None = Query(None),
    direction: Direction | None = Query(None),
) -> StreamingResponse:
    """Every filtered and sorted record as an Excel workbook."""

    spec = _screen_or_404(screen)
    rows = _export_rows(spec, request, tab, search, sort, direction)
    columns = list(spec.columns) or default_columns(rows)
    data = workbook_bytes(rows, columns, title=spec.title)
    LOGGER.info("Excel export | screen=%s rows=%s", spec.name, len(rows))
    return StreamingResponse(
        BytesIO(data),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename={spec.name}.xlsx"},
    )


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8000"))
    uvicorn.run("listview.dashboard:app", host="0.0.0.0", port=port, reload=False)
