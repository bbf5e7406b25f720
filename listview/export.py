"""CSV and Excel exports of a filtered table."""

from __future__ import annotations

import csv
import io
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Sequence

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill

from listview.engine import Record
from listview.screens import field_at


Column = tuple[str, str]


def default_columns(rows: Sequence[Record]) -> list[Column]:
    """Top-level keys in first-seen order, used when a screen declares none."""

    seen: dict[str, None] = {}
    for row in rows:
        if isinstance(row, dict):
            for key in row:
                seen.setdefault(str(key), None)
    return [(key, key) for key in seen]


def _cell(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (dict, list, tuple)):
        return str(value)
    return value


def _row_values(row: Record, columns: Sequence[Column]) -> list[Any]:
    return [_cell(field_at(path)(row)) for path, _ in columns]


def to_csv(rows: Iterable[Record], columns: Sequence[Column]) -> str:
    """Render *rows* as CSV text with a header row of column labels."""

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow([label for _, label in columns])
    for row in rows:
        writer.writerow(["" if value is None else value for value in _row_values(row, columns)])
    return buffer.getvalue()


def to_workbook(rows: Iterable[Record], columns: Sequence[Column], *, title: str = "Export") -> Workbook:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = title[:31] or "Export"
    sheet.append([label for _, label in columns])
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="C72920", end_color="C72920", fill_type="solid")
    for cell in sheet[1]:
        cell.font = header_font
        cell.fill = header_fill
    sheet.freeze_panes = "A2"

    for row in rows:
        sheet.append(_row_values(row, columns))

    for column_cells in sheet.iter_cols(min_row=1, max_row=sheet.max_row, max_col=sheet.max_column):
        max_length = 0
        for cell in column_cells:
            if cell.value is None:
                continue
            max_length = max(max_length, len(str(cell.value)))
        if max_length <= 0:
            continue
        column_letter = column_cells[0].column_letter
        sheet.column_dimensions[column_letter].width = min(max_length + 2, 50)
    return workbook


def workbook_bytes(rows: Iterable[Record], columns: Sequence[Column], *, title: str = "Export") -> bytes:
    buffer = io.BytesIO()
    to_workbook(rows, columns, title=title).save(buffer)
    return buffer.getvalue()
