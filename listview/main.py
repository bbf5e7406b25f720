"""Command-line entry point: serve the list views or export a table."""

from __future__ import annotations

import argparse
import json
import os
from pathlib import Path
from typing import Any, Iterable

import uvicorn

from listview.config import load_settings
from listview.engine import ALL, FilterState, SortDirective
from listview.errors import ListViewError
from listview.export import default_columns, to_csv, workbook_bytes
from listview.logging_config import get_logger
from listview.screens import SCREENS, get_screen
from listview.sources import JsonFileSource, unwrap_records


LOGGER = get_logger(__name__)


def _parse_filter(text: str) -> tuple[str, str]:
    key, sep, value = text.partition("=")
    if not sep or not key.strip():
        raise argparse.ArgumentTypeError(f"Expected KEY=VALUE, got {text!r}")
    return key.strip(), value.strip()


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Dealer dashboard list views.")
    parser.add_argument("--config", type=str, default=None, help="Path to a config.yml file.")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP service.")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")))

    export = sub.add_parser("export", help="Export a filtered, sorted table.")
    export.add_argument("screen", choices=sorted(SCREENS))
    export.add_argument(
        "--input",
        type=Path,
        default=None,
        help="JSON record file (defaults to <records_dir>/<screen>.json).",
    )
    export.add_argument("--output", type=Path, required=True, help="Target .csv or .xlsx path.")
    export.add_argument("--tab", default=None)
    export.add_argument("--search", default="")
    export.add_argument(
        "--filter",
        dest="filters",
        action="append",
        type=_parse_filter,
        default=[],
        help="Exact-match filter as KEY=VALUE; repeatable.",
    )
    export.add_argument("--sort", default=None, help="Sort field key.")
    export.add_argument("--direction", choices=("asc", "desc"), default="asc")
    return parser.parse_args(list(argv) if argv is not None else None)


def _load_input(path: Path) -> list[dict[str, Any]]:
    if not path.exists():
        raise FileNotFoundError(f"Record file not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        return unwrap_records(json.load(handle))


def run_export(args: argparse.Namespace) -> int:
    settings = load_settings(args.config)
    spec = get_screen(args.screen)
    if args.input is not None:
        records = _load_input(args.input)
    else:
        records = JsonFileSource(settings.records_dir).load(spec.name)

    state = FilterState.default(spec.filters.keys(), tab=args.tab).with_search(args.search)
    for key, value in args.filters:
        if key not in spec.filters:
            LOGGER.warning("Ignoring unknown filter %s for screen %s", key, spec.name)
            continue
        state = state.with_value(key, value or ALL)
    directive = SortDirective(field=args.sort, direction=args.direction)
    rows = spec.engine().ordered(records, state, directive)

    columns = list(spec.columns) or default_columns(rows)
    output: Path = args.output
    output.parent.mkdir(parents=True, exist_ok=True)
    if output.suffix.lower() == ".xlsx":
        output.write_bytes(workbook_bytes(rows, columns, title=spec.title))
    else:
        output.write_text(to_csv(rows, columns), encoding="utf-8")
    LOGGER.info(
        "Exported %d of %d %s records -> %s", len(rows), len(records), spec.name, output
    )
    return len(rows)


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)
    if args.config:
        os.environ["LISTVIEW_CONFIG"] = args.config
    if args.command == "serve":
        uvicorn.run("listview.dashboard:app", host=args.host, port=args.port, reload=False)
        return
    try:
        run_export(args)
    except ListViewError:
        LOGGER.exception("Export failed")
        raise SystemExit(2)


if __name__ == "__main__":
    main()
