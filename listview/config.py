"""Settings loader: YAML file, optional ``.env`` and environment overrides."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from listview.errors import ConfigError
from listview.logging_config import get_logger


LOGGER = get_logger(__name__)
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "config.yml"


@dataclass(frozen=True)
class Settings:
    page_size: int = 10
    search_debounce_ms: int = 500
    records_dir: Path = Path("data")
    source_url: str | None = None
    request_timeout: float = 10.0


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        LOGGER.info("Config file %s not found; using defaults", path)
        return {}
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config root must be a mapping: {path}")
    return data


def _as_positive_int(name: str, value: Any) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from exc
    if parsed < 1:
        raise ConfigError(f"{name} must be >= 1, got {parsed}")
    return parsed


def _as_non_negative_int(name: str, value: Any) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from exc
    if parsed < 0:
        raise ConfigError(f"{name} must be >= 0, got {parsed}")
    return parsed


def _as_timeout(value: Any) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"request_timeout must be a number, got {value!r}") from exc
    if parsed <= 0:
        raise ConfigError(f"request_timeout must be > 0, got {parsed}")
    return parsed


def _resolve_path(value: str | Path, base: Path) -> Path:
    path = Path(value)
    if not path.is_absolute():
        path = base / path
    return path


def load_settings(path: str | Path | None = None) -> Settings:
    """Build :class:`Settings` from *path* (or ``LISTVIEW_CONFIG``) plus env overrides."""

    load_dotenv()
    config_path = Path(path or os.getenv("LISTVIEW_CONFIG") or DEFAULT_CONFIG_PATH)
    data = _load_yaml(config_path)

    page_size = os.getenv("LISTVIEW_PAGE_SIZE") or data.get("page_size", Settings.page_size)
    debounce = os.getenv("LISTVIEW_SEARCH_DEBOUNCE_MS") or data.get(
        "search_debounce_ms", Settings.search_debounce_ms
    )
    records_dir = os.getenv("LISTVIEW_RECORDS_DIR") or data.get("records_dir") or "data"
    source_url = os.getenv("LISTVIEW_SOURCE_URL") or data.get("source_url") or None
    timeout = os.getenv("LISTVIEW_REQUEST_TIMEOUT") or data.get(
        "request_timeout", Settings.request_timeout
    )

    settings = Settings(
        page_size=_as_positive_int("page_size", page_size),
        search_debounce_ms=_as_non_negative_int("search_debounce_ms", debounce),
        records_dir=_resolve_path(records_dir, Path.cwd()),
        source_url=str(source_url).rstrip("/") if source_url else None,
        request_timeout=_as_timeout(timeout),
    )
    LOGGER.debug(
        "Settings loaded",
        extra={"config_path": str(config_path), "page_size": settings.page_size},
    )
    return settings
