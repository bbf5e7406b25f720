"""Producers of whole record collections for a screen."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import requests

from listview.logging_config import get_logger


LOGGER = get_logger(__name__)
_ENVELOPE_KEYS = ("data", "records", "items", "products", "orders")


def unwrap_records(payload: Any) -> list[dict[str, Any]]:
    """Pull the record list out of a bare list or a ``{"data": [...]}`` envelope."""

    if isinstance(payload, list):
        return [row for row in payload if isinstance(row, dict)]
    if isinstance(payload, dict):
        for key in _ENVELOPE_KEYS:
            inner = payload.get(key)
            if isinstance(inner, (list, dict)):
                rows = unwrap_records(inner)
                if rows:
                    return rows
    return []


class JsonFileSource:
    """Reads ``<base_dir>/<screen>.json`` snapshots."""

    def __init__(self, base_dir: Path) -> None:
        self.base_dir = Path(base_dir)

    def path_for(self, screen: str) -> Path:
        safe = "".join(ch for ch in screen if ch.isalnum() or ch in "-_")
        return self.base_dir / f"{safe or 'unknown'}.json"

    def load(self, screen: str) -> list[dict[str, Any]]:
        target = self.path_for(screen)
        try:
            payload = json.loads(target.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as exc:
            LOGGER.warning("Unreadable record snapshot %s: %s", target, exc)
            return []
        return unwrap_records(payload)

    def store(self, screen: str, rows: list[dict[str, Any]]) -> Path:
        target = self.path_for(screen)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(rows, ensure_ascii=False, default=str), encoding="utf-8")
        return target


class HttpSource:
    """Fetches ``<base_url>/<screen>`` from the upstream dashboard API."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        token: str | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.token = token
        self._session = session or requests.Session()

    def load(self, screen: str) -> list[dict[str, Any]]:
        url = f"{self.base_url}/{screen}"
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            response = self._session.get(url, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as exc:
            LOGGER.warning("Record fetch failed for %s: %s", url, exc)
            return []
        except ValueError as exc:
            LOGGER.warning("Record fetch returned invalid JSON for %s: %s", url, exc)
            return []
        rows = unwrap_records(payload)
        LOGGER.info("Fetched records | screen=%s count=%s", screen, len(rows))
        return rows
