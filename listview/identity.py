"""Session identity recovered from the dashboard's bearer token."""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any

from listview.logging_config import get_logger


LOGGER = get_logger(__name__)
DEALER_ID_CLAIMS = ("dealerId", "dealer_id", "id", "sub")


def decode_claims(token: str | None) -> dict[str, Any]:
    """Return the JWT payload claims without verifying the signature.

    Signature checks belong to the backend; the dashboard only needs the ids.
    Anything malformed decodes to an empty mapping.
    """

    if not token:
        return {}
    text = token.strip()
    if text.lower().startswith("bearer "):
        text = text[7:].strip()
    parts = text.split(".")
    if len(parts) != 3:
        return {}
    segment = parts[1]
    segment += "=" * (-len(segment) % 4)
    try:
        raw = base64.urlsafe_b64decode(segment.encode("ascii"))
        payload = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError):
        LOGGER.warning("Discarding malformed session token")
        return {}
    return payload if isinstance(payload, dict) else {}


class IdentityResolver:
    """Decodes the token once and serves ids for the rest of the session."""

    def __init__(self, token: str | None) -> None:
        self._claims = decode_claims(token)

    @property
    def claims(self) -> dict[str, Any]:
        return dict(self._claims)

    @property
    def dealer_id(self) -> str | None:
        for key in DEALER_ID_CLAIMS:
            value = self._claims.get(key)
            if value is not None and str(value).strip():
                return str(value)
        return None

    @property
    def role(self) -> str | None:
        value = self._claims.get("role")
        return str(value) if value else None

    def __bool__(self) -> bool:
        return bool(self._claims)
