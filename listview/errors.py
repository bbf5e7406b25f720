"""Exception types raised by the listview package."""

from __future__ import annotations


class ListViewError(RuntimeError):
    """Base class for listview failures."""


class UnregisteredSortFieldError(ListViewError):
    """Raised when a sort is requested on a field with no accessor."""

    def __init__(self, field: str, known: list[str] | None = None) -> None:
        self.field = field
        self.known = sorted(known or [])
        hint = f" (known: {', '.join(self.known)})" if self.known else ""
        super().__init__(f"SORT_FIELD_NOT_REGISTERED: {field!r}{hint}")


class UnknownScreenError(ListViewError):
    """Raised when a screen name has no registered spec."""

    def __init__(self, screen: str) -> None:
        self.screen = screen
        super().__init__(f"Unknown screen: {screen!r}")


class CascadeLevelError(ListViewError):
    """Raised when a dropdown selection targets an unknown cascade level."""

    def __init__(self, level: str) -> None:
        self.level = level
        super().__init__(f"Unknown cascade level: {level!r}")


class ConfigError(ListViewError):
    """Raised for invalid configuration values."""
