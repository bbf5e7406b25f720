"""Dependent dropdown selections (brand -> category -> model -> variant)."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping, Sequence

from listview.errors import CascadeLevelError


DEFAULT_LEVELS = ("brand", "category", "model", "variant")


def _frozen(data: Mapping[str, object]) -> Mapping[str, object]:
    return MappingProxyType(dict(data))


@dataclass(frozen=True)
class CascadeState:
    """Immutable snapshot of selections and loaded option lists per level.

    A level absent from ``options`` has not been fetched yet.
    """

    levels: Sequence[str] = DEFAULT_LEVELS
    selected: Mapping[str, str] = field(default_factory=lambda: _frozen({}))
    options: Mapping[str, tuple[str, ...]] = field(default_factory=lambda: _frozen({}))

    def _index(self, level: str) -> int:
        try:
            return list(self.levels).index(level)
        except ValueError as exc:
            raise CascadeLevelError(level) from exc

    def descendants(self, level: str) -> tuple[str, ...]:
        return tuple(self.levels[self._index(level) + 1 :])

    def parent(self, level: str) -> str | None:
        index = self._index(level)
        return self.levels[index - 1] if index > 0 else None

    def value(self, level: str) -> str | None:
        self._index(level)
        return self.selected.get(level)


def select(state: CascadeState, level: str, value: str | None) -> CascadeState:
    """Set *level* to *value*, clearing every descendant selection and option list."""

    cleared = set(state.descendants(level))
    selected = {k: v for k, v in state.selected.items() if k not in cleared and k != level}
    if value:
        selected[level] = value
    options = {k: v for k, v in state.options.items() if k not in cleared}
    return replace(state, selected=_frozen(selected), options=_frozen(options))


def set_options(state: CascadeState, level: str, values: Sequence[str]) -> CascadeState:
    """Record the fetched option list for *level*.

    A current selection that is no longer offered is dropped along with
    its descendants.
    """

    state._index(level)
    options = dict(state.options)
    options[level] = tuple(values)
    updated = replace(state, options=_frozen(options))
    current = updated.selected.get(level)
    if current is not None and current not in options[level]:
        updated = select(updated, level, None)
    return updated


def pending_fetch(state: CascadeState) -> str | None:
    """Next level whose options must be fetched, or ``None`` when settled."""

    for level in state.levels:
        parent = state.parent(level)
        if parent is not None and parent not in state.selected:
            return None
        if level not in state.options:
            return level
    return None


def fetch_params(state: CascadeState, level: str) -> dict[str, str]:
    """Ancestor selections to send with the option request for *level*."""

    index = state._index(level)
    return {
        ancestor: state.selected[ancestor]
        for ancestor in state.levels[:index]
        if ancestor in state.selected
    }
