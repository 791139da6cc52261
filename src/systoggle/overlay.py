from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from .models import SCOPES, Scope
from .registry import Registry


@dataclass(slots=True, frozen=True)
class CategoryView:
    label: str
    scope: Scope
    matches: tuple[str, ...]
    collapsed: bool = False

    @property
    def count(self) -> int:
        return len(self.matches)

    @property
    def shown(self) -> tuple[str, ...]:
        # collapsed categories keep their count but hide members
        return () if self.collapsed else self.matches


@dataclass(slots=True, frozen=True)
class Row:
    kind: Literal["category", "unit"]
    label: str
    scope: Scope
    name: str | None = None


def visible(registry: Registry, query: str, scope: Scope | None = None) -> list[CategoryView]:
    """Categories narrowed to unit names containing `query`.

    With no `scope` every scope is covered, system first. Matching is
    case-insensitive on the unit name only. Categories left without a
    match are omitted. The registry is not modified.
    """
    q = query.lower()
    views: list[CategoryView] = []
    for s in SCOPES if scope is None else (scope,):
        for cat in registry.categories(s):
            if q:
                matches = tuple(n for n in cat.members if q in n.lower())
            else:
                matches = cat.members
            if not matches:
                continue
            views.append(CategoryView(cat.label, s, matches, cat.collapsed))
    return views


def rows(views: list[CategoryView]) -> list[Row]:
    out: list[Row] = []
    for v in views:
        out.append(Row("category", v.label, v.scope))
        out.extend(Row("unit", v.label, v.scope, name) for name in v.shown)
    return out
