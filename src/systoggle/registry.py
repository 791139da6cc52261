from __future__ import annotations

import logging
from typing import Awaitable, Callable, Iterable

from .categories import categorize, category_rank
from .descriptions import describe
from .errors import QueryError
from .models import SCOPES, Category, RawUnitStatus, Scope, UnitRecord, parse_unit_state, project


logger = logging.getLogger(__name__)

QueryFn = Callable[[Scope], Awaitable[list[RawUnitStatus]]]


def build_records(scope: Scope, raw: Iterable[RawUnitStatus]) -> list[UnitRecord]:
    records: list[UnitRecord] = []
    seen: set[str] = set()
    for r in raw:
        state = parse_unit_state(r.state)
        if state is None or r.name in seen:
            continue
        seen.add(r.name)
        records.append(
            UnitRecord(
                name=r.name,
                scope=scope,
                actual_state=state,
                active=r.active,
                desired_state=project(state),
                description=describe(r.name),
            )
        )
    records.sort(key=lambda u: u.name)
    return records


async def load(scope: Scope, query: QueryFn) -> list[UnitRecord]:
    """Query one scope and keep only units that can be enabled or disabled."""
    try:
        raw = await query(scope)
    except QueryError:
        raise
    except Exception as e:
        raise QueryError(f"listing {scope} units failed: {e}") from e
    records = build_records(scope, raw)
    logger.debug("loaded %d actionable %s units (%d listed)", len(records), scope, len(raw))
    return records


async def load_all(query: QueryFn, scopes: Iterable[Scope] = SCOPES) -> list[UnitRecord]:
    units: list[UnitRecord] = []
    for scope in scopes:
        units.extend(await load(scope, query))
    return units


class Registry:
    """Snapshot of every discovered unit, owned by the interface loop.

    A refresh never patches a snapshot; it builds the next one via
    reconcile(). Only desired_state (toggle) and the collapsed labels change
    in place.
    """

    def __init__(
        self,
        units: Iterable[UnitRecord] = (),
        collapsed: Iterable[str] = (),
        version: int = 0,
    ) -> None:
        self._units: dict[tuple[Scope, str], UnitRecord] = {}
        for u in units:
            if u.key in self._units:
                raise ValueError(f"duplicate unit {u.scope}/{u.name}")
            self._units[u.key] = u
        self.collapsed: set[str] = set(collapsed)
        self.version = version
        self._categories = self._group()

    def __len__(self) -> int:
        return len(self._units)

    def __iter__(self):
        return iter(self._units.values())

    def _group(self) -> dict[Scope, dict[str, list[str]]]:
        groups: dict[Scope, dict[str, list[str]]] = {s: {} for s in SCOPES}
        for u in self._units.values():
            groups[u.scope].setdefault(categorize(u.name), []).append(u.name)
        for by_label in groups.values():
            for names in by_label.values():
                names.sort()
        return groups

    def units(self, scope: Scope | None = None) -> list[UnitRecord]:
        if scope is None:
            return list(self._units.values())
        return [u for u in self._units.values() if u.scope == scope]

    def get(self, name: str, scope: Scope | None = None) -> UnitRecord | None:
        if scope is not None:
            return self._units.get((scope, name))
        for s in SCOPES:
            u = self._units.get((s, name))
            if u is not None:
                return u
        return None

    def categories(self, scope: Scope) -> list[Category]:
        by_label = self._categories[scope]
        labels = sorted(by_label, key=category_rank)
        return [Category(label, tuple(by_label[label]), label in self.collapsed) for label in labels]

    def toggle(self, name: str, scope: Scope | None = None) -> bool:
        """Flip desired_state of one unit. Returns False when the unit is unknown."""
        u = self.get(name, scope)
        if u is None:
            logger.debug("toggle ignored, unknown unit %s", name)
            return False
        u.desired_state = "disabled" if u.desired_state == "enabled" else "enabled"
        return True

    def set_collapsed(self, label: str, collapsed: bool) -> None:
        if collapsed:
            self.collapsed.add(label)
        else:
            self.collapsed.discard(label)

    def toggle_collapsed(self, label: str) -> bool:
        self.set_collapsed(label, label not in self.collapsed)
        return label in self.collapsed

    def reconcile(
        self,
        fresh: Iterable[UnitRecord],
        applied: Iterable[tuple[Scope, str]] = (),
    ) -> "Registry":
        """Next snapshot built from freshly loaded units.

        Units in `applied` take their fresh state. Any other unit that is
        dirty in this snapshot keeps its desired_state so the pending edit
        survives the refresh; units that vanished are dropped.
        """
        applied = set(applied)
        units: list[UnitRecord] = []
        for u in fresh:
            prev = self._units.get(u.key)
            if prev is not None and prev.dirty and u.key not in applied:
                u.desired_state = prev.desired_state
            units.append(u)
        return Registry(units, collapsed=self.collapsed, version=self.version + 1)
