from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


Scope = Literal["system", "user"]
UnitState = Literal["enabled", "disabled", "linked"]
DesiredState = Literal["enabled", "disabled"]
Action = Literal["enable", "disable"]

SCOPES: tuple[Scope, ...] = ("system", "user")

# systemd unit-file states that can be toggled; everything else
# (static, generated, masked, alias, indirect, transient, ...) is skipped
_RAW_STATES: dict[str, UnitState] = {
    "enabled": "enabled",
    "enabled-runtime": "enabled",
    "disabled": "disabled",
    "linked": "linked",
    # runtime-only links vanish on reboot and count as not enabled
    "linked-runtime": "disabled",
}


def parse_unit_state(raw: str) -> UnitState | None:
    return _RAW_STATES.get(raw.strip())


def project(state: UnitState) -> DesiredState:
    """Actionable projection of a unit-file state: linked units count as enabled."""
    return "disabled" if state == "disabled" else "enabled"


@dataclass(slots=True, frozen=True)
class RawUnitStatus:
    name: str
    state: str
    active: bool = False


@dataclass(slots=True)
class UnitRecord:
    name: str
    scope: Scope
    actual_state: UnitState
    active: bool
    desired_state: DesiredState
    description: str | None = None

    @property
    def dirty(self) -> bool:
        return self.desired_state != project(self.actual_state)

    @property
    def key(self) -> tuple[Scope, str]:
        return (self.scope, self.name)


@dataclass(slots=True, frozen=True)
class Category:
    label: str
    members: tuple[str, ...]
    collapsed: bool = False


@dataclass(slots=True, frozen=True)
class Change:
    unit_name: str
    scope: Scope
    action: Action

    @property
    def key(self) -> tuple[Scope, str]:
        return (self.scope, self.unit_name)


ChangeSet = tuple[Change, ...]


@dataclass(slots=True, frozen=True)
class ApplyOutcome:
    unit_name: str
    scope: Scope
    action: Action
    error: str | None = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.cancelled

    @property
    def key(self) -> tuple[Scope, str]:
        return (self.scope, self.unit_name)

    @classmethod
    def for_change(cls, change: Change, error: str | None = None, cancelled: bool = False) -> "ApplyOutcome":
        return cls(change.unit_name, change.scope, change.action, error=error, cancelled=cancelled)


@dataclass(slots=True)
class UnitInfo:
    name: str
    scope: Scope
    description: str = ""
    active_state: str = ""
    sub_state: str = ""
    fragment_path: str = ""
    triggered_by: str = ""
    documentation: str = ""
    extra: str | None = None
