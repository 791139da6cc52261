"""Shared fakes for the query and enable/disable capabilities."""

from __future__ import annotations

import asyncio

import pytest

from systoggle.errors import ApplyError, PrivilegeCancelled, QueryError
from systoggle.models import RawUnitStatus, Scope
from systoggle.registry import Registry, build_records


class FakeSystemd:
    """In-memory service manager.

    `units[scope][name]` is [unit-file state, active]. set_enabled() mutates
    it the way `systemctl enable --now` / `disable --now` would.
    """

    def __init__(self, units: dict[Scope, dict[str, tuple[str, bool]]]) -> None:
        self.units = {scope: {n: list(v) for n, v in by_name.items()} for scope, by_name in units.items()}
        self.calls: list[tuple[Scope, str, bool]] = []
        self.queries: list[Scope] = []
        self.fail: dict[str, str] = {}
        self.cancel_system = False
        self.query_error: str | None = None
        self.delay: dict[str, float] = {}

    async def query(self, scope: Scope) -> list[RawUnitStatus]:
        self.queries.append(scope)
        if self.query_error is not None:
            raise QueryError(self.query_error)
        return [RawUnitStatus(name, state, active) for name, (state, active) in self.units.get(scope, {}).items()]

    async def set_enabled(self, scope: Scope, unit: str, enabled: bool) -> None:
        self.calls.append((scope, unit, enabled))
        await asyncio.sleep(self.delay.get(unit, 0))
        if scope == "system" and self.cancel_system:
            raise PrivilegeCancelled(unit, "Request dismissed")
        if unit in self.fail:
            raise ApplyError(unit, self.fail[unit])
        entry = self.units[scope][unit]
        entry[0] = "enabled" if enabled else "disabled"
        entry[1] = enabled


SYSTEM_UNITS = {
    "NetworkManager.service": ("enabled", True),
    "wpa_supplicant.service": ("disabled", False),
    "sshd.service": ("enabled", True),
    "bluetooth.service": ("disabled", False),
    "cups.service": ("linked", False),
    "systemd-timesyncd.service": ("enabled", True),
    "systemd-journald.service": ("static", True),
    "lvm2-monitor.service": ("masked", False),
    "my-backup.service": ("enabled-runtime", False),
}

USER_UNITS = {
    "syncthing.service": ("disabled", False),
    "pipewire.service": ("enabled", True),
    "wireplumber.service": ("enabled", True),
    "dbus-broker.service": ("generated", True),
}


@pytest.fixture
def fake() -> FakeSystemd:
    return FakeSystemd({"system": SYSTEM_UNITS, "user": USER_UNITS})


@pytest.fixture
def registry(fake: FakeSystemd) -> Registry:
    units = []
    for scope in ("system", "user"):
        raw = [RawUnitStatus(n, s, a) for n, (s, a) in fake.units[scope].items()]
        units.extend(build_records(scope, raw))
    return Registry(units)
