"""Dashboard tests driven through Textual's pilot with faked capabilities."""

import asyncio

import pytest

from systoggle.dash.app import ToggleApp
from systoggle.dash.screens import ConfirmScreen, QuitScreen
from systoggle.diff import is_dirty
from systoggle.models import UnitInfo
from systoggle.registry import Registry


def _app(fake, registry: Registry) -> ToggleApp:
    async def info(scope, name):
        return UnitInfo(name=name, scope=scope, description="test unit")

    return ToggleApp(
        registry=registry,
        query=fake.query,
        apply_fn=fake.set_enabled,
        info_fn=info,
        concurrency=2,
    )


async def _wait_idle(app: ToggleApp, pilot) -> None:
    for _ in range(100):
        if not app.applying:
            return
        await pilot.pause(0.02)
    raise AssertionError("apply cycle did not finish")


class TestDashboard:
    """Tests for keyboard flows in the dashboard."""

    @pytest.mark.asyncio
    async def test_first_row_is_category_header(self, fake, registry: Registry) -> None:
        app = _app(fake, registry)
        async with app.run_test() as pilot:
            await pilot.pause()
            assert app._rows[0].kind == "category"
            assert app._rows[0].label == "Bluetooth"
            assert app._rows[1].name == "bluetooth.service"

    @pytest.mark.asyncio
    async def test_space_toggles_selected_unit(self, fake, registry: Registry) -> None:
        app = _app(fake, registry)
        async with app.run_test() as pilot:
            await pilot.press("down", "space")
            assert registry.get("bluetooth.service", "system").desired_state == "enabled"
            assert is_dirty(app.registry)
            await pilot.press("space")
            assert not is_dirty(app.registry)

    @pytest.mark.asyncio
    async def test_confirm_and_apply(self, fake, registry: Registry) -> None:
        app = _app(fake, registry)
        async with app.run_test() as pilot:
            await pilot.press("down", "space", "enter")
            await pilot.pause()
            assert isinstance(app.screen, ConfirmScreen)
            await pilot.press("enter")
            await _wait_idle(app, pilot)
            assert fake.calls == [("system", "bluetooth.service", True)]
            u = app.registry.get("bluetooth.service", "system")
            assert u.actual_state == "enabled"
            assert not is_dirty(app.registry)
            assert app.registry.version == 1

    @pytest.mark.asyncio
    async def test_cancel_confirmation_applies_nothing(self, fake, registry: Registry) -> None:
        app = _app(fake, registry)
        async with app.run_test() as pilot:
            await pilot.press("down", "space", "enter")
            await pilot.pause()
            await pilot.press("escape")
            await pilot.pause()
            assert not isinstance(app.screen, ConfirmScreen)
            assert fake.calls == []
            assert is_dirty(app.registry)

    @pytest.mark.asyncio
    async def test_search_narrows_rows(self, fake, registry: Registry) -> None:
        app = _app(fake, registry)
        async with app.run_test() as pilot:
            await pilot.press("slash")
            await pilot.press("w", "p", "a")
            await pilot.pause()
            assert app.search == "wpa"
            assert [r.name for r in app._rows] == [None, "wpa_supplicant.service"]

    @pytest.mark.asyncio
    async def test_tab_switches_scope(self, fake, registry: Registry) -> None:
        app = _app(fake, registry)
        async with app.run_test() as pilot:
            await pilot.press("tab")
            await pilot.pause()
            assert app.scope == "user"
            assert {r.name for r in app._rows if r.kind == "unit"} == {
                "pipewire.service",
                "wireplumber.service",
                "syncthing.service",
            }

    @pytest.mark.asyncio
    async def test_quit_asks_when_dirty(self, fake, registry: Registry) -> None:
        app = _app(fake, registry)
        async with app.run_test() as pilot:
            await pilot.press("down", "space", "q")
            await pilot.pause()
            assert isinstance(app.screen, QuitScreen)
            await pilot.press("n")
            await pilot.pause()
            assert not isinstance(app.screen, QuitScreen)

    @pytest.mark.asyncio
    async def test_refresh_failure_keeps_snapshot(self, fake, registry: Registry) -> None:
        app = _app(fake, registry)
        async with app.run_test() as pilot:
            fake.query_error = "bus gone"
            await pilot.press("ctrl+r")
            await pilot.pause()
            assert app.registry is registry


async def _wait_for(pilot, predicate) -> None:
    for _ in range(100):
        if predicate():
            return
        await pilot.pause(0.02)
    raise AssertionError("condition not reached")


class TestApplyInFlight:
    """Tests for input handling while a batch is still running."""

    @pytest.mark.asyncio
    async def test_second_apply_is_refused(self, fake, registry: Registry) -> None:
        fake.delay["bluetooth.service"] = 0.5
        app = _app(fake, registry)
        async with app.run_test() as pilot:
            await pilot.press("down", "space", "enter")
            await pilot.pause()
            await pilot.press("enter")
            await pilot.pause()
            assert app.applying
            # wpa_supplicant is row 4: Bluetooth, bluetooth, Network, NetworkManager
            await pilot.press("down", "down", "down", "space", "enter")
            await pilot.pause()
            assert not isinstance(app.screen, ConfirmScreen)
            assert app.status_message == "An apply is already running"
            await _wait_idle(app, pilot)
            assert fake.calls == [("system", "bluetooth.service", True)]

    @pytest.mark.asyncio
    async def test_edit_during_apply_survives_swap(self, fake, registry: Registry) -> None:
        fake.delay["bluetooth.service"] = 0.5
        app = _app(fake, registry)
        async with app.run_test() as pilot:
            await pilot.press("down", "space", "enter")
            await pilot.pause()
            await pilot.press("enter")
            await pilot.pause()
            assert app.applying
            await pilot.press("down", "down", "down", "space")
            assert app.registry.get("wpa_supplicant.service", "system").desired_state == "enabled"
            await _wait_idle(app, pilot)

            assert app.registry.get("bluetooth.service", "system").actual_state == "enabled"
            wpa = app.registry.get("wpa_supplicant.service", "system")
            assert wpa.actual_state == "disabled"
            assert wpa.desired_state == "enabled"
            assert wpa.dirty
            assert app.status_message == "1 applied"

    @pytest.mark.asyncio
    async def test_failed_outcome_is_marked(self, fake, registry: Registry) -> None:
        fake.fail["syncthing.service"] = "unit not found"
        fake.delay["pipewire.service"] = 0.5
        app = _app(fake, registry)
        async with app.run_test() as pilot:
            await pilot.press("tab")
            await pilot.pause()
            # user rows: Audio, pipewire, wireplumber, Other, syncthing
            await pilot.press("down", "space", "down", "down", "down", "space", "enter")
            await pilot.pause()
            await pilot.press("enter")
            await _wait_for(pilot, lambda: ("user", "syncthing.service") in app._marks)
            assert app._marks[("user", "syncthing.service")] == "✗"
            assert app.status_message == "syncthing.service: unit not found"
            await _wait_idle(app, pilot)
            assert app._marks[("user", "pipewire.service")] == "✓"
            assert app.status_message == "1 applied, 1 failed"
            assert app.registry.get("syncthing.service", "user").dirty

    @pytest.mark.asyncio
    async def test_cancelled_authorization_is_marked(self, fake, registry: Registry) -> None:
        fake.cancel_system = True
        app = _app(fake, registry)
        async with app.run_test() as pilot:
            await pilot.press("down", "space", "down", "down", "down", "space", "enter")
            await pilot.pause()
            await pilot.press("enter")
            await _wait_idle(app, pilot)
            assert app._marks[("system", "bluetooth.service")] == "⊘"
            assert app._marks[("system", "wpa_supplicant.service")] == "⊘"
            assert app.status_message == "0 applied, 2 cancelled"
            # only the first system change reaches the prompt
            assert len(fake.calls) == 1
