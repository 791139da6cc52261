from __future__ import annotations

import asyncio
import logging
from asyncio import Task
from contextlib import suppress
from pathlib import Path
from typing import Awaitable, Callable, Iterable

from rich.text import Text
from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.coordinate import Coordinate
from textual.timer import Timer
from textual.widgets import DataTable, Footer, Input, Label, Tab, Tabs

from ..diff import is_dirty, pending_changes, summarize
from ..errors import QueryError
from ..models import SCOPES, ApplyOutcome, Scope, UnitInfo
from ..orchestrator import ApplyOrchestrator, CycleFinished, CycleMessage, SetEnabledFn, apply_cycle, drain
from ..overlay import Row, rows, visible
from ..registry import QueryFn, Registry, load_all
from ..transport import query_units, set_enabled, unit_info
from ..util import apply_concurrency
from .screens import ConfirmScreen, InfoScreen, QuitScreen


logger = logging.getLogger(__name__)

InfoFn = Callable[[Scope, str], Awaitable[UnitInfo]]

_TAB_IDS: dict[Scope, str] = {"system": "tab-system", "user": "tab-user"}


class UnitTable(DataTable):
    # override DataTable's own enter/left/right so they reach the app
    BINDINGS = [
        Binding("space", "app.toggle_unit", "Toggle"),
        Binding("enter", "app.confirm_apply", "Apply"),
        Binding("left,h", "app.toggle_collapse", "Collapse", show=False),
        Binding("right,l", "app.toggle_collapse", "Expand", show=False),
    ]


class ToggleApp(App):
    CSS_PATH = Path(__file__).with_name("app.tcss")
    BINDINGS = [
        Binding("tab", "switch_scope", "System/User", priority=True),
        Binding("/", "focus_search", "Search"),
        Binding("escape", "clear_search", "Clear search", show=False),
        Binding("i", "show_info", "Info"),
        Binding("ctrl+r", "do_refresh", "Refresh"),
        Binding("q", "request_quit", "Quit"),
    ]

    def __init__(
        self,
        registry: Registry,
        scopes: Iterable[Scope] = SCOPES,
        query: QueryFn = query_units,
        apply_fn: SetEnabledFn = set_enabled,
        info_fn: InfoFn = unit_info,
        concurrency: int | None = None,
    ) -> None:
        super().__init__()
        self.registry = registry
        self.scopes = tuple(scopes)
        self.scope: Scope = self.scopes[0] if self.scopes else "system"
        self.search = ""
        self.status_message = ""
        self._query = query
        self._apply_fn = apply_fn
        self._info_fn = info_fn
        self._concurrency = concurrency or apply_concurrency()
        self.table: UnitTable | None = None
        self._rows: list[Row] = []
        self._channel: asyncio.Queue[CycleMessage] | None = None
        self._apply_task: Task | None = None
        self._drain_timer: Timer | None = None
        self._progress = (0, 0)
        # transient per-unit outcome markers, cleared a few seconds after a cycle
        self._marks: dict[tuple[Scope, str], str] = {}
        self._marks_timer: Timer | None = None

    def compose(self) -> ComposeResult:
        with Container(id="header"):
            with Horizontal():
                yield Label("systoggle", id="title")
                yield Tabs(
                    Tab("System", id=_TAB_IDS["system"]),
                    Tab("User", id=_TAB_IDS["user"]),
                    id="tabs",
                    active=_TAB_IDS[self.scope],
                )
                yield Input(placeholder="/ search unit name", id="search")

        self.table = UnitTable(zebra_stripes=False, cursor_type="row")
        self.table.add_columns(" ", "Unit", "State", "About")
        yield self.table
        yield Label("", id="status", markup=False)
        yield Footer()

    async def on_mount(self) -> None:
        self._rebuild_table(select_same=False)
        if self.table is not None:
            self.table.focus()
        self._update_status()

    async def on_unmount(self) -> None:
        if self._apply_task and not self._apply_task.done():
            self._apply_task.cancel()
            with suppress(asyncio.CancelledError, Exception):
                await self._apply_task

    @property
    def applying(self) -> bool:
        return self._apply_task is not None

    # table

    def _rebuild_table(self, select_same: bool = True) -> None:
        assert self.table
        current = self._current_row() if select_same else None
        self.table.clear(columns=False)
        views = visible(self.registry, self.search, self.scope)
        self._rows = rows(views)
        counts = {v.label: v.count for v in views}
        for row in self._rows:
            self.table.add_row(*self._cells(row, counts.get(row.label, 0)))
        if not self._rows:
            return
        target = 0
        if current is not None:
            for i, row in enumerate(self._rows):
                if row == current:
                    target = i
                    break
            else:
                # unit hidden by collapse/filter: fall back to its category header
                for i, row in enumerate(self._rows):
                    if row.kind == "category" and row.label == current.label:
                        target = i
                        break
        self.table.move_cursor(row=target)

    def _cells(self, row: Row, count: int = 0) -> tuple[Text, Text, Text, Text]:
        if row.kind == "category":
            arrow = "▸" if row.label in self.registry.collapsed else "▾"
            return (
                Text(arrow, style="bold cyan"),
                Text(f"{row.label} ({count})", style="bold cyan"),
                Text(""),
                Text(""),
            )
        assert row.name is not None
        unit = self.registry.get(row.name, row.scope)
        if unit is None:
            return (Text(""), Text(row.name), Text(""), Text(""))
        check = Text("[x]" if unit.desired_state == "enabled" else "[ ]")
        name = Text("  " + unit.name)
        if unit.dirty:
            check.stylize("bold yellow")
            name.append(" *", style="bold yellow")
        mark = self._marks.get(unit.key)
        if mark:
            name.append(f" {mark}", style="green" if mark == "✓" else "red")
        state = Text(unit.actual_state)
        if unit.active:
            state.append(" ●", style="green")
        about = Text(unit.description or "", style="dim", overflow="ellipsis", no_wrap=True)
        return (check, name, state, about)

    def _refresh_row(self, index: int) -> None:
        assert self.table
        if not (0 <= index < len(self._rows)) or self._rows[index].kind != "unit":
            return
        for col, cell in enumerate(self._cells(self._rows[index])):
            self.table.update_cell_at(Coordinate(index, col), cell)

    def _current_row(self) -> Row | None:
        if not self.table:
            return None
        idx = self.table.cursor_row
        if idx is None or not (0 <= idx < len(self._rows)):
            return None
        return self._rows[idx]

    def _update_status(self, message: str | None = None) -> None:
        if message is None:
            if self.applying:
                done, total = self._progress
                message = f"Applying {done}/{total}..."
            else:
                changes = pending_changes(self.registry)
                if changes:
                    per = summarize(changes)
                    message = f"{len(changes)} pending (system {per['system']}, user {per['user']}), enter to apply"
                else:
                    message = "No pending changes"
        self.status_message = message
        try:
            status = self.query_one("#status", Label)
        except Exception:
            return
        status.update(message)

    # actions

    def action_toggle_unit(self) -> None:
        row = self._current_row()
        if row is None:
            return
        if row.kind == "category":
            self.action_toggle_collapse()
            return
        assert row.name is not None
        if self.registry.toggle(row.name, row.scope):
            self._refresh_row(self.table.cursor_row if self.table else -1)
            self._update_status()

    def action_toggle_collapse(self) -> None:
        row = self._current_row()
        if row is None:
            return
        self.registry.toggle_collapsed(row.label)
        self._rebuild_table(select_same=True)

    def action_switch_scope(self) -> None:
        nxt: Scope = "user" if self.scope == "system" else "system"
        try:
            self.query_one("#tabs", Tabs).active = _TAB_IDS[nxt]
        except Exception:
            self._set_scope(nxt)

    @on(Tabs.TabActivated)
    def _on_tab_activated(self, event: Tabs.TabActivated) -> None:
        for scope, tab_id in _TAB_IDS.items():
            if event.tab.id == tab_id and scope != self.scope:
                self._set_scope(scope)

    def _set_scope(self, scope: Scope) -> None:
        self.scope = scope
        self._rebuild_table(select_same=False)
        if scope not in self.scopes:
            self._update_status(f"{scope} units were not loaded (--scope)")

    def action_focus_search(self) -> None:
        self.query_one("#search", Input).focus()

    def action_clear_search(self) -> None:
        search = self.query_one("#search", Input)
        if search.value:
            search.value = ""
        self.search = ""
        self.status_message = ""
        self._rebuild_table(select_same=True)
        if self.table is not None:
            self.table.focus()

    @on(Input.Changed, "#search")
    def _on_search_changed(self, event: Input.Changed) -> None:
        self.search = event.value
        self._rebuild_table(select_same=False)

    @on(Input.Submitted, "#search")
    def _on_search_submitted(self, event: Input.Submitted) -> None:
        if self.table is not None:
            self.table.focus()

    def action_confirm_apply(self) -> None:
        if self.applying:
            self._update_status("An apply is already running")
            return
        changes = pending_changes(self.registry)
        if not changes:
            self._update_status("No pending changes")
            return

        def _done(confirmed: bool | None) -> None:
            if confirmed:
                self._start_apply()

        self.push_screen(ConfirmScreen(changes), _done)

    def _start_apply(self) -> None:
        # recompute: the registry may have changed while the dialog was open
        changes = pending_changes(self.registry)
        if not changes:
            return
        self._marks.clear()
        self._progress = (0, len(changes))
        self._channel = asyncio.Queue(maxsize=32)
        orchestrator = ApplyOrchestrator(self._apply_fn, concurrency=self._concurrency)
        self._apply_task = asyncio.create_task(
            apply_cycle(changes, orchestrator, self._query, self._channel, self.scopes)
        )
        self._drain_timer = self.set_interval(0.05, self._drain_channel)
        self._update_status()

    def _drain_channel(self) -> None:
        if self._channel is None:
            return
        for msg in drain(self._channel):
            if isinstance(msg, CycleFinished):
                self._finish_apply(msg)
                return
            self._record_outcome(msg)
        task = self._apply_task
        if task is not None and task.done() and not task.cancelled() and task.exception() is not None:
            logger.error("apply cycle crashed", exc_info=task.exception())
            self._stop_apply()
            self._update_status(f"Apply failed: {task.exception()}")

    def _record_outcome(self, outcome: ApplyOutcome) -> None:
        done, total = self._progress
        self._progress = (done + 1, total)
        self._marks[outcome.key] = "✓" if outcome.ok else ("⊘" if outcome.cancelled else "✗")
        for i, row in enumerate(self._rows):
            if row.kind == "unit" and row.name == outcome.unit_name and row.scope == outcome.scope:
                self._refresh_row(i)
        if outcome.ok:
            self._update_status()
        elif outcome.cancelled:
            self._update_status(f"Authorization cancelled, skipped {outcome.unit_name}")
        else:
            self._update_status(f"{outcome.unit_name}: {outcome.error}")

    def _stop_apply(self) -> None:
        if self._drain_timer is not None:
            self._drain_timer.stop()
        self._drain_timer = None
        self._apply_task = None
        self._channel = None

    def _finish_apply(self, finished: CycleFinished) -> None:
        self._stop_apply()
        # the swap happens here, in the interface loop, in one step
        self.registry = finished.swap(self.registry)
        self._rebuild_table(select_same=True)
        ok = len(finished.outcomes) - len(finished.failed)
        cancelled = sum(1 for o in finished.failed if o.cancelled)
        errors = len(finished.failed) - cancelled
        parts = [f"{ok} applied"]
        if errors:
            parts.append(f"{errors} failed")
        if cancelled:
            parts.append(f"{cancelled} cancelled")
        if finished.error is not None:
            parts.append(f"refresh failed: {finished.error}")
        self._update_status(", ".join(parts))
        if self._marks_timer is not None:
            self._marks_timer.stop()
        self._marks_timer = self.set_timer(4.0, self._clear_marks)

    def _clear_marks(self) -> None:
        self._marks.clear()
        self._marks_timer = None
        self._rebuild_table(select_same=True)

    async def action_show_info(self) -> None:
        row = self._current_row()
        if row is None or row.kind != "unit" or row.name is None:
            return
        try:
            info = await self._info_fn(row.scope, row.name)
        except QueryError as e:
            self._update_status(str(e))
            return
        self.push_screen(InfoScreen(info, self.registry.get(row.name, row.scope)))

    async def action_do_refresh(self) -> None:
        if self.applying:
            self._update_status("Refresh is automatic after the running apply")
            return
        try:
            units = await load_all(self._query, self.scopes)
        except QueryError as e:
            # keep the current snapshot
            self._update_status(f"Refresh failed: {e}")
            return
        self.registry = self.registry.reconcile(units)
        self._rebuild_table(select_same=True)
        self._update_status()

    def action_request_quit(self) -> None:
        if self.applying:
            message = "Changes are still being applied. Quit anyway?"
        elif is_dirty(self.registry):
            n = len(pending_changes(self.registry))
            message = f"{n} change(s) not applied. Quit and discard them?"
        else:
            self.exit()
            return

        def _done(confirmed: bool | None) -> None:
            if confirmed:
                self.exit()

        self.push_screen(QuitScreen(message), _done)


def run_dash(scopes: Iterable[Scope] = SCOPES) -> None:
    scopes = tuple(scopes)
    # initial load happens before the UI starts; a QueryError here is fatal
    registry = Registry(asyncio.run(load_all(query_units, scopes)))
    app = ToggleApp(registry=registry, scopes=scopes)
    app.run()
