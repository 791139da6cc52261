from __future__ import annotations

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Label, Static

from ..models import ChangeSet, UnitInfo, UnitRecord


class ConfirmScreen(ModalScreen[bool]):
    """Lists the pending change set; dismisses True to apply it."""

    BINDINGS = [
        Binding("enter,y", "confirm", "Apply"),
        Binding("escape,n", "cancel", "Cancel"),
    ]

    def __init__(self, changes: ChangeSet) -> None:
        super().__init__()
        self.changes = changes

    def compose(self) -> ComposeResult:
        lines = [
            f"{'+' if c.action == 'enable' else '-'} {c.unit_name}  ({c.scope})"
            for c in self.changes
        ]
        with Vertical(classes="dialog"):
            yield Label(f"Apply {len(self.changes)} change(s)?", classes="dialog-title")
            yield Static("\n".join(lines), markup=False, classes="dialog-body")
            if any(c.scope == "system" for c in self.changes):
                yield Label("System units will ask for authorization.", classes="hint")
            yield Label("enter: apply   esc: cancel", classes="hint")

    def action_confirm(self) -> None:
        self.dismiss(True)

    def action_cancel(self) -> None:
        self.dismiss(False)


class QuitScreen(ModalScreen[bool]):
    BINDINGS = [
        Binding("y,enter", "confirm", "Quit"),
        Binding("n,escape", "cancel", "Stay"),
    ]

    def __init__(self, message: str) -> None:
        super().__init__()
        self.message = message

    def compose(self) -> ComposeResult:
        with Vertical(classes="dialog"):
            yield Label(self.message, markup=False, classes="dialog-title")
            yield Label("y: quit   n: stay", classes="hint")

    def action_confirm(self) -> None:
        self.dismiss(True)

    def action_cancel(self) -> None:
        self.dismiss(False)


class InfoScreen(ModalScreen[None]):
    BINDINGS = [
        Binding("escape,i,q", "close", "Close"),
    ]

    def __init__(self, info: UnitInfo, record: UnitRecord | None = None) -> None:
        super().__init__()
        self.info = info
        self.record = record

    def _lines(self) -> list[str]:
        i = self.info
        state = f"{i.active_state} ({i.sub_state})" if i.sub_state else i.active_state
        fields = [
            ("Description", i.description),
            ("State", state),
            ("Unit file", self.record.actual_state if self.record else ""),
            ("Path", i.fragment_path),
            ("Triggered by", i.triggered_by),
            ("Docs", i.documentation),
        ]
        lines = [f"{k}: {v}" for k, v in fields if v]
        if i.extra:
            lines += ["", i.extra]
        return lines or ["No details available."]

    def compose(self) -> ComposeResult:
        with Vertical(classes="dialog"):
            yield Label(f"{self.info.name} ({self.info.scope})", markup=False, classes="dialog-title")
            yield Static("\n".join(self._lines()), markup=False, classes="dialog-body")
            yield Label("esc: close", classes="hint")

    def action_close(self) -> None:
        self.dismiss(None)
