"""OperationWidget — Textual widget rendering an orchestrator's operation.

Subscribes to an :class:`OperationOrchestrator` on mount and re-renders
on every snapshot: label, phase n/m, rotating progress hint, elapsed time
and the final status once the operation settles.
"""

from __future__ import annotations

from collections.abc import Callable

from rich.markup import escape
from textual.app import ComposeResult
from textual.css.query import NoMatches
from textual.reactive import reactive
from textual.widget import Widget
from textual.widgets import Static

from taskflow.operations.models import OperationSnapshot, OperationState
from taskflow.operations.orchestrator import OperationOrchestrator
from taskflow.ui.messages import OperationStateChanged, post_operation_state

MAX_HINT_WIDTH = 70

_STATE_ICONS: dict[OperationState, str] = {
    OperationState.IDLE: "○",
    OperationState.PREPARING: "⟳",
    OperationState.PROCESSING: "⟳",
    OperationState.COMPLETED: "✓",
    OperationState.CANCELLED: "⊘",
    OperationState.ERROR: "✗",
}

_STATE_COLORS: dict[OperationState, str] = {
    OperationState.IDLE: "dim white",
    OperationState.PREPARING: "bold cyan",
    OperationState.PROCESSING: "bold cyan",
    OperationState.COMPLETED: "bold green",
    OperationState.CANCELLED: "yellow",
    OperationState.ERROR: "bold red",
}


class OperationWidget(Widget):
    """Displays the orchestrator's current operation."""

    DEFAULT_CSS = """
    OperationWidget {
        height: auto;
        border: round blue;
        padding: 0 1;
    }
    OperationWidget.settled {
        border: round green;
    }
    OperationWidget.failed {
        border: round red;
    }
    """

    snapshot: reactive[OperationSnapshot] = reactive(OperationSnapshot.idle, repaint=False)

    def __init__(
        self,
        orchestrator: OperationOrchestrator,
        *,
        name: str | None = None,
        id: str | None = None,
        classes: str | None = None,
    ) -> None:
        super().__init__(name=name, id=id, classes=classes)
        self._orchestrator = orchestrator
        self._unsubscribe: Callable[[], None] | None = None

    # -- lifecycle -------------------------------------------------------------

    def compose(self) -> ComposeResult:
        yield Static("", id="phase-line")
        yield Static("", id="hint-line")
        yield Static("", id="status-line")

    def on_mount(self) -> None:
        self._unsubscribe = self._orchestrator.subscribe(self._on_snapshot)
        self.snapshot = self._orchestrator.snapshot()
        self._render_snapshot(self.snapshot)

    def on_unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # -- orchestrator bridge ---------------------------------------------------

    def _on_snapshot(self, snapshot: OperationSnapshot) -> None:
        post_operation_state(self.app, snapshot, target=self)

    def on_operation_state_changed(self, message: OperationStateChanged) -> None:
        message.stop()
        self.snapshot = message.snapshot

    def watch_snapshot(self, snapshot: OperationSnapshot) -> None:
        self._render_snapshot(snapshot)

    # -- rendering -------------------------------------------------------------

    @staticmethod
    def _truncate(line: str, max_width: int = MAX_HINT_WIDTH) -> str:
        if len(line) <= max_width:
            return line
        return line[: max_width - 1] + "…"

    @staticmethod
    def format_phase(snapshot: OperationSnapshot) -> str:
        """Phase line, e.g. "Phase 2/4: analyzing-requirements"."""
        if snapshot.state is OperationState.IDLE:
            return "No operation running"
        if snapshot.current_phase is None:
            return "Preparing..."
        total = snapshot.phase_count
        position = snapshot.current_phase_index + 1
        if total and 0 < position <= total:
            return f"Phase {position}/{total}: {snapshot.current_phase}"
        return f"Phase: {snapshot.current_phase}"

    @staticmethod
    def format_status(snapshot: OperationSnapshot) -> str:
        """Status line with icon and elapsed time."""
        icon = _STATE_ICONS[snapshot.state]
        state = snapshot.state
        if state is OperationState.IDLE:
            return f"{icon} Idle"
        if state is OperationState.COMPLETED:
            return f"{icon} Completed in {snapshot.format_elapsed()}"
        if state is OperationState.CANCELLED:
            return f"{icon} Cancelled after {snapshot.format_elapsed()}"
        if state is OperationState.ERROR:
            return f"{icon} Failed: {snapshot.error}"
        suffix = " (cancelling...)" if snapshot.cancel_requested else ""
        return f"{icon} {snapshot.format_elapsed()}{suffix}"

    def _update_static(self, selector: str, text: str) -> None:
        try:
            self.query_one(selector, Static).update(text)
        except NoMatches:
            pass

    def _render_snapshot(self, snapshot: OperationSnapshot) -> None:
        self.border_title = snapshot.label or "Operation"
        self._update_static("#phase-line", f"[bold]{escape(self.format_phase(snapshot))}[/bold]")

        hint = (snapshot.progress_hint or "").strip()
        if hint and snapshot.state.is_active:
            text = escape(self._truncate(hint))
            self._update_static("#hint-line", f"[dim cyan]► [/dim cyan][dim]{text}[/dim]")
        else:
            self._update_static("#hint-line", "")

        color = _STATE_COLORS[snapshot.state]
        status = escape(self.format_status(snapshot))
        self._update_static("#status-line", f"[{color}]{status}[/{color}]")

        self.set_class(snapshot.state is OperationState.COMPLETED, "settled")
        self.set_class(snapshot.state is OperationState.ERROR, "failed")


__all__ = ["OperationWidget"]
