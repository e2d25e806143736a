"""OperationScreen — full screen for a streaming operation.

Composes :class:`OperationWidget` with a :class:`Footer` and keybindings:
``ctrl+x`` requests cooperative cancellation, ``escape`` closes the
operation once it has settled and dismisses the screen with the final
snapshot.
"""

from __future__ import annotations

from textual.app import ComposeResult
from textual.screen import Screen
from textual.widgets import Footer

from taskflow.operations.models import OperationSnapshot
from taskflow.operations.orchestrator import OperationOrchestrator
from taskflow.ui.widgets.operation import OperationWidget
from taskflow.utils.errors import OperationStateError


class OperationScreen(Screen[OperationSnapshot]):
    """Full-screen wrapper around OperationWidget with footer."""

    DEFAULT_CSS = """
    OperationScreen {
        layout: vertical;
    }
    OperationScreen OperationWidget {
        height: 1fr;
    }
    """

    BINDINGS = [
        ("ctrl+x", "cancel_operation", "Cancel"),
        ("escape", "close_operation", "Close"),
    ]

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

    def compose(self) -> ComposeResult:
        yield OperationWidget(self._orchestrator, id="operation")
        yield Footer()

    @property
    def orchestrator(self) -> OperationOrchestrator:
        return self._orchestrator

    # -- actions --------------------------------------------------------------

    def action_cancel_operation(self) -> None:
        try:
            self._orchestrator.cancel()
        except OperationStateError as e:
            self.notify(str(e), severity="warning")

    def action_close_operation(self) -> None:
        if self._orchestrator.is_busy:
            self.notify("Operation still running (ctrl+x to cancel)", severity="warning")
            return
        final = self._orchestrator.snapshot()
        self._orchestrator.close()
        self.dismiss(final)


__all__ = ["OperationScreen"]
