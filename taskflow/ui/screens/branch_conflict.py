"""BranchConflictModal — three-way branch conflict decision overlay.

Shows the conflicting branch and offers exactly three buttons. The
destructive "Recreate" button has no key binding and never receives
initial focus; the focused default is "Cancel".
"""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Label

from taskflow.worktrees.models import BranchConflict, ConflictDecision

_BUTTON_DECISIONS: dict[str, ConflictDecision] = {
    "btn-use-existing": ConflictDecision.USE_EXISTING,
    "btn-recreate": ConflictDecision.RECREATE,
    "btn-cancel": ConflictDecision.CANCEL,
}


class BranchConflictModal(ModalScreen[ConflictDecision]):
    """Modal asking how to settle a branch conflict."""

    DEFAULT_CSS = """
    BranchConflictModal {
        align: center middle;
    }

    BranchConflictModal > Vertical {
        width: 70;
        height: auto;
        border: thick $warning;
        background: $surface;
        padding: 1 2;
    }

    BranchConflictModal > Vertical > Label {
        width: 100%;
        margin-bottom: 1;
    }

    BranchConflictModal > Vertical > Horizontal {
        width: 100%;
        height: auto;
        align: center middle;
    }

    BranchConflictModal > Vertical > Horizontal > Button {
        margin: 0 1;
    }
    """

    BINDINGS = [
        ("u", "use_existing", "Use existing"),
        ("escape", "cancel", "Cancel"),
    ]

    def __init__(
        self,
        conflict: BranchConflict,
        *,
        name: str | None = None,
        id: str | None = None,
        classes: str | None = None,
    ) -> None:
        super().__init__(name=name, id=id, classes=classes)
        self._conflict = conflict

    @property
    def conflict(self) -> BranchConflict:
        return self._conflict

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Label(self._conflict.describe(), id="conflict-message")
            yield Label(
                f"Recreating deletes it and starts over from {self._conflict.source_branch}.",
                id="conflict-warning",
            )
            with Horizontal():
                yield Button("Use existing", variant="success", id="btn-use-existing")
                yield Button("Recreate", variant="error", id="btn-recreate")
                yield Button("Cancel", variant="default", id="btn-cancel")

    def on_mount(self) -> None:
        self.query_one("#btn-cancel", Button).focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        decision = _BUTTON_DECISIONS.get(event.button.id or "", ConflictDecision.CANCEL)
        self.dismiss(decision)

    def action_use_existing(self) -> None:
        self.dismiss(ConflictDecision.USE_EXISTING)

    def action_cancel(self) -> None:
        self.dismiss(ConflictDecision.CANCEL)


__all__ = ["BranchConflictModal"]
