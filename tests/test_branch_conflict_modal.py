"""Tests for BranchConflictModal — three-way branch conflict overlay."""

from __future__ import annotations

from pathlib import Path

import pytest
from textual.app import App
from textual.widgets import Button, Label

from taskflow.ui.screens.branch_conflict import BranchConflictModal
from taskflow.worktrees.models import BranchConflict, ConflictDecision

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

CONFLICT = BranchConflict(
    branch_name="task-4.2",
    task_id="4",
    subtask_id="2",
    source_branch="main",
    worktree_path=Path("/wt/task-4.2"),
)


class ModalTestApp(App[None]):
    """Minimal app for testing modal push/dismiss behaviour."""

    def __init__(self) -> None:
        super().__init__()
        self.decision: ConflictDecision | None = None

    def on_mount(self) -> None:
        self.push_screen(BranchConflictModal(CONFLICT), callback=self._on_decision)

    def _on_decision(self, decision: ConflictDecision | None) -> None:
        self.decision = decision


# ===========================================================================
# Rendering tests
# ===========================================================================


class TestRendering:
    @pytest.mark.timeout(10)
    async def test_renders_conflict_message(self) -> None:
        app = ModalTestApp()
        async with app.run_test() as pilot:
            await pilot.pause()
            label = app.screen.query_one("#conflict-message", Label)
            assert "task-4.2" in str(label.render())

    @pytest.mark.timeout(10)
    async def test_renders_three_buttons(self) -> None:
        app = ModalTestApp()
        async with app.run_test() as pilot:
            await pilot.pause()
            buttons = app.screen.query(Button)
            assert [b.id for b in buttons] == ["btn-use-existing", "btn-recreate", "btn-cancel"]

    @pytest.mark.timeout(10)
    async def test_cancel_has_initial_focus(self) -> None:
        app = ModalTestApp()
        async with app.run_test() as pilot:
            await pilot.pause()
            assert app.focused is not None
            assert app.focused.id == "btn-cancel"


# ===========================================================================
# Decision tests
# ===========================================================================


class TestDecisions:
    @pytest.mark.timeout(10)
    async def test_enter_on_default_cancels(self) -> None:
        app = ModalTestApp()
        async with app.run_test() as pilot:
            await pilot.pause()
            await pilot.press("enter")
            await pilot.pause()
            assert app.decision is ConflictDecision.CANCEL

    @pytest.mark.timeout(10)
    async def test_escape_cancels(self) -> None:
        app = ModalTestApp()
        async with app.run_test() as pilot:
            await pilot.pause()
            await pilot.press("escape")
            await pilot.pause()
            assert app.decision is ConflictDecision.CANCEL

    @pytest.mark.timeout(10)
    async def test_u_uses_existing(self) -> None:
        app = ModalTestApp()
        async with app.run_test() as pilot:
            await pilot.pause()
            await pilot.press("u")
            await pilot.pause()
            assert app.decision is ConflictDecision.USE_EXISTING

    @pytest.mark.timeout(10)
    async def test_recreate_button(self) -> None:
        app = ModalTestApp()
        async with app.run_test() as pilot:
            await pilot.pause()
            await pilot.click("#btn-recreate")
            await pilot.pause()
            assert app.decision is ConflictDecision.RECREATE

    @pytest.mark.timeout(10)
    async def test_use_existing_button(self) -> None:
        app = ModalTestApp()
        async with app.run_test() as pilot:
            await pilot.pause()
            await pilot.click("#btn-use-existing")
            await pilot.pause()
            assert app.decision is ConflictDecision.USE_EXISTING
