"""Interactive menus for TASKFLOW.

This module provides the terminal prompt for the three-way branch
conflict decision.
"""

from __future__ import annotations

import questionary

from taskflow.ui.prompts import custom_style
from taskflow.utils.console import print_warning
from taskflow.utils.errors import UserCancelledError
from taskflow.utils.logging import log_message
from taskflow.worktrees.models import BranchConflict, ConflictDecision


def prompt_branch_conflict(conflict: BranchConflict) -> ConflictDecision:
    """Ask the user how to settle a branch conflict.

    The highlighted default is ``cancel``; ``recreate`` must be picked
    explicitly.

    Args:
        conflict: The pending conflict

    Returns:
        Selected ConflictDecision

    Raises:
        UserCancelledError: If user cancels
    """
    print_warning(conflict.describe())

    choices = [
        questionary.Choice(
            "Use the existing branch (keep its commits and changes)",
            value=ConflictDecision.USE_EXISTING,
        ),
        questionary.Choice(
            f"Recreate from {conflict.source_branch} (deletes the existing branch)",
            value=ConflictDecision.RECREATE,
        ),
        questionary.Choice("Cancel", value=ConflictDecision.CANCEL),
    ]

    try:
        result = questionary.select(
            f"How should subtask {conflict.subtask_key} proceed?",
            choices=choices,
            default=choices[2],
            style=custom_style,
        ).ask()

        if result is None:
            raise UserCancelledError("User cancelled branch conflict prompt")

        decision = ConflictDecision.parse(result)
        log_message(f"Branch conflict decision for {conflict.subtask_key}: {decision.value}")
        return decision

    except KeyboardInterrupt as e:
        raise UserCancelledError("User cancelled with Ctrl+C") from e


__all__ = ["prompt_branch_conflict"]
