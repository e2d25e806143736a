"""UI components for TASKFLOW.

This package contains:
- prompts: Questionary-based user input prompts
- menus: The branch conflict prompt
- messages: Textual messages bridging the orchestrator to widgets
- widgets / screens: Textual operation display and conflict modal
"""

from taskflow.ui.menus import prompt_branch_conflict
from taskflow.ui.prompts import custom_style, prompt_confirm

__all__ = [
    # Prompts
    "custom_style",
    "prompt_confirm",
    # Menus
    "prompt_branch_conflict",
]
