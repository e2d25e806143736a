"""Interactive prompts for TASKFLOW.

This module provides Questionary-based user input prompts with
consistent styling and error handling.
"""

from __future__ import annotations

import questionary
from questionary import Style

from taskflow.utils.errors import UserCancelledError
from taskflow.utils.logging import log_message

# Custom style matching the application theme
custom_style = Style(
    [
        ("qmark", "fg:cyan bold"),
        ("question", "bold"),
        ("answer", "fg:green bold"),
        ("pointer", "fg:cyan bold"),
        ("highlighted", "fg:cyan bold"),
        ("selected", "fg:green"),
        ("separator", "fg:cyan"),
        ("instruction", "fg:white"),
        ("text", ""),
        ("disabled", "fg:gray italic"),
    ]
)


def prompt_confirm(message: str, default: bool = False) -> bool:
    """Prompt for yes/no confirmation.

    Args:
        message: Question to ask
        default: Default value if user presses Enter

    Returns:
        True for yes, False for no

    Raises:
        UserCancelledError: If user presses Ctrl+C
    """
    log_message(f"Prompt confirm: {message}")

    try:
        result = questionary.confirm(
            message,
            default=default,
            style=custom_style,
        ).ask()

        if result is None:
            raise UserCancelledError("User cancelled confirmation prompt")

        log_message(f"User response: {result}")
        return bool(result)

    except KeyboardInterrupt as e:
        raise UserCancelledError("User cancelled with Ctrl+C") from e


__all__ = ["custom_style", "prompt_confirm"]
