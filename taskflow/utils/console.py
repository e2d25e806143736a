"""Rich-based console output utilities.

This module provides colored terminal output functions shared by the CLI
commands and interactive prompts.
"""

from rich.console import Console
from rich.theme import Theme

from taskflow import __version__

# Custom theme shared by every CLI command
custom_theme = Theme(
    {
        "error": "bold red",
        "success": "bold green",
        "warning": "bold yellow",
        "info": "bold blue",
        "header": "bold magenta",
        "step": "bold cyan",
        "highlight": "bold white",
    }
)

# Global console instances
console = Console(theme=custom_theme)
console_err = Console(theme=custom_theme, stderr=True)


def print_error(message: str) -> None:
    """Print error message in red."""
    from taskflow.utils.logging import log_message

    console_err.print(f"[error][[ERROR]][/error] [red]{message}[/red]")
    log_message(f"ERROR: {message}")


def print_success(message: str) -> None:
    """Print success message in green."""
    from taskflow.utils.logging import log_message

    console.print(f"[success][[SUCCESS]][/success] [green]{message}[/green]")
    log_message(f"SUCCESS: {message}")


def print_warning(message: str) -> None:
    """Print warning message in yellow."""
    from taskflow.utils.logging import log_message

    console.print(f"[warning][[WARNING]][/warning] [yellow]{message}[/yellow]")
    log_message(f"WARNING: {message}")


def print_info(message: str) -> None:
    """Print info message in blue/cyan."""
    from taskflow.utils.logging import log_message

    console.print(f"[info][[INFO]][/info] [cyan]{message}[/cyan]")
    log_message(f"INFO: {message}")


def print_header(title: str) -> None:
    """Print section header in magenta."""
    console.print()
    console.print(f"[header]=== {title} ===[/header]")
    console.print()


def print_step(message: str) -> None:
    """Print step indicator with arrow."""
    console.print(f"[step]➜[/step] {message}")


def show_version() -> None:
    """Display version information."""
    from taskflow import REQUIRED_GIT_VERSION

    console.print(f"[bold]TASKFLOW[/bold] v{__version__}")
    console.print()
    console.print("Requirements:")
    console.print(f"  - git: >= {REQUIRED_GIT_VERSION} (worktree support)")
    console.print()


__all__ = [
    "console",
    "console_err",
    "custom_theme",
    "print_error",
    "print_success",
    "print_warning",
    "print_info",
    "print_header",
    "print_step",
    "show_version",
]
