"""Typer application and main entry point for the CLI.

Thin command layer over the workflow engine: status cycling and
validation, workflow steps, subtask worktree resolution, operation
types and configuration.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from taskflow.config.manager import ConfigManager
from taskflow.config.settings import Settings
from taskflow.operations.config import OPERATION_CONFIGS
from taskflow.store.json_store import JsonTaskStore
from taskflow.ui.menus import prompt_branch_conflict
from taskflow.ui.prompts import prompt_confirm
from taskflow.utils.console import (
    console,
    print_error,
    print_info,
    print_success,
    print_warning,
    show_version,
)
from taskflow.utils.errors import ExitCode, TaskflowError, UserCancelledError
from taskflow.utils.logging import setup_logging
from taskflow.workflow.state_machine import StatusStateMachine
from taskflow.workflow.status import validate_transition
from taskflow.worktrees.git import GitWorktreeService, find_repo_root
from taskflow.worktrees.models import ConflictDecision, ResolveOutcome
from taskflow.worktrees.resolver import BranchConflictResolver

# Create Typer app
app = typer.Typer(
    name="taskflow",
    help="TASKFLOW - Task workflow and streaming operation engine",
    add_completion=False,
    no_args_is_help=True,
)
status_app = typer.Typer(help="Inspect and change task status", no_args_is_help=True)
config_app = typer.Typer(help="Show or change configuration", no_args_is_help=True)
app.add_typer(status_app, name="status")
app.add_typer(config_app, name="config")


def version_callback(value: bool) -> None:
    """Display version and exit."""
    if value:
        show_version()
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            callback=version_callback,
            is_eager=True,
            help="Show version information",
        ),
    ] = None,
) -> None:
    """TASKFLOW - Task workflow and streaming operation engine."""
    setup_logging()


# =============================================================================
# Helpers
# =============================================================================


@contextmanager
def _handle_errors() -> Iterator[None]:
    """Map TaskflowError to its exit code."""
    try:
        yield
    except UserCancelledError as e:
        print_info(str(e))
        raise typer.Exit(ExitCode.USER_CANCELLED) from e
    except TaskflowError as e:
        print_error(str(e))
        raise typer.Exit(e.exit_code) from e
    except KeyboardInterrupt as e:
        print_info("Cancelled by user")
        raise typer.Exit(ExitCode.USER_CANCELLED) from e


def _project_root() -> Path:
    return find_repo_root() or Path.cwd()


def _load_settings() -> Settings:
    config = ConfigManager()
    return config.load()


def _state_machine(settings: Settings, project_root: Path) -> StatusStateMachine:
    store = JsonTaskStore(settings.resolve_tasks_file(project_root))
    return StatusStateMachine(store)


def _parse_assignments(values: list[str] | None) -> dict[str, str]:
    ctx: dict[str, str] = {}
    for item in values or []:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"Expected key=value, got '{item}'", param_hint="--set")
        ctx[key.strip()] = value
    return ctx


def _report_outcome(outcome: ResolveOutcome) -> None:
    binding = outcome.binding
    if outcome.cancelled:
        print_warning("Cancelled; no worktree was bound")
    elif binding is not None and outcome.created:
        print_success(f"Created worktree {binding.worktree_path} on branch {binding.branch}")
    elif binding is not None:
        print_success(f"Using worktree {binding.worktree_path} on branch {binding.branch}")


# =============================================================================
# Status commands
# =============================================================================


@status_app.command("next")
def status_next(
    entity_id: Annotated[str, typer.Argument(help="Task id (4) or subtask id (4.2)")],
) -> None:
    """Advance a task or subtask to the next status in the cycle."""
    with _handle_errors():
        project_root = _project_root()
        machine = _state_machine(_load_settings(), project_root)
        result = machine.cycle_status(entity_id)
        print_success(f"{entity_id}: {result.previous_status} → {result.status}")


@status_app.command("check")
def status_check(
    from_status: Annotated[str, typer.Argument(help="Current status")],
    to_status: Annotated[str, typer.Argument(help="Requested status")],
    step: Annotated[str, typer.Argument(help="Workflow step name")],
) -> None:
    """Check whether a status change is allowed for a workflow step."""
    validation = validate_transition(from_status, to_status, step)
    if validation.is_valid:
        print_success(f"{from_status} → {to_status} via {step} is allowed")
        return
    print_error(validation.reason)
    if validation.valid_options:
        print_info(f"Valid targets from {from_status}: {', '.join(validation.valid_options)}")
    raise typer.Exit(ExitCode.INVALID_TRANSITION)


@app.command("step")
def apply_step(
    entity_id: Annotated[str, typer.Argument(help="Task id (4) or subtask id (4.2)")],
    step: Annotated[str, typer.Argument(help="Workflow step, e.g. pr-created")],
    values: Annotated[
        list[str] | None,
        typer.Option("--set", "-s", help="Step context as key=value (repeatable)"),
    ] = None,
) -> None:
    """Apply a workflow step to a task or subtask."""
    ctx = _parse_assignments(values)
    with _handle_errors():
        project_root = _project_root()
        machine = _state_machine(_load_settings(), project_root)
        result = machine.apply_workflow_step(entity_id, step, ctx)
        if result.status_changed:
            print_success(f"{entity_id}: {result.previous_status} → {result.status}")
        else:
            print_info(f"{entity_id}: status unchanged ({result.status})")
        if result.note:
            console.print(result.note, markup=False, highlight=False)


# =============================================================================
# Worktree command
# =============================================================================


@app.command("worktree")
def worktree(
    task_id: Annotated[str, typer.Argument(help="Parent task id")],
    subtask_id: Annotated[str, typer.Argument(help="Subtask id")],
    source_branch: Annotated[
        str | None,
        typer.Option("--source-branch", help="Branch to cut new worktrees from"),
    ] = None,
    decision: Annotated[
        str | None,
        typer.Option(
            "--decision",
            help="Answer for an existing branch: use-existing, recreate or cancel",
        ),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Do not ask again before recreating a branch"),
    ] = False,
) -> None:
    """Bind a subtask to its dedicated branch and worktree."""
    with _handle_errors():
        settings = _load_settings()
        project_root = _project_root()
        service = GitWorktreeService.from_settings(settings, project_root)
        resolver = BranchConflictResolver(
            service, default_source_branch=settings.default_source_branch
        )

        outcome = resolver.resolve(task_id, subtask_id, source_branch)
        if outcome.needs_user_decision and outcome.conflict is not None:
            conflict = outcome.conflict
            if decision is not None:
                choice = ConflictDecision.parse(decision)
                print_warning(conflict.describe())
            else:
                choice = prompt_branch_conflict(conflict)
            if choice is ConflictDecision.RECREATE and not yes:
                confirmed = prompt_confirm(
                    f"Delete branch {conflict.branch_name} and recreate it "
                    f"from {conflict.source_branch}?"
                )
                if not confirmed:
                    choice = ConflictDecision.CANCEL
            outcome = resolver.apply_decision(choice, conflict)

        _report_outcome(outcome)
        if outcome.cancelled:
            raise typer.Exit(ExitCode.USER_CANCELLED)


# =============================================================================
# Operations / config commands
# =============================================================================


@app.command("operations")
def operations() -> None:
    """List the registered operation types and their phases."""
    table = Table(title="Operations")
    table.add_column("Type", style="cyan")
    table.add_column("Label")
    table.add_column("Phases")
    table.add_column("Cancellable")
    for config in OPERATION_CONFIGS.values():
        table.add_row(
            config.type,
            config.label,
            " → ".join(config.phases),
            "yes" if config.cancellable else "no",
        )
    console.print(table)


@config_app.command("show")
def config_show() -> None:
    """Show effective configuration values and where they come from."""
    config = ConfigManager()
    settings = config.load()
    table = Table(title="Configuration")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_column("Source", style="dim")
    for key in Settings.get_config_keys():
        attr = settings.get_attribute_for_key(key)
        value = getattr(settings, attr) if attr else ""
        table.add_row(key, str(value), config.get_source(key))
    console.print(table)


@config_app.command("set")
def config_set(
    key: Annotated[str, typer.Argument(help="Configuration key, e.g. DEFAULT_SOURCE_BRANCH")],
    value: Annotated[str, typer.Argument(help="Value to store")],
    local: Annotated[
        bool,
        typer.Option("--local", help="Write to the project's .taskflow file"),
    ] = False,
) -> None:
    """Store a configuration value."""
    if key not in Settings.get_config_keys():
        print_error(f"Unknown configuration key: {key}")
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    config = ConfigManager()
    config.load()
    try:
        config.save(key, value, scope="local" if local else "global")
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR) from e
    print_success(f"Saved {key}")


__all__ = ["app", "main"]
