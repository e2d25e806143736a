"""Named workflow steps and the notes they append.

Each workflow step is a business event (``pr-created``, ``merged`` ...)
with a fixed effect: an optional target status and an optional note
composed from the caller's context. Step names are parsed into the closed
:class:`WorkflowStep` enum at the boundary; unknown names never reach the
state machine.

Context keys (all optional):
    branch, worktree_path, worktree   start-implementation
    commit_message, findings, decisions   commit-progress
    phase, findings, decisions, next_steps   subtask-progress
    completion_summary   complete-implementation
    pr_url, branch, commit_hash   pr-created
    merge_commit, pr_url   merged
    feedback   request-changes
    reason   defer-task, cancel-task, block-task
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from taskflow.utils.errors import UnknownStepError
from taskflow.workflow.status import TaskStatus


class WorkflowStep(Enum):
    """Closed set of workflow steps."""

    START_IMPLEMENTATION = "start-implementation"
    COMMIT_PROGRESS = "commit-progress"
    SUBTASK_PROGRESS = "subtask-progress"
    COMPLETE_IMPLEMENTATION = "complete-implementation"
    PR_CREATED = "pr-created"
    MERGED = "merged"
    REQUEST_REVIEW = "request-review"
    APPROVE_REVIEW = "approve-review"
    REOPEN_TASK = "reopen-task"
    REQUEST_CHANGES = "request-changes"
    DEFER_TASK = "defer-task"
    CANCEL_TASK = "cancel-task"
    BLOCK_TASK = "block-task"
    UNBLOCK_TASK = "unblock-task"

    @property
    def target_status(self) -> TaskStatus | None:
        """Status this step moves the entity to, or None for note-only steps."""
        return _STEP_TARGETS[self]


_STEP_TARGETS: dict[WorkflowStep, TaskStatus | None] = {
    WorkflowStep.START_IMPLEMENTATION: TaskStatus.IN_PROGRESS,
    WorkflowStep.COMMIT_PROGRESS: None,
    WorkflowStep.SUBTASK_PROGRESS: None,
    WorkflowStep.COMPLETE_IMPLEMENTATION: TaskStatus.DONE,
    WorkflowStep.PR_CREATED: None,
    WorkflowStep.MERGED: TaskStatus.DONE,
    WorkflowStep.REQUEST_REVIEW: TaskStatus.REVIEW,
    WorkflowStep.APPROVE_REVIEW: TaskStatus.DONE,
    WorkflowStep.REOPEN_TASK: TaskStatus.PENDING,
    WorkflowStep.REQUEST_CHANGES: TaskStatus.IN_PROGRESS,
    WorkflowStep.DEFER_TASK: TaskStatus.DEFERRED,
    WorkflowStep.CANCEL_TASK: TaskStatus.CANCELLED,
    WorkflowStep.BLOCK_TASK: TaskStatus.BLOCKED,
    WorkflowStep.UNBLOCK_TASK: TaskStatus.IN_PROGRESS,
}


def parse_step(step: str | WorkflowStep | None) -> WorkflowStep:
    """Parse a step name into a WorkflowStep.

    Raises:
        UnknownStepError: If the name is not a known step
    """
    if isinstance(step, WorkflowStep):
        return step
    if not isinstance(step, str):
        raise UnknownStepError(str(step))
    try:
        return WorkflowStep(step.strip())
    except ValueError:
        raise UnknownStepError(step) from None


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC timestamp with milliseconds, e.g. 2025-01-04T12:00:00.000Z."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def _text(ctx: Mapping[str, Any], key: str) -> str:
    value = ctx.get(key)
    if value is None:
        return ""
    return str(value).strip()


def _lines(header: str, fields: list[tuple[str, str]]) -> str:
    parts = [header]
    parts.extend(f"{label}: {value}" for label, value in fields if value)
    return "\n".join(parts)


def _worktree_fields(ctx: Mapping[str, Any]) -> tuple[str, str]:
    branch = _text(ctx, "branch")
    path = _text(ctx, "worktree_path")
    worktree = ctx.get("worktree")
    if isinstance(worktree, Mapping):
        branch = branch or _text(worktree, "branch")
        path = path or _text(worktree, "path") or _text(worktree, "worktree_path")
    elif worktree is not None:
        branch = branch or str(getattr(worktree, "branch", "") or "")
        path = path or str(getattr(worktree, "worktree_path", "") or "")
    return branch, path


def _start_note(ctx: Mapping[str, Any], ts: str) -> str | None:
    branch, path = _worktree_fields(ctx)
    return _lines(f"Implementation started ({ts})", [("Branch", branch), ("Worktree", path)])


def _commit_note(ctx: Mapping[str, Any], ts: str) -> str | None:
    return _lines(
        f"Progress committed ({ts})",
        [
            ("Commit", _text(ctx, "commit_message")),
            ("Findings", _text(ctx, "findings")),
            ("Decisions", _text(ctx, "decisions")),
        ],
    )


def format_progress_entry(progress: Mapping[str, Any], ts: str) -> str:
    """Compose a structured "## Implementation Progress" entry."""
    parts = [f"## Implementation Progress ({ts})"]
    for label, key in (
        ("Phase", "phase"),
        ("Findings", "findings"),
        ("Decisions", "decisions"),
        ("Next Steps", "next_steps"),
    ):
        value = _text(progress, key)
        if value:
            parts.append(f"**{label}:** {value}")
    return "\n".join(parts)


def _subtask_progress_note(ctx: Mapping[str, Any], ts: str) -> str | None:
    return format_progress_entry(ctx, ts)


def _complete_note(ctx: Mapping[str, Any], ts: str) -> str | None:
    return _lines(
        f"Implementation completed ({ts})",
        [("Summary", _text(ctx, "completion_summary"))],
    )


def _pr_created_note(ctx: Mapping[str, Any], ts: str) -> str | None:
    lines = [f"PR created: {_text(ctx, 'pr_url')}"]
    for label, key in (("Branch", "branch"), ("Commit", "commit_hash")):
        value = _text(ctx, key)
        if value:
            lines.append(f"{label}: {value}")
    lines.append(f"Recorded: {ts}")
    return "\n".join(lines)


def _merged_note(ctx: Mapping[str, Any], ts: str) -> str | None:
    lines = [f"Merged: {_text(ctx, 'merge_commit')}"]
    pr_url = _text(ctx, "pr_url")
    if pr_url:
        lines.append(f"PR: {pr_url}")
    lines.append(f"Recorded: {ts}")
    return "\n".join(lines)


def _optional_note(label: str, key: str) -> Callable[[Mapping[str, Any], str], str | None]:
    def compose(ctx: Mapping[str, Any], ts: str) -> str | None:
        value = _text(ctx, key)
        return f"{label} ({ts}): {value}" if value else None

    return compose


def _no_note(ctx: Mapping[str, Any], ts: str) -> str | None:
    return None


NoteComposer = Callable[[Mapping[str, Any], str], "str | None"]

_NOTE_COMPOSERS: dict[WorkflowStep, NoteComposer] = {
    WorkflowStep.START_IMPLEMENTATION: _start_note,
    WorkflowStep.COMMIT_PROGRESS: _commit_note,
    WorkflowStep.SUBTASK_PROGRESS: _subtask_progress_note,
    WorkflowStep.COMPLETE_IMPLEMENTATION: _complete_note,
    WorkflowStep.PR_CREATED: _pr_created_note,
    WorkflowStep.MERGED: _merged_note,
    WorkflowStep.REQUEST_REVIEW: _no_note,
    WorkflowStep.APPROVE_REVIEW: _no_note,
    WorkflowStep.REOPEN_TASK: _no_note,
    WorkflowStep.REQUEST_CHANGES: _optional_note("Changes requested", "feedback"),
    WorkflowStep.DEFER_TASK: _optional_note("Deferred", "reason"),
    WorkflowStep.CANCEL_TASK: _optional_note("Cancelled", "reason"),
    WorkflowStep.BLOCK_TASK: _optional_note("Blocked", "reason"),
    WorkflowStep.UNBLOCK_TASK: _no_note,
}


def compose_note(step: WorkflowStep, ctx: Mapping[str, Any] | None, moment: datetime) -> str | None:
    """Compose the note a step appends, or None if it appends nothing."""
    return _NOTE_COMPOSERS[step](ctx or {}, format_timestamp(moment))


__all__ = [
    "WorkflowStep",
    "parse_step",
    "format_timestamp",
    "format_progress_entry",
    "compose_note",
]
