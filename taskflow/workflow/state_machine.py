"""Status state machine for tasks and subtasks.

Validates status changes against the closed transition table and maps
named workflow steps to a status change plus a structured note. All
persistence goes through the injected :class:`TaskStore`.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from taskflow.store.base import TaskStore, is_subtask_id
from taskflow.utils.errors import InvalidTransitionError, TaskNotFoundError
from taskflow.utils.logging import log_message
from taskflow.workflow.status import (
    CYCLE_STEP,
    TaskStatus,
    TransitionValidation,
    cycle_next,
    validate_transition,
)
from taskflow.workflow.steps import (
    WorkflowStep,
    compose_note,
    format_progress_entry,
    format_timestamp,
    parse_step,
)

_PR_CREATED_RE = re.compile(r"PR created:", re.IGNORECASE)
_MERGED_RE = re.compile(r"Merged:", re.IGNORECASE)
_COMMITTED_RE = re.compile(r"Progress committed", re.IGNORECASE)
_STARTED_STATUSES = frozenset(
    {TaskStatus.IN_PROGRESS, TaskStatus.REVIEW, TaskStatus.DONE, TaskStatus.BLOCKED}
)


@dataclass(frozen=True)
class WorkflowStepResult:
    """Outcome of applying a workflow step.

    Attributes:
        entity_id: Task or subtask id the step was applied to
        step: The applied step
        previous_status: Status before the step
        status: Status after the step
        status_changed: Whether the store was asked to change the status
        note: Note appended, if any
    """

    entity_id: str
    step: str
    previous_status: str
    status: str
    status_changed: bool
    note: str | None = None


class StatusStateMachine:
    """Applies workflow steps to tasks and subtasks.

    Args:
        store: Task Store collaborator
        clock: Returns the current time; used for note timestamps
    """

    def __init__(self, store: TaskStore, clock: Callable[[], datetime] | None = None) -> None:
        self._store = store
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @staticmethod
    def validate_transition(
        from_status: str | TaskStatus,
        to_status: str | TaskStatus,
        step: str,
    ) -> TransitionValidation:
        """Validate a status change; see :func:`taskflow.workflow.status.validate_transition`."""
        return validate_transition(from_status, to_status, step)

    @staticmethod
    def cycle_next(current: str | TaskStatus) -> TaskStatus:
        return cycle_next(current)

    def _current_status(self, entity_id: str) -> TaskStatus:
        entity = self._store.get_task(entity_id)
        if entity is None:
            raise TaskNotFoundError(entity_id)
        return TaskStatus.parse(entity.status)

    def _append_note(self, entity_id: str, note: str) -> None:
        if is_subtask_id(entity_id):
            self._store.update_subtask(entity_id, note)
        else:
            self._store.update_task(entity_id, note)

    def _check(self, current: TaskStatus, target: TaskStatus, step: str) -> None:
        validation = validate_transition(current, target, step)
        if not validation.is_valid:
            raise InvalidTransitionError(
                validation.reason,
                from_status=current.value,
                to_status=target.value,
                step=step,
                valid_options=validation.valid_options,
            )

    def apply_workflow_step(
        self,
        entity_id: str,
        step: str | WorkflowStep,
        ctx: Mapping[str, Any] | None = None,
    ) -> WorkflowStepResult:
        """Apply a named workflow step to a task or subtask.

        The step is validated fully before anything is written: an unknown
        step or a disallowed status change leaves the entity untouched.

        Args:
            entity_id: Task id ("4") or subtask id ("4.2")
            step: Workflow step name
            ctx: Step context used to compose the note

        Returns:
            WorkflowStepResult describing what was applied

        Raises:
            ValueError: If entity_id is empty
            UnknownStepError: If the step is not recognised
            TaskNotFoundError: If the entity does not exist
            InvalidTransitionError: If the status change is not in the table
        """
        if not entity_id:
            raise ValueError("entity_id is required")
        workflow_step = parse_step(step)

        current = self._current_status(entity_id)
        target = workflow_step.target_status
        change_status = target is not None and target is not current
        if change_status:
            assert target is not None
            self._check(current, target, workflow_step.value)

        note = compose_note(workflow_step, ctx, self._clock())

        if change_status:
            assert target is not None
            self._store.set_task_status(entity_id, target.value)
        if note:
            self._append_note(entity_id, note)

        final = target if change_status and target is not None else current
        log_message(
            f"Workflow step {workflow_step.value} applied to {entity_id}: "
            f"{current.value} -> {final.value}"
        )
        return WorkflowStepResult(
            entity_id=entity_id,
            step=workflow_step.value,
            previous_status=current.value,
            status=final.value,
            status_changed=change_status,
            note=note,
        )

    def cycle_status(self, entity_id: str) -> WorkflowStepResult:
        """Advance an entity to the next status in the cycle and reload the store."""
        if not entity_id:
            raise ValueError("entity_id is required")
        current = self._current_status(entity_id)
        target = cycle_next(current)
        self._check(current, target, CYCLE_STEP)

        self._store.set_task_status(entity_id, target.value)
        self._store.reload_tasks()
        log_message(f"Cycled status of {entity_id}: {current.value} -> {target.value}")
        return WorkflowStepResult(
            entity_id=entity_id,
            step=CYCLE_STEP,
            previous_status=current.value,
            status=target.value,
            status_changed=True,
        )

    def get_workflow_steps_for_task(self, task_id: str) -> list[str]:
        """Infer which workflow steps already happened for a task.

        Uses the status and the notes recorded in the task details.

        Raises:
            TaskNotFoundError: If the task does not exist
        """
        entity = self._store.get_task(task_id)
        if entity is None:
            raise TaskNotFoundError(task_id)

        steps: list[str] = []
        status = TaskStatus.parse(entity.status)
        details = entity.details or ""

        if status in _STARTED_STATUSES:
            steps.append(WorkflowStep.START_IMPLEMENTATION.value)
        if _COMMITTED_RE.search(details):
            steps.append(WorkflowStep.COMMIT_PROGRESS.value)
        if status is TaskStatus.REVIEW:
            steps.append(WorkflowStep.REQUEST_REVIEW.value)
        if _PR_CREATED_RE.search(details):
            steps.append(WorkflowStep.PR_CREATED.value)
        if _MERGED_RE.search(details):
            steps.append(WorkflowStep.MERGED.value)
        elif status is TaskStatus.DONE:
            steps.append(WorkflowStep.COMPLETE_IMPLEMENTATION.value)
        return steps

    def update_task_with_metadata(self, task_id: str, metadata: Mapping[str, Any]) -> str:
        """Append a metadata note (branch, worktree, other keys) to a task.

        Returns:
            The note that was appended
        """
        if not task_id:
            raise ValueError("task_id is required")
        labels = {"branch": "Branch", "worktree_path": "Worktree", "worktree": "Worktree"}
        lines = [f"Workflow metadata ({format_timestamp(self._clock())})"]
        for key, value in metadata.items():
            if value is None or value == "":
                continue
            label = labels.get(key, key.replace("_", " ").capitalize())
            lines.append(f"{label}: {value}")
        note = "\n".join(lines)
        self._append_note(task_id, note)
        return note

    def update_subtask_with_progress(self, subtask_id: str, progress: Mapping[str, Any]) -> str:
        """Append a structured "## Implementation Progress" note.

        Returns:
            The note that was appended
        """
        if not subtask_id:
            raise ValueError("subtask_id is required")
        note = format_progress_entry(progress, format_timestamp(self._clock()))
        self._append_note(subtask_id, note)
        return note


__all__ = ["StatusStateMachine", "WorkflowStepResult"]
