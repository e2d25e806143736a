"""Task status domain and the closed transition table.

This module provides:
- TaskStatus: Enum of task/subtask statuses
- STATUS_CYCLE / cycle_next: Order used by "advance to next status"
- StatusTransitionRule: One row of the transition table
- TRANSITIONS: The closed table of allowed (from, to, step) triples
- TransitionValidation / validate_transition: Table lookup with alternatives
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from taskflow.utils.errors import TaskflowError


class TaskStatus(Enum):
    """Status values a task or subtask can hold."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    REVIEW = "review"
    DONE = "done"
    DEFERRED = "deferred"
    CANCELLED = "cancelled"
    BLOCKED = "blocked"

    @classmethod
    def parse(cls, value: str | TaskStatus) -> TaskStatus:
        """Parse a status name.

        Raises:
            TaskflowError: If the value is not a known status
        """
        if isinstance(value, TaskStatus):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            raise TaskflowError(f"Unknown task status: {value} (expected one of: {valid})") from None


# "blocked" is recognised but never reached by cycling.
STATUS_CYCLE: tuple[TaskStatus, ...] = (
    TaskStatus.PENDING,
    TaskStatus.IN_PROGRESS,
    TaskStatus.REVIEW,
    TaskStatus.DONE,
    TaskStatus.DEFERRED,
    TaskStatus.CANCELLED,
)

CYCLE_STEP = "cycle-status"


def cycle_next(current: str | TaskStatus) -> TaskStatus:
    """Return the status after ``current`` in the cycle.

    Statuses outside the cycle (and unknown strings) advance to pending.
    """
    try:
        status = TaskStatus.parse(current)
    except TaskflowError:
        return TaskStatus.PENDING
    if status not in STATUS_CYCLE:
        return TaskStatus.PENDING
    index = STATUS_CYCLE.index(status)
    return STATUS_CYCLE[(index + 1) % len(STATUS_CYCLE)]


@dataclass(frozen=True)
class StatusTransitionRule:
    """One allowed status change."""

    from_status: TaskStatus
    to_status: TaskStatus
    step: str


def _rule(from_status: TaskStatus, to_status: TaskStatus, step: str) -> StatusTransitionRule:
    return StatusTransitionRule(from_status, to_status, step)


_S = TaskStatus

_STEP_RULES: tuple[StatusTransitionRule, ...] = (
    _rule(_S.PENDING, _S.IN_PROGRESS, "start-implementation"),
    _rule(_S.PENDING, _S.DEFERRED, "defer-task"),
    _rule(_S.PENDING, _S.CANCELLED, "cancel-task"),
    _rule(_S.PENDING, _S.DONE, "complete-implementation"),
    _rule(_S.PENDING, _S.DONE, "merged"),
    _rule(_S.DEFERRED, _S.IN_PROGRESS, "start-implementation"),
    _rule(_S.IN_PROGRESS, _S.REVIEW, "request-review"),
    _rule(_S.IN_PROGRESS, _S.DONE, "complete-implementation"),
    _rule(_S.IN_PROGRESS, _S.DONE, "merged"),
    _rule(_S.IN_PROGRESS, _S.BLOCKED, "block-task"),
    _rule(_S.IN_PROGRESS, _S.DEFERRED, "defer-task"),
    _rule(_S.IN_PROGRESS, _S.CANCELLED, "cancel-task"),
    _rule(_S.REVIEW, _S.DONE, "approve-review"),
    _rule(_S.REVIEW, _S.DONE, "merged"),
    _rule(_S.REVIEW, _S.DONE, "complete-implementation"),
    _rule(_S.REVIEW, _S.IN_PROGRESS, "request-changes"),
    _rule(_S.BLOCKED, _S.IN_PROGRESS, "unblock-task"),
    _rule(_S.BLOCKED, _S.CANCELLED, "cancel-task"),
    _rule(_S.BLOCKED, _S.DONE, "merged"),
    _rule(_S.DEFERRED, _S.DONE, "merged"),
    _rule(_S.DONE, _S.PENDING, "reopen-task"),
    _rule(_S.DEFERRED, _S.PENDING, "reopen-task"),
    _rule(_S.CANCELLED, _S.PENDING, "reopen-task"),
)

_CYCLE_RULES: tuple[StatusTransitionRule, ...] = tuple(
    _rule(status, cycle_next(status), CYCLE_STEP) for status in STATUS_CYCLE
)

TRANSITIONS: tuple[StatusTransitionRule, ...] = _STEP_RULES + _CYCLE_RULES

_TRANSITION_SET: frozenset[tuple[TaskStatus, TaskStatus, str]] = frozenset(
    (rule.from_status, rule.to_status, rule.step) for rule in TRANSITIONS
)


def valid_targets(from_status: str | TaskStatus) -> list[str]:
    """List every status reachable from ``from_status`` by any step, in table order."""
    try:
        status = TaskStatus.parse(from_status)
    except TaskflowError:
        return []
    targets: list[str] = []
    for rule in TRANSITIONS:
        if rule.from_status is status and rule.to_status.value not in targets:
            targets.append(rule.to_status.value)
    return targets


def is_allowed(from_status: TaskStatus, to_status: TaskStatus, step: str) -> bool:
    return (from_status, to_status, step) in _TRANSITION_SET


@dataclass(frozen=True)
class TransitionValidation:
    """Result of validating a status change.

    Attributes:
        is_valid: Whether (from, to, step) is a row of the table
        reason: Explanation when invalid
        valid_options: Targets reachable from ``from`` by any step
        step: The step that was validated
    """

    is_valid: bool
    step: str
    reason: str = ""
    valid_options: list[str] = field(default_factory=list)


def validate_transition(
    from_status: str | TaskStatus,
    to_status: str | TaskStatus,
    step: str,
) -> TransitionValidation:
    """Validate a status change against the transition table.

    Args:
        from_status: Current status
        to_status: Requested status
        step: Workflow step name requesting the change

    Returns:
        TransitionValidation; invalid results list the reachable targets
    """
    from_value = from_status.value if isinstance(from_status, TaskStatus) else str(from_status)
    to_value = to_status.value if isinstance(to_status, TaskStatus) else str(to_status)

    try:
        source = TaskStatus.parse(from_status)
        target = TaskStatus.parse(to_status)
    except TaskflowError:
        return TransitionValidation(
            is_valid=False,
            step=step,
            reason=f"Invalid transition from {from_value} to {to_value}: unknown status",
            valid_options=valid_targets(from_status),
        )

    if is_allowed(source, target, step):
        return TransitionValidation(is_valid=True, step=step)

    return TransitionValidation(
        is_valid=False,
        step=step,
        reason=f"Invalid transition from {from_value} to {to_value} via {step}",
        valid_options=valid_targets(source),
    )


__all__ = [
    "TaskStatus",
    "STATUS_CYCLE",
    "CYCLE_STEP",
    "cycle_next",
    "StatusTransitionRule",
    "TRANSITIONS",
    "TransitionValidation",
    "valid_targets",
    "is_allowed",
    "validate_transition",
]
