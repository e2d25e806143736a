"""Custom exceptions and exit codes for TASKFLOW.

This module defines the exit codes and exception hierarchy used throughout
the engine: operation orchestration, the status state machine and the
branch conflict resolver all raise subclasses of :class:`TaskflowError`.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, ClassVar


class ExitCode(IntEnum):
    """Exit codes reported by the CLI.

    These codes are used for consistent error reporting and can be
    checked by calling scripts or CI systems.
    """

    SUCCESS = 0
    GENERAL_ERROR = 1
    OPERATION_BUSY = 2
    INVALID_TRANSITION = 3
    USER_CANCELLED = 4
    GIT_ERROR = 5
    CONFLICT_UNRESOLVED = 6


class TaskflowError(Exception):
    """Base exception for TASKFLOW errors.

    All custom exceptions in this application should inherit from this class.
    Each exception type has an associated exit code for proper error reporting.
    """

    _default_exit_code: ClassVar[ExitCode] = ExitCode.GENERAL_ERROR

    def __init__(self, message: str, exit_code: ExitCode | None = None) -> None:
        """Initialize the exception."""
        super().__init__(message)
        self._exit_code = exit_code

    @property
    def exit_code(self) -> ExitCode:
        """Get the exit code for this exception."""
        if self._exit_code is not None:
            return self._exit_code
        return self.__class__._default_exit_code


# ── Operation orchestration ──────────────────────────────────────────────────


class OperationBusyError(TaskflowError):
    """Another operation is already preparing or processing.

    Raised synchronously by ``OperationOrchestrator.start``; the in-flight
    operation is left untouched and the call is not retried.
    """

    _default_exit_code: ClassVar[ExitCode] = ExitCode.OPERATION_BUSY

    def __init__(self, active_type: str, requested_type: str) -> None:
        self.active_type = active_type
        self.requested_type = requested_type
        super().__init__(
            f"Cannot start '{requested_type}': operation '{active_type}' is still running"
        )


class OperationCancelledError(TaskflowError):
    """Cooperative cancellation sentinel.

    Executors raise this (usually via ``CancelToken.raise_if_cancelled``) at
    their suspension points. The orchestrator reports it as ``cancelled``,
    never as a failure.
    """

    _default_exit_code: ClassVar[ExitCode] = ExitCode.USER_CANCELLED

    def __init__(self, message: str = "Operation cancelled") -> None:
        super().__init__(message)


class OperationExecutionError(TaskflowError):
    """An executor raised an exception.

    The message is the original exception text, verbatim. ``context`` carries
    the operation type, the phase that was running and the original error type.
    The original exception is chained as ``__cause__``.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.context: dict[str, Any] = dict(context or {})


class OperationStateError(TaskflowError):
    """An orchestrator method was called in a state that does not allow it."""


class OperationNotCancellableError(OperationStateError):
    """Cancellation was requested for an operation type that is not cancellable."""


class UnknownOperationError(TaskflowError):
    """No OperationConfig is registered for the requested operation type."""


# ── Status state machine ─────────────────────────────────────────────────────


class InvalidTransitionError(TaskflowError):
    """A status change is not present in the transition table.

    Attributes:
        from_status: Status the entity currently has
        to_status: Status that was requested
        step: Workflow step that requested the change
        valid_options: Targets reachable from ``from_status`` by any step
    """

    _default_exit_code: ClassVar[ExitCode] = ExitCode.INVALID_TRANSITION

    def __init__(
        self,
        message: str,
        *,
        from_status: str = "",
        to_status: str = "",
        step: str = "",
        valid_options: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.from_status = from_status
        self.to_status = to_status
        self.step = step
        self.valid_options = list(valid_options or [])


class UnknownStepError(TaskflowError):
    """The workflow step name is not one of the known steps."""

    _default_exit_code: ClassVar[ExitCode] = ExitCode.INVALID_TRANSITION

    def __init__(self, step: str) -> None:
        self.step = step
        super().__init__(f"Unknown workflow step: {step}")


class TaskNotFoundError(TaskflowError):
    """The Task Store has no task or subtask with the given id."""

    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"Task {task_id} not found")


# ── Branch conflicts ─────────────────────────────────────────────────────────


class ConflictUnresolvedError(TaskflowError):
    """A worktree bind was attempted while a conflict decision is pending."""

    _default_exit_code: ClassVar[ExitCode] = ExitCode.CONFLICT_UNRESOLVED

    def __init__(self, subtask_key: str, branch_name: str) -> None:
        self.subtask_key = subtask_key
        self.branch_name = branch_name
        super().__init__(
            f"Branch conflict for subtask {subtask_key} on '{branch_name}' "
            "is waiting for a decision"
        )


class ConflictAlreadyResolvedError(TaskflowError):
    """A decision was applied to a conflict that is no longer pending."""

    _default_exit_code: ClassVar[ExitCode] = ExitCode.CONFLICT_UNRESOLVED


class GitOperationError(TaskflowError):
    """Git operation failed.

    Raised when:
    - Not in a git repository
    - Branch creation, rename or deletion fails
    - A worktree cannot be added or removed
    - Any other git command fails
    """

    _default_exit_code: ClassVar[ExitCode] = ExitCode.GIT_ERROR


class UserCancelledError(TaskflowError):
    """User cancelled an interactive prompt.

    Raised when:
    - User presses Ctrl+C
    - User dismisses a prompt without answering
    """

    _default_exit_code: ClassVar[ExitCode] = ExitCode.USER_CANCELLED


__all__ = [
    "ExitCode",
    "TaskflowError",
    "OperationBusyError",
    "OperationCancelledError",
    "OperationExecutionError",
    "OperationStateError",
    "OperationNotCancellableError",
    "UnknownOperationError",
    "InvalidTransitionError",
    "UnknownStepError",
    "TaskNotFoundError",
    "ConflictUnresolvedError",
    "ConflictAlreadyResolvedError",
    "GitOperationError",
    "UserCancelledError",
]
