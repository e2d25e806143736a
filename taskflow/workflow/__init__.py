"""Task status lifecycle for TASKFLOW.

This package contains:
- status: Status domain, cycle order and the transition table
- steps: Workflow steps and note composition
- state_machine: StatusStateMachine applying steps through a Task Store
"""

from taskflow.workflow.status import (
    STATUS_CYCLE,
    TRANSITIONS,
    StatusTransitionRule,
    TaskStatus,
    TransitionValidation,
    cycle_next,
    validate_transition,
)
from taskflow.workflow.steps import WorkflowStep, parse_step
from taskflow.workflow.state_machine import StatusStateMachine, WorkflowStepResult

__all__ = [
    "STATUS_CYCLE",
    "TRANSITIONS",
    "StatusTransitionRule",
    "TaskStatus",
    "TransitionValidation",
    "cycle_next",
    "validate_transition",
    "WorkflowStep",
    "parse_step",
    "StatusStateMachine",
    "WorkflowStepResult",
]
