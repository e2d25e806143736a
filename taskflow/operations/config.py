"""Static registry of streaming operation types.

Each long-running operation the UI can start (PRD parsing, complexity
analysis, task expansion) is described by an :class:`OperationConfig`:
its display label, the ordered phases it reports, the rotating progress
hints shown while it runs, and whether the user may cancel it.

The registry is built once at import time and never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType

from taskflow.utils.errors import UnknownOperationError


class OperationType(Enum):
    """Known operation types."""

    PARSE_PRD = "parse_prd"
    ANALYZE_COMPLEXITY = "analyze_complexity"
    EXPAND_TASK = "expand_task"
    EXPAND_ALL = "expand_all"


@dataclass(frozen=True)
class OperationConfig:
    """Immutable description of one operation type.

    Attributes:
        type: Operation type identifier (e.g. "parse_prd")
        label: Human-readable title shown in the operation screen
        phases: Ordered phase names reported through ``on_phase``
        progress_hints: Cosmetic messages rotated while the operation runs
        cancellable: Whether ``cancel()`` is allowed for this type
    """

    type: str
    label: str
    phases: tuple[str, ...]
    progress_hints: tuple[str, ...] = ()
    cancellable: bool = True

    def phase_index(self, name: str) -> int | None:
        """Return the position of ``name`` in ``phases`` or None."""
        try:
            return self.phases.index(name)
        except ValueError:
            return None


_REGISTRY: dict[str, OperationConfig] = {
    OperationType.PARSE_PRD.value: OperationConfig(
        type=OperationType.PARSE_PRD.value,
        label="Parsing PRD",
        phases=(
            "reading-document",
            "analyzing-requirements",
            "generating-tasks",
            "saving-tasks",
        ),
        progress_hints=(
            "Reading the product requirements...",
            "Identifying features and constraints...",
            "Breaking requirements into tasks...",
            "Ordering tasks by dependency...",
        ),
    ),
    OperationType.ANALYZE_COMPLEXITY.value: OperationConfig(
        type=OperationType.ANALYZE_COMPLEXITY.value,
        label="Analyzing task complexity",
        phases=(
            "loading-tasks",
            "analyzing-complexity",
            "generating-report",
        ),
        progress_hints=(
            "Scoring each task...",
            "Looking for tasks worth splitting...",
            "Writing recommendations...",
        ),
    ),
    OperationType.EXPAND_TASK.value: OperationConfig(
        type=OperationType.EXPAND_TASK.value,
        label="Expanding task",
        phases=(
            "loading-task",
            "generating-subtasks",
            "saving-subtasks",
        ),
        progress_hints=(
            "Reading task details...",
            "Drafting subtasks...",
            "Checking subtask dependencies...",
        ),
    ),
    OperationType.EXPAND_ALL.value: OperationConfig(
        type=OperationType.EXPAND_ALL.value,
        label="Expanding all tasks",
        phases=(
            "loading-tasks",
            "expanding-tasks",
            "saving-subtasks",
        ),
        progress_hints=(
            "Collecting pending tasks...",
            "Drafting subtasks for each task...",
            "This can take a while for large task lists...",
        ),
    ),
}

OPERATION_CONFIGS = MappingProxyType(_REGISTRY)


def get_operation_config(op_type: str | OperationType) -> OperationConfig:
    """Look up the configuration for an operation type.

    Args:
        op_type: Operation type name or enum member

    Returns:
        The registered OperationConfig

    Raises:
        UnknownOperationError: If no configuration is registered for the type
    """
    key = op_type.value if isinstance(op_type, OperationType) else op_type
    config = OPERATION_CONFIGS.get(key)
    if config is None:
        raise UnknownOperationError(f"Unknown operation type: {key}")
    return config


def list_operation_types() -> list[str]:
    """Return every registered operation type, in registration order."""
    return list(OPERATION_CONFIGS)


__all__ = [
    "OperationType",
    "OperationConfig",
    "OPERATION_CONFIGS",
    "get_operation_config",
    "list_operation_types",
]
