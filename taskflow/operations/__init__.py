"""Streaming operations for TASKFLOW.

This package contains:
- config: Static registry of operation types, phases and progress hints
- models: Operation state, snapshots, cancel token and callbacks
- orchestrator: Single-flight OperationOrchestrator
"""

from taskflow.operations.config import (
    OPERATION_CONFIGS,
    OperationConfig,
    OperationType,
    get_operation_config,
    list_operation_types,
)
from taskflow.operations.models import (
    CancelToken,
    Operation,
    OperationCallbacks,
    OperationSnapshot,
    OperationState,
)
from taskflow.operations.orchestrator import OperationHandle, OperationOrchestrator

__all__ = [
    # Config
    "OPERATION_CONFIGS",
    "OperationConfig",
    "OperationType",
    "get_operation_config",
    "list_operation_types",
    # Models
    "CancelToken",
    "Operation",
    "OperationCallbacks",
    "OperationSnapshot",
    "OperationState",
    # Orchestrator
    "OperationHandle",
    "OperationOrchestrator",
]
