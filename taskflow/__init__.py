"""TASKFLOW - Task workflow and streaming operation engine.

This package provides the core behind the task-management TUI: single-flight
long-running operations, the validated task status lifecycle, and exclusive
git worktree resolution for subtasks.
"""

__version__ = "0.0.0-dev"
SCRIPT_NAME = "TASKFLOW"
REQUIRED_GIT_VERSION = "2.17.0"

__all__ = [
    "__version__",
    "SCRIPT_NAME",
    "REQUIRED_GIT_VERSION",
]
