"""Textual screen classes for TASKFLOW."""

from taskflow.ui.screens.branch_conflict import BranchConflictModal
from taskflow.ui.screens.operation import OperationScreen

__all__ = ["BranchConflictModal", "OperationScreen"]
