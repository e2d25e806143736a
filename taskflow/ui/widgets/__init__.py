"""Reusable Textual widgets for TASKFLOW."""

from taskflow.ui.widgets.operation import OperationWidget

__all__ = ["OperationWidget"]
