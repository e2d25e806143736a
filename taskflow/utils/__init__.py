"""Utility modules for TASKFLOW.

This package contains:
- console: Rich-based terminal output utilities
- errors: Custom exceptions and exit codes
- logging: Logging configuration
"""

from taskflow.utils.console import (
    console,
    print_error,
    print_header,
    print_info,
    print_step,
    print_success,
    print_warning,
)
from taskflow.utils.errors import ExitCode, TaskflowError
from taskflow.utils.logging import log_command, log_message, setup_logging

__all__ = [
    # Console
    "console",
    "print_error",
    "print_success",
    "print_warning",
    "print_info",
    "print_header",
    "print_step",
    # Errors
    "ExitCode",
    "TaskflowError",
    # Logging
    "setup_logging",
    "log_message",
    "log_command",
]
