"""Test fakes for the Task Store and worktree service."""

from tests.fakes.fake_task_store import FakeTaskStore
from tests.fakes.fake_worktree_service import FakeWorktreeService

__all__ = [
    "FakeTaskStore",
    "FakeWorktreeService",
]
