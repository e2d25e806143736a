"""Value objects for subtask worktrees and branch conflicts.

This module provides:
- canonical_worktree_name: ``task-{task_id}.{subtask_id}``
- WorktreeInfo: One entry of ``git worktree list --porcelain``
- WorktreeLookup: Result of a worktree service call
- WorktreeGitStatus: Parsed ``git status`` of a worktree
- BranchConflict / ConflictDecision: The three-way decision protocol
- WorktreeBinding / ResolveOutcome: What the resolver records and returns
- WorktreeService: Protocol implemented by GitWorktreeService and fakes
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Protocol, runtime_checkable

from taskflow.utils.errors import TaskflowError


def canonical_worktree_name(task_id: str, subtask_id: str) -> str:
    """Branch and worktree directory name for a subtask."""
    return f"task-{task_id}.{subtask_id}"


def subtask_key(task_id: str, subtask_id: str) -> str:
    return f"{task_id}.{subtask_id}"


@dataclass(frozen=True)
class WorktreeInfo:
    """One worktree as reported by ``git worktree list --porcelain``."""

    path: Path
    head: str = ""
    branch: str | None = None
    bare: bool = False
    detached: bool = False
    locked: bool = False
    prunable: bool = False


@dataclass(frozen=True)
class WorktreeLookup:
    """Result of asking the worktree service for a subtask worktree.

    Attributes:
        branch_name: Canonical branch name
        worktree_path: Path of the subtask worktree
        source_branch: Branch the worktree was (or would be) cut from
        exists: The canonical worktree was already checked out
        created: A new worktree was created by this call
        needs_user_decision: The branch already exists; nothing was changed
        branch_in_use_at: Worktree where the existing branch is checked out
    """

    branch_name: str
    worktree_path: Path
    source_branch: str
    exists: bool = False
    created: bool = False
    needs_user_decision: bool = False
    branch_in_use_at: Path | None = None

    @property
    def worktree_name(self) -> str:
        return self.worktree_path.name


@dataclass(frozen=True)
class WorktreeGitStatus:
    """Working-tree status of a worktree.

    Attributes:
        path: Worktree path
        entries: ``(status_code, filepath)`` tuples from ``git status --porcelain -z``
    """

    path: Path
    entries: tuple[tuple[str, str], ...] = ()

    @property
    def is_clean(self) -> bool:
        return not self.entries

    @property
    def untracked_files(self) -> list[str]:
        return [path for code, path in self.entries if code == "??"]

    @property
    def changed_files(self) -> list[str]:
        return [path for code, path in self.entries if code != "??"]


@dataclass(frozen=True)
class BranchConflict:
    """A subtask's canonical branch already exists.

    Created only when a conflict is detected and consumed exactly once by
    a decision.
    """

    branch_name: str
    task_id: str
    subtask_id: str
    source_branch: str
    worktree_path: Path
    branch_in_use_at: Path | None = None

    @property
    def subtask_key(self) -> str:
        return subtask_key(self.task_id, self.subtask_id)

    def describe(self) -> str:
        """One-line description for prompts and logs."""
        if self.branch_in_use_at is not None:
            return f"Branch '{self.branch_name}' is already checked out at {self.branch_in_use_at}"
        return f"Branch '{self.branch_name}' already exists"


class ConflictDecision(Enum):
    """The three answers to a branch conflict."""

    USE_EXISTING = "use-existing"
    RECREATE = "recreate"
    CANCEL = "cancel"

    @classmethod
    def parse(cls, value: str | ConflictDecision) -> ConflictDecision:
        """Parse a decision name.

        Raises:
            TaskflowError: If the value is not one of the three decisions
        """
        if isinstance(value, ConflictDecision):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise TaskflowError(
                f"Unknown conflict decision: {value} (expected use-existing, recreate or cancel)"
            ) from None


@dataclass(frozen=True)
class WorktreeBinding:
    """Record that a subtask owns a worktree. At most one per subtask key."""

    subtask_key: str
    worktree_name: str
    worktree_path: Path
    branch: str
    source_branch: str = ""

    @classmethod
    def from_lookup(cls, key: str, lookup: WorktreeLookup) -> WorktreeBinding:
        return cls(
            subtask_key=key,
            worktree_name=lookup.worktree_name,
            worktree_path=lookup.worktree_path,
            branch=lookup.branch_name,
            source_branch=lookup.source_branch,
        )


@dataclass(frozen=True)
class ResolveOutcome:
    """Result of ``resolve`` or ``apply_decision``."""

    created: bool = False
    reused: bool = False
    cancelled: bool = False
    needs_user_decision: bool = False
    binding: WorktreeBinding | None = None
    conflict: BranchConflict | None = field(default=None)


@runtime_checkable
class WorktreeService(Protocol):
    """Git/worktree collaborator used by the branch conflict resolver."""

    def get_or_create_worktree_for_subtask(
        self, task_id: str, subtask_id: str, *, source_branch: str, title: str = ""
    ) -> WorktreeLookup: ...

    def use_existing_branch_for_subtask(
        self, task_id: str, subtask_id: str, *, source_branch: str, title: str = ""
    ) -> WorktreeLookup: ...

    def force_create_worktree_for_subtask(
        self, task_id: str, subtask_id: str, *, source_branch: str, title: str = ""
    ) -> WorktreeLookup: ...

    def get_worktree_git_status(self, path: Path) -> WorktreeGitStatus: ...


__all__ = [
    "canonical_worktree_name",
    "subtask_key",
    "WorktreeInfo",
    "WorktreeLookup",
    "WorktreeGitStatus",
    "BranchConflict",
    "ConflictDecision",
    "WorktreeBinding",
    "ResolveOutcome",
    "WorktreeService",
]
