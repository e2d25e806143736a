"""Subtask worktrees and branch conflict resolution.

This package contains:
- models: Worktree value objects and the WorktreeService protocol
- git: GitWorktreeService, the git CLI adapter
- resolver: BranchConflictResolver and its three-way decision protocol
"""

from taskflow.worktrees.git import GitWorktreeService
from taskflow.worktrees.models import (
    BranchConflict,
    ConflictDecision,
    ResolveOutcome,
    WorktreeBinding,
    WorktreeGitStatus,
    WorktreeInfo,
    WorktreeLookup,
    WorktreeService,
    canonical_worktree_name,
)
from taskflow.worktrees.resolver import BranchConflictResolver

__all__ = [
    "BranchConflict",
    "BranchConflictResolver",
    "ConflictDecision",
    "GitWorktreeService",
    "ResolveOutcome",
    "WorktreeBinding",
    "WorktreeGitStatus",
    "WorktreeInfo",
    "WorktreeLookup",
    "WorktreeService",
    "canonical_worktree_name",
]
