"""Branch conflict resolution for subtask worktrees.

``resolve`` binds a subtask to its canonical worktree, or reports a
:class:`BranchConflict` when the canonical branch already exists. The
caller settles a conflict with ``apply_decision``: ``use-existing`` keeps
the branch as is, ``cancel`` changes nothing, and ``recreate`` delegates
to :meth:`BranchConflictResolver.recreate_branch`, the only destructive
path.

Calls for the same subtask key are serialized with a per-key lock.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from taskflow.utils.errors import (
    ConflictAlreadyResolvedError,
    ConflictUnresolvedError,
    GitOperationError,
)
from taskflow.utils.logging import log_message
from taskflow.worktrees.models import (
    BranchConflict,
    ConflictDecision,
    ResolveOutcome,
    WorktreeBinding,
    WorktreeService,
    subtask_key,
)


class BranchConflictResolver:
    """Owns the worktree bindings of subtasks.

    Args:
        service: Git/worktree collaborator
        default_source_branch: Source branch used when ``resolve`` gets none
    """

    def __init__(self, service: WorktreeService, default_source_branch: str = "main") -> None:
        self._service = service
        self._default_source_branch = default_source_branch
        self._bindings: dict[str, WorktreeBinding] = {}
        self._pending: dict[str, BranchConflict] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._lock_users: dict[str, int] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _locked(self, key: str) -> Iterator[None]:
        with self._locks_guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._locks_guard:
                self._lock_users[key] -= 1
                # Keys with no waiters and nothing left to guard drop their lock.
                if (
                    self._lock_users[key] == 0
                    and key not in self._bindings
                    and key not in self._pending
                ):
                    del self._lock_users[key]
                    del self._locks[key]

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def bindings(self) -> dict[str, WorktreeBinding]:
        """Copy of the current bindings keyed by subtask key."""
        return dict(self._bindings)

    def get_binding(self, key: str) -> WorktreeBinding | None:
        return self._bindings.get(key)

    def pending_conflict(self, key: str) -> BranchConflict | None:
        return self._pending.get(key)

    def release(self, key: str) -> WorktreeBinding | None:
        """Forget a binding without touching git."""
        with self._locked(key):
            return self._bindings.pop(key, None)

    # =========================================================================
    # Resolution
    # =========================================================================

    def resolve(
        self,
        task_id: str,
        subtask_id: str,
        source_branch: str | None = None,
        title: str = "",
    ) -> ResolveOutcome:
        """Bind a subtask to its worktree, or report a conflict.

        Returns:
            ``reused`` for an existing binding or canonical worktree,
            ``created`` for a fresh branch/worktree, or
            ``needs_user_decision`` with a conflict (nothing changed)

        Raises:
            ConflictUnresolvedError: If a conflict for this subtask awaits a decision
            GitOperationError: If a git command fails
        """
        key = subtask_key(task_id, subtask_id)
        with self._locked(key):
            binding = self._bindings.get(key)
            if binding is not None and binding.worktree_path.exists():
                return ResolveOutcome(reused=True, binding=binding)

            pending = self._pending.get(key)
            if pending is not None:
                raise ConflictUnresolvedError(key, pending.branch_name)

            source = source_branch or self._default_source_branch
            lookup = self._service.get_or_create_worktree_for_subtask(
                task_id, subtask_id, source_branch=source, title=title
            )

            if lookup.needs_user_decision:
                conflict = BranchConflict(
                    branch_name=lookup.branch_name,
                    task_id=task_id,
                    subtask_id=subtask_id,
                    source_branch=source,
                    worktree_path=lookup.worktree_path,
                    branch_in_use_at=lookup.branch_in_use_at,
                )
                self._pending[key] = conflict
                log_message(f"Branch conflict for {key}: {conflict.describe()}")
                return ResolveOutcome(needs_user_decision=True, conflict=conflict)

            binding = WorktreeBinding.from_lookup(key, lookup)
            self._bindings[key] = binding
            return ResolveOutcome(created=lookup.created, reused=not lookup.created, binding=binding)

    def _require_pending(self, conflict: BranchConflict) -> None:
        if self._pending.get(conflict.subtask_key) != conflict:
            raise ConflictAlreadyResolvedError(
                f"Branch conflict for {conflict.subtask_key} is not pending"
            )

    def apply_decision(
        self, decision: str | ConflictDecision, conflict: BranchConflict
    ) -> ResolveOutcome:
        """Settle a pending conflict.

        Args:
            decision: ``use-existing``, ``recreate`` or ``cancel``
            conflict: The conflict returned by ``resolve``

        Raises:
            TaskflowError: If the decision is not recognised
            ConflictAlreadyResolvedError: If the conflict is not the pending one
            GitOperationError: If a git command fails; the conflict stays pending
        """
        choice = ConflictDecision.parse(decision)
        if choice is ConflictDecision.RECREATE:
            return self.recreate_branch(conflict)

        key = conflict.subtask_key
        with self._locked(key):
            self._require_pending(conflict)

            if choice is ConflictDecision.CANCEL:
                del self._pending[key]
                log_message(f"Branch conflict for {key} cancelled")
                return ResolveOutcome(cancelled=True, binding=self._bindings.get(key))

            lookup = self._service.use_existing_branch_for_subtask(
                conflict.task_id,
                conflict.subtask_id,
                source_branch=conflict.source_branch,
            )
            binding = WorktreeBinding.from_lookup(key, lookup)
            self._bindings[key] = binding
            del self._pending[key]
            log_message(f"Subtask {key} bound to existing branch {binding.branch}")
            return ResolveOutcome(reused=True, binding=binding)

    def recreate_branch(self, conflict: BranchConflict) -> ResolveOutcome:
        """Replace the conflicting branch with a fresh one from ``conflict.source_branch``.

        Destructive. On failure the previous binding is kept and the
        conflict stays pending so the caller can decide again.

        Raises:
            ConflictAlreadyResolvedError: If the conflict is not the pending one
            GitOperationError: If the git service could not recreate the branch
        """
        key = conflict.subtask_key
        with self._locked(key):
            self._require_pending(conflict)
            try:
                lookup = self._service.force_create_worktree_for_subtask(
                    conflict.task_id,
                    conflict.subtask_id,
                    source_branch=conflict.source_branch,
                )
            except GitOperationError as e:
                log_message(f"Recreating branch {conflict.branch_name} failed: {e}")
                raise

            binding = WorktreeBinding.from_lookup(key, lookup)
            self._bindings[key] = binding
            del self._pending[key]
            log_message(f"Subtask {key} bound to recreated branch {binding.branch}")
            return ResolveOutcome(created=True, binding=binding)


__all__ = ["BranchConflictResolver"]
