"""Git worktree operations for subtasks.

This module provides the git CLI adapter used by the branch conflict
resolver: canonical subtask branches/worktrees, reuse of an existing
branch, and an atomic "recreate" that parks the old branch under a backup
name until the fresh worktree exists.

Every git command is logged with its exit code; failures raise
GitOperationError.
"""

from __future__ import annotations

import subprocess
import time
from pathlib import Path
from typing import TYPE_CHECKING

from taskflow.utils.errors import GitOperationError
from taskflow.utils.logging import log_command, log_message
from taskflow.worktrees.models import (
    WorktreeGitStatus,
    WorktreeInfo,
    WorktreeLookup,
    canonical_worktree_name,
)

if TYPE_CHECKING:
    from taskflow.config.settings import Settings


def find_repo_root() -> Path | None:
    """Find the git repository root by looking for .git directory.

    Traverses from current working directory upward until:
    - A .git directory is found (returns that directory)
    - The filesystem root is reached (returns None)

    Returns:
        Path to repository root, or None if not in a repository
    """
    current = Path.cwd()
    while True:
        if (current / ".git").exists():
            return current

        parent = current.parent
        if parent == current:  # Reached filesystem root
            break
        current = parent

    return None


def parse_porcelain_z_output(output: str) -> list[tuple[str, str]]:
    """Parse git status --porcelain -z output.

    Format for each entry:
    - Regular file: ``XY path\\0``
    - Renamed/copied: ``XY new_path\\0old_path\\0``

    With ``-z`` the first path of a rename is the **new** path; the
    following NUL-separated token is the old path.

    Returns:
        List of ``(status_code, filepath)`` tuples where *filepath* is the
        relevant path (new path for renames/copies).
    """
    if not output:
        return []

    entries: list[tuple[str, str]] = []
    parts = output.split("\0")

    i = 0
    while i < len(parts):
        part = parts[i]
        if len(part) < 3:
            i += 1
            continue

        status_code = part[:2]
        filepath = part[3:]

        if status_code[0] in ("R", "C") and i + 1 < len(parts):
            i += 2  # skip the old-path token
        else:
            i += 1

        entries.append((status_code, filepath))

    return entries


def parse_worktree_list(output: str) -> list[WorktreeInfo]:
    """Parse ``git worktree list --porcelain`` output.

    Entries are separated by blank lines; each starts with ``worktree <path>``
    followed by ``HEAD <sha>`` and ``branch refs/heads/<name>`` or
    ``detached``, plus optional ``bare``/``locked``/``prunable`` lines.
    """
    worktrees: list[WorktreeInfo] = []
    current: dict[str, object] = {}

    def flush() -> None:
        if "path" in current:
            worktrees.append(WorktreeInfo(**current))  # type: ignore[arg-type]
        current.clear()

    for line in output.splitlines():
        if not line.strip():
            flush()
            continue
        key, _, value = line.partition(" ")
        if key == "worktree":
            flush()
            current["path"] = Path(value)
        elif key == "HEAD":
            current["head"] = value
        elif key == "branch":
            current["branch"] = value.removeprefix("refs/heads/")
        elif key in ("bare", "detached", "locked", "prunable"):
            current[key] = True
    flush()
    return worktrees


def _same_path(a: Path, b: Path) -> bool:
    return Path(a).resolve() == Path(b).resolve()


class GitWorktreeService:
    """Creates and inspects subtask worktrees with the git CLI.

    Attributes:
        project_root: Repository the worktrees belong to
        worktrees_root: Directory holding the subtask worktrees
        default_source_branch: Branch used when none is given
    """

    def __init__(
        self,
        project_root: Path,
        worktrees_root: Path | None = None,
        default_source_branch: str = "main",
    ) -> None:
        self.project_root = Path(project_root)
        self.worktrees_root = (
            Path(worktrees_root)
            if worktrees_root is not None
            else self.project_root.parent / f"{self.project_root.name}-worktrees"
        )
        self.default_source_branch = default_source_branch

    @classmethod
    def from_settings(cls, settings: Settings, project_root: Path) -> GitWorktreeService:
        return cls(
            project_root=project_root,
            worktrees_root=settings.resolve_worktrees_root(project_root),
            default_source_branch=settings.default_source_branch,
        )

    # =========================================================================
    # Low-level helpers
    # =========================================================================

    def _git(self, *args: str, cwd: Path | None = None) -> subprocess.CompletedProcess[str]:
        cmd = ["git", *args]
        cmd_str = " ".join(cmd)
        try:
            result = subprocess.run(
                cmd,
                cwd=cwd or self.project_root,
                capture_output=True,
                text=True,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            log_command(cmd_str, e.returncode)
            detail = (e.stderr or "").strip() or f"exit code {e.returncode}"
            raise GitOperationError(f"{cmd_str} failed: {detail}") from e
        except FileNotFoundError as e:
            raise GitOperationError("git executable not found") from e
        log_command(cmd_str, result.returncode)
        return result

    def worktree_path_for(self, task_id: str, subtask_id: str) -> Path:
        return self.worktrees_root / canonical_worktree_name(task_id, subtask_id)

    def branch_exists(self, branch: str) -> bool:
        """Check whether a local branch exists."""
        result = subprocess.run(
            ["git", "show-ref", "--verify", "--quiet", f"refs/heads/{branch}"],
            cwd=self.project_root,
            capture_output=True,
        )
        log_command(f"git show-ref --verify --quiet refs/heads/{branch}", result.returncode)
        return result.returncode == 0

    def list_worktrees(self) -> list[WorktreeInfo]:
        """List all worktrees of the repository."""
        result = self._git("worktree", "list", "--porcelain")
        return parse_worktree_list(result.stdout)

    def find_branch_checkout(self, branch: str) -> Path | None:
        """Return the worktree where ``branch`` is checked out, if any."""
        for info in self.list_worktrees():
            if info.branch == branch:
                return info.path
        return None

    def get_worktree_git_status(self, path: Path) -> WorktreeGitStatus:
        """Read the working-tree status of a worktree."""
        result = self._git("status", "--porcelain", "-z", cwd=Path(path))
        return WorktreeGitStatus(
            path=Path(path),
            entries=tuple(parse_porcelain_z_output(result.stdout)),
        )

    def _add_worktree(self, path: Path, branch: str, source_branch: str | None = None) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        if source_branch is None:
            self._git("worktree", "add", str(path), branch)
        else:
            self._git("worktree", "add", "-b", branch, str(path), source_branch)

    def _remove_worktree(self, path: Path) -> None:
        self._git("worktree", "remove", "--force", str(path))

    # =========================================================================
    # Subtask worktrees
    # =========================================================================

    def get_or_create_worktree_for_subtask(
        self,
        task_id: str,
        subtask_id: str,
        *,
        source_branch: str | None = None,
        title: str = "",
    ) -> WorktreeLookup:
        """Find or create the canonical worktree for a subtask.

        An existing branch is never modified here: unless it is already
        checked out at the canonical path, the result asks for a decision.
        """
        branch = canonical_worktree_name(task_id, subtask_id)
        path = self.worktree_path_for(task_id, subtask_id)
        source = source_branch or self.default_source_branch

        if self.branch_exists(branch):
            in_use_at = self.find_branch_checkout(branch)
            if in_use_at is not None and _same_path(in_use_at, path):
                log_message(f"Reusing worktree {path} for subtask {task_id}.{subtask_id}")
                return WorktreeLookup(
                    branch_name=branch, worktree_path=path, source_branch=source, exists=True
                )
            log_message(f"Branch {branch} already exists (checked out at: {in_use_at})")
            return WorktreeLookup(
                branch_name=branch,
                worktree_path=path,
                source_branch=source,
                needs_user_decision=True,
                branch_in_use_at=in_use_at,
            )

        if path.exists():
            raise GitOperationError(
                f"Worktree directory already exists at {path} but branch {branch} does not"
            )

        label = f" ({title})" if title else ""
        log_message(f"Creating worktree {path} from {source} for subtask {task_id}.{subtask_id}{label}")
        self._add_worktree(path, branch, source)
        return WorktreeLookup(branch_name=branch, worktree_path=path, source_branch=source, created=True)

    def use_existing_branch_for_subtask(
        self,
        task_id: str,
        subtask_id: str,
        *,
        source_branch: str | None = None,
        title: str = "",
    ) -> WorktreeLookup:
        """Bind to the existing canonical branch without changing it.

        If the branch is checked out somewhere, that worktree is used as is;
        otherwise a worktree is added for it at the canonical path.
        """
        branch = canonical_worktree_name(task_id, subtask_id)
        source = source_branch or self.default_source_branch
        if not self.branch_exists(branch):
            raise GitOperationError(f"Branch {branch} does not exist")

        in_use_at = self.find_branch_checkout(branch)
        if in_use_at is not None:
            log_message(f"Using existing worktree {in_use_at} for branch {branch}")
            return WorktreeLookup(
                branch_name=branch, worktree_path=in_use_at, source_branch=source, exists=True
            )

        path = self.worktree_path_for(task_id, subtask_id)
        log_message(f"Adding worktree {path} for existing branch {branch}")
        self._add_worktree(path, branch)
        return WorktreeLookup(branch_name=branch, worktree_path=path, source_branch=source, created=True)

    def force_create_worktree_for_subtask(
        self,
        task_id: str,
        subtask_id: str,
        *,
        source_branch: str | None = None,
        title: str = "",
    ) -> WorktreeLookup:
        """Replace the canonical branch with a fresh one cut from ``source_branch``.

        Destructive: uncommitted work in the old worktree is lost. The old
        branch is renamed to a backup first and deleted only after the new
        worktree exists; on failure the old branch and its worktree are put
        back and the error is re-raised.
        """
        branch = canonical_worktree_name(task_id, subtask_id)
        path = self.worktree_path_for(task_id, subtask_id)
        source = source_branch or self.default_source_branch

        if not self.branch_exists(branch):
            return self.get_or_create_worktree_for_subtask(
                task_id, subtask_id, source_branch=source, title=title
            )

        old_checkout = self.find_branch_checkout(branch)
        backup = f"{branch}-backup-{int(time.time())}"

        if old_checkout is not None:
            self._remove_worktree(old_checkout)
        try:
            self._git("branch", "-m", branch, backup)
        except GitOperationError:
            if old_checkout is not None:
                self._restore_checkout(old_checkout, branch)
            raise

        try:
            self._add_worktree(path, branch, source)
        except GitOperationError:
            log_message(f"Recreating {branch} failed, restoring previous branch")
            self._rollback_recreate(branch, backup, path, old_checkout)
            raise

        try:
            self._git("branch", "-D", backup)
        except GitOperationError as e:
            log_message(f"Recreated {branch} but could not delete backup branch {backup}: {e}")
        log_message(f"Recreated branch {branch} from {source} at {path}")
        return WorktreeLookup(branch_name=branch, worktree_path=path, source_branch=source, created=True)

    def _restore_checkout(self, path: Path, branch: str) -> None:
        try:
            self._add_worktree(path, branch)
        except GitOperationError as e:
            log_message(f"Could not restore worktree {path} for {branch}: {e}")

    def _rollback_recreate(
        self, branch: str, backup: str, path: Path, old_checkout: Path | None
    ) -> None:
        if path.exists():
            try:
                self._remove_worktree(path)
            except GitOperationError as e:
                log_message(f"Could not remove partial worktree {path}: {e}")
        if self.branch_exists(branch):
            self._git("branch", "-D", branch)
        self._git("branch", "-m", backup, branch)
        if old_checkout is not None:
            self._restore_checkout(old_checkout, branch)


__all__ = [
    "find_repo_root",
    "parse_porcelain_z_output",
    "parse_worktree_list",
    "GitWorktreeService",
]
