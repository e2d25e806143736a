"""Tests for taskflow.worktrees.git module.

git is never invoked: ``subprocess.run`` is replaced by a stub that keeps
a set of branches and answers ``show-ref`` / ``worktree list`` from it.
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from taskflow.config.settings import Settings
from taskflow.utils.errors import GitOperationError
from taskflow.worktrees.git import (
    GitWorktreeService,
    find_repo_root,
    parse_porcelain_z_output,
    parse_worktree_list,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class GitStub:
    """Callable standing in for subprocess.run."""

    def __init__(
        self,
        branches: tuple[str, ...] = (),
        worktree_list: str = "",
        fail_on: tuple[tuple[str, ...], ...] = (),
        status_output: str = "",
    ) -> None:
        self.branches = set(branches)
        self.worktree_list = worktree_list
        self.fail_on = fail_on
        self.status_output = status_output
        self.commands: list[list[str]] = []

    def __call__(self, cmd, **kwargs):
        self.commands.append(list(cmd))
        args = list(cmd[1:])
        if args[0] == "show-ref":
            ref = args[-1].removeprefix("refs/heads/")
            return MagicMock(returncode=0 if ref in self.branches else 1, stdout="", stderr="")
        for prefix in self.fail_on:
            if args[: len(prefix)] == list(prefix):
                raise subprocess.CalledProcessError(128, cmd, output="", stderr="fatal: boom")
        stdout = ""
        if args[:2] == ["worktree", "list"]:
            stdout = self.worktree_list
        elif args[0] == "status":
            stdout = self.status_output
        elif args[:2] == ["branch", "-m"]:
            self.branches.discard(args[2])
            self.branches.add(args[3])
        elif args[:2] == ["branch", "-D"]:
            self.branches.discard(args[2])
        elif args[:3] == ["worktree", "add", "-b"]:
            self.branches.add(args[3])
        return MagicMock(returncode=0, stdout=stdout, stderr="")

    def git_args(self) -> list[list[str]]:
        return [c[1:] for c in self.commands if c[1] != "show-ref"]


def worktree_entry(path: Path, branch: str) -> str:
    return f"worktree {path}\nHEAD abc123\nbranch refs/heads/{branch}\n\n"


@pytest.fixture
def project(tmp_path) -> Path:
    root = tmp_path / "app"
    root.mkdir()
    return root


@pytest.fixture
def service(project, tmp_path) -> GitWorktreeService:
    return GitWorktreeService(project, worktrees_root=tmp_path / "wt", default_source_branch="main")


def run_with(stub: GitStub):
    return patch("taskflow.worktrees.git.subprocess.run", side_effect=stub)


# ===========================================================================
# Parsers
# ===========================================================================


class TestParsers:
    def test_porcelain_z(self):
        output = "M  src/a.py\0?? notes.txt\0R  new.py\0old.py\0"

        assert parse_porcelain_z_output(output) == [
            ("M ", "src/a.py"),
            ("??", "notes.txt"),
            ("R ", "new.py"),
        ]

    def test_porcelain_empty(self):
        assert parse_porcelain_z_output("") == []

    def test_worktree_list(self):
        output = (
            "worktree /repo\nHEAD 111\nbranch refs/heads/main\n\n"
            "worktree /wt/task-4.2\nHEAD 222\nbranch refs/heads/task-4.2\nlocked\n\n"
            "worktree /wt/detached\nHEAD 333\ndetached\n"
        )

        worktrees = parse_worktree_list(output)

        assert [w.branch for w in worktrees] == ["main", "task-4.2", None]
        assert worktrees[1].locked is True
        assert worktrees[2].detached is True
        assert worktrees[0].path == Path("/repo")


class TestFindRepoRoot:
    def test_finds_git_directory(self, tmp_path, monkeypatch):
        (tmp_path / ".git").mkdir()
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)

        assert find_repo_root() == tmp_path


# ===========================================================================
# Service
# ===========================================================================


class TestServiceBasics:
    def test_from_settings(self, project):
        settings = Settings(default_source_branch="develop")

        service = GitWorktreeService.from_settings(settings, project)

        assert service.worktrees_root == project.parent / "app-worktrees"
        assert service.default_source_branch == "develop"

    def test_worktree_path(self, service, tmp_path):
        assert service.worktree_path_for("4", "2") == tmp_path / "wt" / "task-4.2"

    def test_git_failure_raises(self, service):
        stub = GitStub(fail_on=(("worktree", "list"),))
        with run_with(stub), pytest.raises(GitOperationError, match="fatal: boom"):
            service.list_worktrees()

    def test_missing_git_executable(self, service):
        with patch("taskflow.worktrees.git.subprocess.run", side_effect=FileNotFoundError("git")):
            with pytest.raises(GitOperationError, match="git executable not found"):
                service.list_worktrees()

    def test_git_status(self, service, tmp_path):
        stub = GitStub(status_output="?? new.txt\0 M changed.py\0")
        with run_with(stub):
            status = service.get_worktree_git_status(tmp_path)

        assert status.is_clean is False
        assert status.untracked_files == ["new.txt"]
        assert status.changed_files == ["changed.py"]


class TestGetOrCreate:
    def test_creates_branch_and_worktree(self, service, tmp_path):
        stub = GitStub()
        with run_with(stub):
            lookup = service.get_or_create_worktree_for_subtask("4", "2", source_branch="develop")

        path = tmp_path / "wt" / "task-4.2"
        assert lookup.created is True
        assert lookup.branch_name == "task-4.2"
        assert lookup.source_branch == "develop"
        assert stub.git_args() == [["worktree", "add", "-b", "task-4.2", str(path), "develop"]]

    def test_default_source_branch(self, service):
        stub = GitStub()
        with run_with(stub):
            lookup = service.get_or_create_worktree_for_subtask("4", "2")

        assert lookup.source_branch == "main"

    def test_reuses_canonical_checkout(self, service, tmp_path):
        path = tmp_path / "wt" / "task-4.2"
        stub = GitStub(branches=("task-4.2",), worktree_list=worktree_entry(path, "task-4.2"))
        with run_with(stub):
            lookup = service.get_or_create_worktree_for_subtask("4", "2")

        assert lookup.exists is True
        assert lookup.needs_user_decision is False
        assert ["worktree", "list", "--porcelain"] in stub.git_args()
        assert not any(args[:2] == ["worktree", "add"] for args in stub.git_args())

    def test_existing_branch_elsewhere_needs_decision(self, service, tmp_path):
        other = tmp_path / "other"
        stub = GitStub(branches=("task-4.2",), worktree_list=worktree_entry(other, "task-4.2"))
        with run_with(stub):
            lookup = service.get_or_create_worktree_for_subtask("4", "2")

        assert lookup.needs_user_decision is True
        assert lookup.branch_in_use_at == other
        assert stub.git_args() == [["worktree", "list", "--porcelain"]]

    def test_existing_branch_not_checked_out_needs_decision(self, service):
        stub = GitStub(branches=("task-4.2",))
        with run_with(stub):
            lookup = service.get_or_create_worktree_for_subtask("4", "2")

        assert lookup.needs_user_decision is True
        assert lookup.branch_in_use_at is None

    def test_stale_directory_without_branch(self, service, tmp_path):
        (tmp_path / "wt" / "task-4.2").mkdir(parents=True)
        with run_with(GitStub()), pytest.raises(GitOperationError, match="already exists"):
            service.get_or_create_worktree_for_subtask("4", "2")


class TestUseExisting:
    def test_missing_branch(self, service):
        with run_with(GitStub()), pytest.raises(GitOperationError, match="does not exist"):
            service.use_existing_branch_for_subtask("4", "2")

    def test_uses_current_checkout(self, service, tmp_path):
        other = tmp_path / "other"
        stub = GitStub(branches=("task-4.2",), worktree_list=worktree_entry(other, "task-4.2"))
        with run_with(stub):
            lookup = service.use_existing_branch_for_subtask("4", "2")

        assert lookup.exists is True
        assert lookup.worktree_path == other

    def test_adds_worktree_for_branch(self, service, tmp_path):
        stub = GitStub(branches=("task-4.2",))
        with run_with(stub):
            lookup = service.use_existing_branch_for_subtask("4", "2")

        path = tmp_path / "wt" / "task-4.2"
        assert lookup.created is True
        assert stub.git_args()[-1] == ["worktree", "add", str(path), "task-4.2"]


class TestForceCreate:
    def test_recreate_replaces_branch(self, service, tmp_path):
        other = tmp_path / "other"
        path = tmp_path / "wt" / "task-4.2"
        stub = GitStub(branches=("task-4.2",), worktree_list=worktree_entry(other, "task-4.2"))
        with run_with(stub), patch("taskflow.worktrees.git.time.time", return_value=1700000000):
            lookup = service.force_create_worktree_for_subtask("4", "2", source_branch="main")

        backup = "task-4.2-backup-1700000000"
        assert lookup.created is True
        assert lookup.worktree_path == path
        assert stub.git_args() == [
            ["worktree", "list", "--porcelain"],
            ["worktree", "remove", "--force", str(other)],
            ["branch", "-m", "task-4.2", backup],
            ["worktree", "add", "-b", "task-4.2", str(path), "main"],
            ["branch", "-D", backup],
        ]
        assert stub.branches == {"task-4.2"}

    def test_recreate_failure_restores_old_branch(self, service, tmp_path):
        other = tmp_path / "other"
        stub = GitStub(
            branches=("task-4.2",),
            worktree_list=worktree_entry(other, "task-4.2"),
            fail_on=(("worktree", "add", "-b"),),
        )
        with run_with(stub), patch("taskflow.worktrees.git.time.time", return_value=1700000000):
            with pytest.raises(GitOperationError):
                service.force_create_worktree_for_subtask("4", "2", source_branch="main")

        backup = "task-4.2-backup-1700000000"
        args = stub.git_args()
        assert ["branch", "-m", backup, "task-4.2"] in args
        assert args[-1] == ["worktree", "add", str(other), "task-4.2"]
        assert stub.branches == {"task-4.2"}

    def test_backup_cleanup_failure_keeps_new_worktree(self, service, tmp_path):
        path = tmp_path / "wt" / "task-4.2"
        stub = GitStub(branches=("task-4.2",), fail_on=(("branch", "-D"),))
        with run_with(stub), patch("taskflow.worktrees.git.time.time", return_value=1700000000):
            lookup = service.force_create_worktree_for_subtask("4", "2", source_branch="main")

        backup = "task-4.2-backup-1700000000"
        assert lookup.created is True
        assert lookup.worktree_path == path
        assert stub.git_args()[-1] == ["branch", "-D", backup]
        assert stub.branches == {"task-4.2", backup}

    def test_missing_branch_creates_fresh(self, service):
        stub = GitStub()
        with run_with(stub):
            lookup = service.force_create_worktree_for_subtask("4", "2", source_branch="main")

        assert lookup.created is True
        assert not any(args[:2] == ["branch", "-m"] for args in stub.git_args())
