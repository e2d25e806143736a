"""Tests for taskflow.cli module."""

import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from taskflow.cli import app
from taskflow.utils.errors import ExitCode, UserCancelledError
from taskflow.worktrees.models import ConflictDecision

runner = CliRunner()


@pytest.fixture
def project_tasks(isolated_config, tasks_file):
    """Copy the sample tasks file into the isolated project."""
    project_root = isolated_config.parent.parent / "project"
    target = project_root / ".taskflow" / "tasks.json"
    target.parent.mkdir(parents=True)
    target.write_text(tasks_file.read_text())
    return target


@pytest.fixture
def cli_service(isolated_config, fake_service):
    with patch("taskflow.cli.GitWorktreeService.from_settings", return_value=fake_service):
        yield fake_service


def task_status(path, index, subtask=None):
    task = json.loads(path.read_text())["master"]["tasks"][index]
    if subtask is not None:
        return task["subtasks"][subtask]["status"]
    return task["status"]


class TestVersion:
    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert "TASKFLOW" in result.output


class TestOperationsCommand:
    def test_lists_operation_types(self):
        result = runner.invoke(app, ["operations"])

        assert result.exit_code == 0
        for op_type in ("parse_prd", "analyze_complexity", "expand_task", "expand_all"):
            assert op_type in result.output


class TestStatusCommands:
    def test_check_valid(self):
        result = runner.invoke(app, ["status", "check", "review", "done", "merged"])

        assert result.exit_code == 0
        assert "allowed" in result.output

    def test_check_invalid(self):
        result = runner.invoke(app, ["status", "check", "done", "in-progress", "start-implementation"])

        assert result.exit_code == ExitCode.INVALID_TRANSITION
        assert "Valid targets from done" in result.output

    def test_next_cycles_status(self, project_tasks):
        result = runner.invoke(app, ["status", "next", "5"])

        assert result.exit_code == 0
        assert task_status(project_tasks, 1) == "in-progress"

    def test_next_subtask(self, project_tasks):
        result = runner.invoke(app, ["status", "next", "4.2"])

        assert result.exit_code == 0
        assert task_status(project_tasks, 0, subtask=1) == "in-progress"

    def test_next_missing_task(self, project_tasks):
        result = runner.invoke(app, ["status", "next", "99"])

        assert result.exit_code == ExitCode.GENERAL_ERROR


class TestStepCommand:
    def test_applies_step_with_context(self, project_tasks):
        result = runner.invoke(
            app,
            ["step", "5", "start-implementation", "--set", "branch=task-5"],
        )

        assert result.exit_code == 0
        assert task_status(project_tasks, 1) == "in-progress"
        details = json.loads(project_tasks.read_text())["master"]["tasks"][1]["details"]
        assert "Branch: task-5" in details

    def test_note_only_step(self, project_tasks):
        result = runner.invoke(
            app, ["step", "4", "pr-created", "-s", "pr_url=https://github.com/o/r/pull/7"]
        )

        assert result.exit_code == 0
        assert "status unchanged" in result.output
        assert task_status(project_tasks, 0) == "in-progress"

    def test_invalid_transition_exit_code(self, project_tasks):
        result = runner.invoke(app, ["step", "5", "unblock-task"])

        assert result.exit_code == ExitCode.INVALID_TRANSITION
        assert task_status(project_tasks, 1) == "pending"

    def test_unknown_step(self, project_tasks):
        result = runner.invoke(app, ["step", "5", "ship-it"])

        assert result.exit_code == ExitCode.INVALID_TRANSITION

    def test_malformed_set_option(self, project_tasks):
        result = runner.invoke(app, ["step", "5", "start-implementation", "--set", "oops"])

        assert result.exit_code == 2


class TestWorktreeCommand:
    def test_creates_worktree(self, cli_service):
        result = runner.invoke(app, ["worktree", "4", "2"])

        assert result.exit_code == 0
        assert cli_service.methods_called == ["get_or_create"]
        assert cli_service.path_for("4", "2").exists()

    def test_source_branch_option(self, cli_service):
        runner.invoke(app, ["worktree", "4", "2", "--source-branch", "develop"])

        assert cli_service.calls[0][3] == "develop"

    def test_decision_option_uses_existing(self, cli_service, tmp_path):
        cli_service.add_branch("4", "2", checked_out_at=tmp_path / "elsewhere")

        result = runner.invoke(app, ["worktree", "4", "2", "--decision", "use-existing"])

        assert result.exit_code == 0
        assert cli_service.methods_called == ["get_or_create", "use_existing"]

    def test_prompted_recreate_can_be_declined(self, cli_service, tmp_path):
        cli_service.add_branch("4", "2", checked_out_at=tmp_path / "elsewhere")

        with (
            patch("taskflow.cli.prompt_branch_conflict", return_value=ConflictDecision.RECREATE),
            patch("taskflow.cli.prompt_confirm", return_value=False),
        ):
            result = runner.invoke(app, ["worktree", "4", "2"])

        assert result.exit_code == ExitCode.USER_CANCELLED
        assert "force_create" not in cli_service.methods_called

    def test_recreate_with_yes(self, cli_service, tmp_path):
        cli_service.add_branch("4", "2", checked_out_at=tmp_path / "elsewhere")

        result = runner.invoke(app, ["worktree", "4", "2", "--decision", "recreate", "--yes"])

        assert result.exit_code == 0
        assert cli_service.methods_called[-1] == "force_create"

    def test_unknown_decision(self, cli_service, tmp_path):
        cli_service.add_branch("4", "2", checked_out_at=tmp_path / "elsewhere")

        result = runner.invoke(app, ["worktree", "4", "2", "--decision", "merge"])

        assert result.exit_code == ExitCode.GENERAL_ERROR

    def test_prompt_cancelled(self, cli_service, tmp_path):
        cli_service.add_branch("4", "2", checked_out_at=tmp_path / "elsewhere")

        with patch(
            "taskflow.cli.prompt_branch_conflict", side_effect=UserCancelledError("cancelled")
        ):
            result = runner.invoke(app, ["worktree", "4", "2"])

        assert result.exit_code == ExitCode.USER_CANCELLED


class TestConfigCommands:
    def test_set_and_show(self, isolated_config):
        result = runner.invoke(app, ["config", "set", "DEFAULT_SOURCE_BRANCH", "develop"])

        assert result.exit_code == 0
        assert 'DEFAULT_SOURCE_BRANCH="develop"' in isolated_config.read_text()

        shown = runner.invoke(app, ["config", "show"])
        assert shown.exit_code == 0
        assert "develop" in shown.output

    def test_set_unknown_key(self, isolated_config):
        result = runner.invoke(app, ["config", "set", "NOPE", "x"])

        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert not isolated_config.exists()
