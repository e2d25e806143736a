"""Shared pytest fixtures for TASKFLOW tests."""

import json
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from taskflow.config.settings import Settings
from tests.fakes.fake_task_store import FakeTaskStore
from tests.fakes.fake_worktree_service import FakeWorktreeService

# Enable pytest-asyncio for async test support
pytest_plugins = ("pytest_asyncio",)

FIXED_NOW = datetime(2025, 1, 4, 12, 0, 0, 123000, tzinfo=timezone.utc)
FIXED_TS = "2025-01-04T12:00:00.123Z"


@pytest.fixture
def fixed_clock():
    """Clock returning a fixed UTC time."""
    return lambda: FIXED_NOW


@pytest.fixture
def fake_store() -> FakeTaskStore:
    """In-memory store with task 4 (in-progress, two subtasks) and task 5 (pending)."""
    store = FakeTaskStore()
    store.add_task("4", status="in-progress", title="Add login")
    store.add_subtask("4", "1", status="done")
    store.add_subtask("4", "2", status="pending")
    store.add_task("5", status="pending", title="Add logout")
    return store


@pytest.fixture
def fake_service(tmp_path: Path) -> FakeWorktreeService:
    """Worktree service that records calls and creates directories under tmp_path."""
    return FakeWorktreeService(tmp_path / "worktrees")


@pytest.fixture
def tasks_file(tmp_path: Path) -> Path:
    """Tagged tasks file with two tasks."""
    path = tmp_path / ".taskflow" / "tasks.json"
    path.parent.mkdir(parents=True)
    data = {
        "master": {
            "tasks": [
                {
                    "id": 4,
                    "title": "Add login",
                    "status": "in-progress",
                    "details": "",
                    "priority": "high",
                    "dependencies": [1, 2],
                    "subtasks": [
                        {"id": 1, "title": "Form", "status": "done", "details": ""},
                        {"id": 2, "title": "Session", "status": "pending", "details": ""},
                    ],
                },
                {"id": 5, "title": "Add logout", "status": "pending", "details": ""},
            ],
            "metadata": {"created": "2025-01-01"},
        }
    }
    path.write_text(json.dumps(data, indent=2))
    return path


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch):
    """Point config discovery at tmp_path and clear config environment variables."""
    global_config = tmp_path / "home" / ".taskflow-config"
    global_config.parent.mkdir(parents=True)
    project = tmp_path / "project"
    (project / ".git").mkdir(parents=True)

    monkeypatch.setattr("taskflow.config.manager.CONFIG_FILE", global_config)
    monkeypatch.chdir(project)
    for key in Settings.get_config_keys():
        monkeypatch.delenv(key, raising=False)
    return global_config


@pytest.fixture
def mock_subprocess():
    """Mock subprocess.run for git commands."""
    with patch("taskflow.worktrees.git.subprocess.run") as mock:
        mock.return_value = MagicMock(
            returncode=0,
            stdout="",
            stderr="",
        )
        yield mock
