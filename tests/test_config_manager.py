"""Tests for taskflow.config.manager module.

Tests cover:
- ConfigManager.load with the global / local / environment cascade
- Value parsing (quotes, comments, numbers)
- ConfigManager.save with validation and atomic writes
- Source tracking
"""

import os
import stat

import pytest

from taskflow.config.manager import ConfigManager


class TestConfigManagerLoad:
    """Tests for ConfigManager.load method."""

    def test_load_missing_file(self, isolated_config):
        manager = ConfigManager(isolated_config)

        settings = manager.load()

        assert settings.default_source_branch == "main"
        assert manager.get_source("DEFAULT_SOURCE_BRANCH") == "default"

    def test_load_global_values(self, isolated_config):
        isolated_config.write_text(
            """# TASKFLOW Configuration
DEFAULT_SOURCE_BRANCH="develop"
PROGRESS_HINT_INTERVAL=0.5

TASKS_FILE='tasks/all.json'
"""
        )
        manager = ConfigManager(isolated_config)

        settings = manager.load()

        assert settings.default_source_branch == "develop"
        assert settings.progress_hint_interval == 0.5
        assert settings.tasks_file == "tasks/all.json"
        assert manager.get_source("DEFAULT_SOURCE_BRANCH") == "global"

    def test_local_overrides_global(self, isolated_config):
        isolated_config.write_text('DEFAULT_SOURCE_BRANCH="develop"\n')
        (isolated_config.parent.parent / "project" / ".taskflow").write_text(
            'DEFAULT_SOURCE_BRANCH="release"\n'
        )
        manager = ConfigManager(isolated_config)

        settings = manager.load()

        assert settings.default_source_branch == "release"
        assert manager.get_source("DEFAULT_SOURCE_BRANCH").startswith("local")
        assert manager.local_config_path is not None

    def test_environment_overrides_files(self, isolated_config, monkeypatch):
        isolated_config.write_text('DEFAULT_SOURCE_BRANCH="develop"\n')
        monkeypatch.setenv("DEFAULT_SOURCE_BRANCH", "hotfix")
        manager = ConfigManager(isolated_config)

        settings = manager.load()

        assert settings.default_source_branch == "hotfix"
        assert manager.get_source("DEFAULT_SOURCE_BRANCH") == "environment"

    def test_invalid_number_keeps_default(self, isolated_config):
        isolated_config.write_text('ELAPSED_TICK_INTERVAL="soon"\n')
        manager = ConfigManager(isolated_config)

        settings = manager.load()

        assert settings.elapsed_tick_interval == 1.0

    def test_unknown_keys_are_ignored(self, isolated_config):
        isolated_config.write_text('SOMETHING_ELSE="x"\n')
        manager = ConfigManager(isolated_config)

        manager.load()

        assert manager.get("SOMETHING_ELSE") == "x"

    def test_reload_starts_from_defaults(self, isolated_config):
        isolated_config.write_text('DEFAULT_SOURCE_BRANCH="develop"\n')
        manager = ConfigManager(isolated_config)
        manager.load()

        isolated_config.write_text("")
        settings = manager.load()

        assert settings.default_source_branch == "main"


class TestConfigManagerSave:
    """Tests for ConfigManager.save method."""

    def test_save_global_creates_file(self, isolated_config):
        manager = ConfigManager(isolated_config)
        manager.load()

        manager.save("DEFAULT_SOURCE_BRANCH", "develop")

        assert 'DEFAULT_SOURCE_BRANCH="develop"' in isolated_config.read_text()
        assert manager.settings.default_source_branch == "develop"

    def test_save_sets_private_permissions(self, isolated_config):
        manager = ConfigManager(isolated_config)
        manager.save("TASKS_FILE", "tasks.json")

        mode = stat.S_IMODE(os.stat(isolated_config).st_mode)
        assert mode == 0o600

    def test_save_replaces_existing_key_and_keeps_comments(self, isolated_config):
        isolated_config.write_text('# keep me\nDEFAULT_SOURCE_BRANCH="develop"\nTASKS_FILE="a.json"\n')
        manager = ConfigManager(isolated_config)

        manager.save("DEFAULT_SOURCE_BRANCH", "main")

        lines = isolated_config.read_text().splitlines()
        assert lines == ["# keep me", 'DEFAULT_SOURCE_BRANCH="main"', 'TASKS_FILE="a.json"']

    def test_save_escapes_quotes(self, isolated_config):
        manager = ConfigManager(isolated_config)

        manager.save("TASKS_FILE", 'odd"name.json')

        assert manager.settings.tasks_file == 'odd"name.json'

    def test_save_local_writes_to_repo_root(self, isolated_config):
        manager = ConfigManager(isolated_config)
        manager.load()

        manager.save("DEFAULT_SOURCE_BRANCH", "release", scope="local")

        local = isolated_config.parent.parent / "project" / ".taskflow"
        assert 'DEFAULT_SOURCE_BRANCH="release"' in local.read_text()
        assert manager.get_source("DEFAULT_SOURCE_BRANCH").startswith("local")

    def test_save_rejects_invalid_key(self, isolated_config):
        manager = ConfigManager(isolated_config)

        with pytest.raises(ValueError, match="Invalid config key"):
            manager.save("BAD-KEY", "x")

    def test_save_rejects_invalid_scope(self, isolated_config):
        manager = ConfigManager(isolated_config)

        with pytest.raises(ValueError, match="Invalid scope"):
            manager.save("TASKS_FILE", "x", scope="team")  # type: ignore[arg-type]
