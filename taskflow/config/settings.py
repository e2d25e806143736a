"""Settings dataclass for TASKFLOW configuration.

This module defines the Settings dataclass that holds all configuration
values and the mapping between config-file keys and attributes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class Settings:
    """Configuration settings for TASKFLOW.

    All settings have sensible defaults and can be loaded from
    the configuration files (~/.taskflow-config, .taskflow).

    Attributes:
        tasks_file: Path of the tasks file, relative to the project root
        worktrees_root: Directory holding subtask worktrees (empty = sibling
            ``../<project>-worktrees`` directory)
        default_source_branch: Branch new subtask branches are cut from
        progress_hint_interval: Seconds between progress-hint rotations
        elapsed_tick_interval: Seconds between elapsed-time refreshes
    """

    # Task store settings
    tasks_file: str = ".taskflow/tasks.json"

    # Worktree settings
    worktrees_root: str = ""
    default_source_branch: str = "main"

    # Operation display settings
    progress_hint_interval: float = 2.0
    elapsed_tick_interval: float = 1.0

    # Config key to attribute mapping
    _key_mapping: dict[str, str] = field(
        default_factory=lambda: {
            "TASKS_FILE": "tasks_file",
            "WORKTREES_ROOT": "worktrees_root",
            "DEFAULT_SOURCE_BRANCH": "default_source_branch",
            "PROGRESS_HINT_INTERVAL": "progress_hint_interval",
            "ELAPSED_TICK_INTERVAL": "elapsed_tick_interval",
        },
        repr=False,
    )

    def get_attribute_for_key(self, key: str) -> str | None:
        """Get the attribute name for a config key."""
        return self._key_mapping.get(key)

    def get_key_for_attribute(self, attr: str) -> str | None:
        """Get the config key for an attribute name."""
        for key, value in self._key_mapping.items():
            if value == attr:
                return key
        return None

    @classmethod
    def get_config_keys(cls) -> list[str]:
        """Get list of all valid configuration keys."""
        temp = cls()
        return list(temp._key_mapping.keys())

    def resolve_tasks_file(self, project_root: Path) -> Path:
        """Resolve the tasks file against the project root."""
        path = Path(self.tasks_file).expanduser()
        if path.is_absolute():
            return path
        return project_root / path

    def resolve_worktrees_root(self, project_root: Path) -> Path:
        """Resolve the worktrees root, defaulting to a sibling directory."""
        if self.worktrees_root:
            path = Path(self.worktrees_root).expanduser()
            return path if path.is_absolute() else (project_root / path).resolve()
        return project_root.parent / f"{project_root.name}-worktrees"


# Default configuration file path
CONFIG_FILE = Path.home() / ".taskflow-config"


__all__ = [
    "Settings",
    "CONFIG_FILE",
]
