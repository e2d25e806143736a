"""Configuration manager for TASKFLOW.

This module provides the ConfigManager class for loading, saving, and
managing configuration values with a cascading hierarchy:

    1. Environment Variables (highest priority)
    2. Local Config (.taskflow in project/parent directories)
    3. Global Config (~/.taskflow-config)
    4. Built-in Defaults (lowest priority)
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Literal

from taskflow.config.settings import CONFIG_FILE, Settings
from taskflow.utils.logging import log_message
from taskflow.worktrees.git import find_repo_root

# Module-level logger
logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
_LINE_PATTERN = re.compile(r"^([a-zA-Z_][a-zA-Z0-9_]*)=(.*)$")


class ConfigManager:
    """Manages configuration loading and saving with cascading hierarchy.

    Configuration Precedence (highest to lowest):
    1. Environment Variables - CI/CD, temporary overrides
    2. Local Config (.taskflow) - Project-specific settings
    3. Global Config (~/.taskflow-config) - User defaults
    4. Built-in Defaults - Fallback values

    Security features:
    - Safe line-by-line parsing (no eval/exec)
    - Key name validation
    - Atomic file writes
    - Secure file permissions (600)

    Attributes:
        settings: Current settings instance
        global_config_path: Path to global ~/.taskflow-config file
        local_config_path: Path to discovered local .taskflow file (after load)
    """

    LOCAL_CONFIG_NAME = ".taskflow"
    GLOBAL_CONFIG_NAME = ".taskflow-config"

    def __init__(self, global_config_path: Path | None = None) -> None:
        """Initialize the configuration manager.

        Args:
            global_config_path: Optional custom path to global config file.
                                Defaults to ~/.taskflow-config.
        """
        self.global_config_path = global_config_path or CONFIG_FILE
        self.local_config_path: Path | None = None
        self.settings = Settings()
        self._raw_values: dict[str, str] = {}
        self._config_sources: dict[str, str] = {}

    def load(self) -> Settings:
        """Load configuration from all sources with cascading precedence.

        Each call starts from clean defaults so stale values never survive
        a reload.

        Returns:
            Settings instance with loaded values
        """
        self.settings = Settings()
        self.local_config_path = None
        self._raw_values = {}
        self._config_sources = {}

        if self.global_config_path.exists():
            log_message(f"Loading global configuration from {self.global_config_path}")
            self._load_file(self.global_config_path, source="global")

        local_path = self._find_local_config()
        if local_path:
            self.local_config_path = local_path
            log_message(f"Loading local configuration from {local_path}")
            self._load_file(local_path, source=f"local ({local_path})")

        self._load_environment()

        for key, value in self._raw_values.items():
            self._apply_value_to_settings(key, value)

        log_message(f"Configuration loaded successfully ({len(self._raw_values)} keys)")
        return self.settings

    def _find_local_config(self) -> Path | None:
        """Find local .taskflow config by traversing up from CWD.

        Stops at the first .taskflow file, at the repository root (a
        directory containing .git) or at the filesystem root.

        Returns:
            Path to local config file, or None if not found
        """
        current = Path.cwd()
        while True:
            config_path = current / self.LOCAL_CONFIG_NAME
            if config_path.exists() and config_path.is_file():
                return config_path

            if (current / ".git").exists():
                break

            parent = current.parent
            if parent == current:
                break
            current = parent

        return None

    def _load_file(self, path: Path, source: str = "file") -> None:
        """Load key=value pairs from a config file.

        Args:
            path: Path to the config file
            source: Source identifier for debugging
        """
        for key, value in self._read_file_values(path).items():
            self._raw_values[key] = value
            self._config_sources[key] = source

    def _load_environment(self) -> None:
        """Override config with environment variables.

        Only known config keys are read, so unrelated environment variables
        never leak into the configuration.
        """
        for key in Settings.get_config_keys():
            env_value = os.environ.get(key)
            if env_value is not None:
                self._raw_values[key] = env_value
                self._config_sources[key] = "environment"

    def _apply_value_to_settings(self, key: str, value: str) -> None:
        """Apply a raw config value to the settings object.

        Args:
            key: Configuration key
            value: Raw string value from file or environment
        """
        attr = self.settings.get_attribute_for_key(key)
        if attr is None:
            return  # Unknown key, ignore

        current_value = getattr(self.settings, attr)

        if isinstance(current_value, bool):
            setattr(self.settings, attr, value.lower() in ("true", "1", "yes"))
        elif isinstance(current_value, (int, float)):
            try:
                setattr(self.settings, attr, type(current_value)(value))
            except ValueError:
                logger.warning(f"Invalid value for {key}: '{value}', keeping default")
        else:
            setattr(self.settings, attr, value)

    def save(
        self,
        key: str,
        value: str,
        scope: Literal["global", "local"] = "global",
    ) -> None:
        """Save a configuration value to a config file.

        Writes the value to the selected file and reloads, so ``settings``
        always reflects the effective value after applying precedence.

        Args:
            key: Configuration key (must match pattern: [a-zA-Z_][a-zA-Z0-9_]*)
            value: Configuration value to save
            scope: "global" (~/.taskflow-config) or "local" (.taskflow)

        Raises:
            ValueError: If key name or scope is invalid
        """
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid config key: {key}")

        if scope not in ("global", "local"):
            raise ValueError(f"Invalid scope: {scope}. Must be 'global' or 'local'")

        if scope == "local":
            if self.local_config_path is None:
                repo_root = find_repo_root()
                base = repo_root if repo_root else Path.cwd()
                self.local_config_path = base / self.LOCAL_CONFIG_NAME
            target_path = self.local_config_path
        else:
            target_path = self.global_config_path

        existing_lines: list[str] = []
        if target_path.exists():
            existing_lines = target_path.read_text().splitlines()

        new_lines: list[str] = []
        written = False
        escaped_value = self._escape_value_for_storage(value)
        key_pattern = re.compile(r"^([a-zA-Z_][a-zA-Z0-9_]*)=")

        for line in existing_lines:
            match = key_pattern.match(line)
            if match and match.group(1) == key:
                new_lines.append(f'{key}="{escaped_value}"')
                written = True
            else:
                # Comments, blank lines and other keys are preserved as-is
                new_lines.append(line)

        if not written:
            new_lines.append(f'{key}="{escaped_value}"')

        self._atomic_write_to_path(new_lines, target_path)
        log_message(f"Configuration saved to {scope}: {key}")

        self.load()

    def _read_file_values(self, path: Path) -> dict[str, str]:
        """Read key=value pairs from a config file without modifying state.

        Args:
            path: Path to the config file

        Returns:
            Dictionary of key-value pairs
        """
        values: dict[str, str] = {}
        if not path.exists():
            return values

        with path.open() as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                match = _LINE_PATTERN.match(line)
                if match:
                    key, value = match.groups()
                    # Only double-quoted values are unescaped; single quotes are literal
                    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
                        value = self._unescape_value(value[1:-1])
                    elif len(value) >= 2 and value.startswith("'") and value.endswith("'"):
                        value = value[1:-1]
                    values[key] = value
        return values

    def _atomic_write_to_path(self, lines: list[str], target_path: Path) -> None:
        """Atomically write lines to a specific config file.

        Args:
            lines: Lines to write
            target_path: Path to write to
        """
        target_path.parent.mkdir(parents=True, exist_ok=True)

        fd, temp_path = tempfile.mkstemp(
            dir=target_path.parent,
            prefix=".taskflow-config-",
        )
        try:
            with os.fdopen(fd, "w") as f:
                f.write("\n".join(lines))
                if lines:
                    f.write("\n")

            os.chmod(temp_path, 0o600)
            Path(temp_path).replace(target_path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    @staticmethod
    def _escape_value_for_storage(value: str) -> str:
        """Escape backslashes and double quotes for double-quoted storage."""
        result = value.replace("\\", "\\\\")
        result = result.replace('"', '\\"')
        return result

    @staticmethod
    def _unescape_value(value: str) -> str:
        """Reverse _escape_value_for_storage."""
        result = value.replace("\\\\", "\\")
        result = result.replace('\\"', '"')
        return result

    def get(self, key: str, default: str = "") -> str:
        """Get a raw configuration value.

        Args:
            key: Configuration key to retrieve
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        return self._raw_values.get(key, default)

    def get_source(self, key: str) -> str:
        """Describe where the effective value of ``key`` came from."""
        return self._config_sources.get(key, "default")


__all__ = ["ConfigManager"]
