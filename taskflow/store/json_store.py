"""JSON file adapter for the Task Store.

Reads and writes the tasks file (``.taskflow/tasks.json`` by default).
Two layouts are accepted:

    {"tasks": [...]}                       # legacy
    {"master": {"tasks": [...], ...}}      # tagged

Fields this module does not know about are preserved on write. Notes are
appended to ``details`` inside ``<info added on TIMESTAMP>`` blocks.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from taskflow.store.base import Subtask, Task, split_entity_id
from taskflow.utils.errors import TaskflowError, TaskNotFoundError
from taskflow.utils.logging import log_message
from taskflow.workflow.steps import format_timestamp

logger = logging.getLogger(__name__)

DEFAULT_TAG = "master"


def format_note_block(note: str, moment: datetime) -> str:
    """Wrap a note in an ``<info added on ...>`` block."""
    ts = format_timestamp(moment)
    return f"<info added on {ts}>\n{note.strip()}\n</info added on {ts}>"


class JsonTaskStore:
    """Task Store backed by a JSON file.

    Every mutation is written to disk immediately with an atomic replace.
    """

    def __init__(
        self,
        path: Path,
        *,
        tag: str = DEFAULT_TAG,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.path = Path(path)
        self.tag = tag
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.RLock()
        self._data: dict[str, Any] = {}
        self._tagged = False
        self.reload_tasks()

    # =========================================================================
    # Loading / saving
    # =========================================================================

    def reload_tasks(self) -> None:
        """Re-read the tasks file from disk."""
        with self._lock:
            if not self.path.exists():
                self._data = {self.tag: {"tasks": []}}
                self._tagged = True
                return
            try:
                data = json.loads(self.path.read_text(encoding="utf-8"))
            except json.JSONDecodeError as e:
                raise TaskflowError(f"Invalid tasks file {self.path}: {e}") from e
            if not isinstance(data, dict):
                raise TaskflowError(f"Invalid tasks file {self.path}: expected an object")

            if isinstance(data.get("tasks"), list):
                self._tagged = False
            else:
                self._tagged = True
                data.setdefault(self.tag, {}).setdefault("tasks", [])
            self._data = data
            log_message(f"Loaded tasks from {self.path}")

    def _raw_tasks(self) -> list[dict[str, Any]]:
        if self._tagged:
            return self._data[self.tag]["tasks"]
        return self._data["tasks"]

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".tasks-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2, ensure_ascii=False)
                f.write("\n")
            Path(temp_path).replace(self.path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    # =========================================================================
    # Lookup
    # =========================================================================

    def _find_raw(self, entity_id: str) -> dict[str, Any] | None:
        parent_id, subtask_id = split_entity_id(entity_id)
        for raw_task in self._raw_tasks():
            if str(raw_task.get("id")) != parent_id:
                continue
            if subtask_id is None:
                return raw_task
            for raw_subtask in raw_task.get("subtasks") or []:
                if str(raw_subtask.get("id")) == subtask_id:
                    return raw_subtask
            return None
        return None

    def _require_raw(self, entity_id: str) -> dict[str, Any]:
        raw = self._find_raw(entity_id)
        if raw is None:
            raise TaskNotFoundError(entity_id)
        return raw

    def get_task(self, task_id: str) -> Task | Subtask | None:
        with self._lock:
            parent_id, subtask_id = split_entity_id(task_id)
            raw = self._find_raw(task_id)
            if raw is None:
                return None
            if subtask_id is not None:
                return _to_subtask(raw, parent_id)
            return _to_task(raw)

    def list_tasks(self) -> list[Task]:
        with self._lock:
            return [_to_task(raw) for raw in self._raw_tasks()]

    # =========================================================================
    # Mutations
    # =========================================================================

    def set_task_status(self, task_id: str, status: str) -> None:
        with self._lock:
            raw = self._require_raw(task_id)
            raw["status"] = status
            self._save()
        log_message(f"Task {task_id} status set to {status}")

    def update_task(self, task_id: str, note: str) -> None:
        self._append_note(task_id, note)

    def update_subtask(self, subtask_id: str, note: str) -> None:
        if split_entity_id(subtask_id)[1] is None:
            raise TaskflowError(f"Not a subtask id: {subtask_id}")
        self._append_note(subtask_id, note)

    def _append_note(self, entity_id: str, note: str) -> None:
        with self._lock:
            raw = self._require_raw(entity_id)
            block = format_note_block(note, self._clock())
            details = str(raw.get("details") or "")
            raw["details"] = f"{details}\n\n{block}" if details else block
            self._save()
        log_message(f"Appended note to {entity_id}")


def _to_subtask(raw: dict[str, Any], parent_id: str) -> Subtask:
    return Subtask(
        id=str(raw.get("id")),
        parent_id=parent_id,
        title=str(raw.get("title") or ""),
        status=str(raw.get("status") or "pending"),
        details=str(raw.get("details") or ""),
        dependencies=[str(d) for d in raw.get("dependencies") or []],
    )


def _to_task(raw: dict[str, Any]) -> Task:
    task_id = str(raw.get("id"))
    return Task(
        id=task_id,
        title=str(raw.get("title") or ""),
        status=str(raw.get("status") or "pending"),
        details=str(raw.get("details") or ""),
        dependencies=[str(d) for d in raw.get("dependencies") or []],
        subtasks=[_to_subtask(s, task_id) for s in raw.get("subtasks") or []],
    )


__all__ = ["JsonTaskStore", "format_note_block", "DEFAULT_TAG"]
