"""Task Store protocol and adapters."""

from taskflow.store.base import Subtask, Task, TaskStore, is_subtask_id, split_entity_id
from taskflow.store.json_store import JsonTaskStore

__all__ = [
    "Task",
    "Subtask",
    "TaskStore",
    "JsonTaskStore",
    "split_entity_id",
    "is_subtask_id",
]
