"""Task Store protocol and task records.

The workflow engine never writes storage directly: the status state
machine composes status changes and notes and hands them to a
:class:`TaskStore`. ``JsonTaskStore`` is the shipped adapter; tests use
an in-memory fake.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable


@dataclass
class Subtask:
    """A subtask, identified externally as ``"{parent_id}.{id}"``."""

    id: str
    parent_id: str
    title: str = ""
    status: str = "pending"
    details: str = ""
    dependencies: list[str] = field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.parent_id}.{self.id}"


@dataclass
class Task:
    """A top-level task.

    Attributes:
        id: Task id
        title: Short title
        status: Status value (see ``taskflow.workflow.status.TaskStatus``)
        details: Free-form details; workflow notes are appended here
        dependencies: Ids of tasks this one depends on
        subtasks: Child subtasks
    """

    id: str
    title: str = ""
    status: str = "pending"
    details: str = ""
    dependencies: list[str] = field(default_factory=list)
    subtasks: list[Subtask] = field(default_factory=list)

    def get_subtask(self, subtask_id: str) -> Subtask | None:
        for subtask in self.subtasks:
            if subtask.id == subtask_id:
                return subtask
        return None


def split_entity_id(entity_id: str) -> tuple[str, str | None]:
    """Split ``"4.2"`` into ``("4", "2")`` and ``"4"`` into ``("4", None)``."""
    parent, sep, child = str(entity_id).partition(".")
    return parent, (child if sep else None)


def is_subtask_id(entity_id: str) -> bool:
    return split_entity_id(entity_id)[1] is not None


@runtime_checkable
class TaskStore(Protocol):
    """Persistence collaborator used by the status state machine.

    ``get_task`` accepts both task ids and ``"parent.child"`` subtask ids
    and returns None when the entity does not exist.
    """

    def get_task(self, task_id: str) -> Task | Subtask | None: ...

    def set_task_status(self, task_id: str, status: str) -> None: ...

    def update_task(self, task_id: str, note: str) -> None: ...

    def update_subtask(self, subtask_id: str, note: str) -> None: ...

    def reload_tasks(self) -> None: ...


__all__ = [
    "Task",
    "Subtask",
    "TaskStore",
    "split_entity_id",
    "is_subtask_id",
]
