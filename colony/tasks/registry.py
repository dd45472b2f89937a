"""TaskRegistry — durable per-room store of tasks and the worker/task indexes.

The registry is plain storage: it never decides whether a mutation is
legal. The lifecycle engine does that and then calls in here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterator

from colony.core.enums import TaskStatus, TaskType
from colony.core.models import Task

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RoomTaskBook:
    """Everything the registry persists for one room."""

    tasks: dict[str, Task] = field(default_factory=dict)
    creep_tasks: dict[str, str] = field(default_factory=dict)
    task_assignments: dict[str, list[str]] = field(default_factory=dict)
    completed_tasks: list[str] = field(default_factory=list)
    tasks_created: int = 0
    tasks_completed: int = 0
    tasks_failed: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "tasks": [t.to_dict() for t in self.tasks.values()],
            "creep_tasks": dict(self.creep_tasks),
            "task_assignments": {k: list(v) for k, v in self.task_assignments.items()},
            "completed_tasks": list(self.completed_tasks),
            "tasks_created": self.tasks_created,
            "tasks_completed": self.tasks_completed,
            "tasks_failed": self.tasks_failed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RoomTaskBook:
        tasks = [Task.from_dict(t) for t in data.get("tasks", [])]
        return cls(
            tasks={t.id: t for t in tasks},
            creep_tasks=dict(data.get("creep_tasks", {})),
            task_assignments={k: list(v) for k, v in data.get("task_assignments", {}).items()},
            completed_tasks=list(data.get("completed_tasks", [])),
            tasks_created=data.get("tasks_created", 0),
            tasks_completed=data.get("tasks_completed", 0),
            tasks_failed=data.get("tasks_failed", 0),
        )


class TaskRegistry:
    """Per-room task books plus a task-id → room index."""

    __slots__ = ("_rooms", "_task_room", "_next_seq")

    def __init__(self) -> None:
        self._rooms: dict[str, RoomTaskBook] = {}
        self._task_room: dict[str, str] = {}
        self._next_seq: int = 1

    # -- rooms --

    def book(self, room_name: str) -> RoomTaskBook:
        """Return the room's book, creating an empty one on first use."""
        book = self._rooms.get(room_name)
        if book is None:
            book = RoomTaskBook()
            self._rooms[room_name] = book
        return book

    def find_book(self, room_name: str) -> RoomTaskBook | None:
        return self._rooms.get(room_name)

    def rooms(self) -> list[str]:
        return list(self._rooms)

    def books(self) -> Iterator[tuple[str, RoomTaskBook]]:
        yield from self._rooms.items()

    # -- ids --

    def next_task_id(self, task_type: TaskType) -> str:
        """Monotonic id; the type prefix is for humans, never parsed."""
        seq = self._next_seq
        self._next_seq += 1
        return f"{task_type.value}-{seq:06d}"

    # -- tasks --

    def add(self, task: Task) -> None:
        self.book(task.room_name).tasks[task.id] = task
        self._task_room[task.id] = task.room_name

    def get(self, task_id: str) -> Task | None:
        room = self._task_room.get(task_id)
        if room is None:
            return None
        return self._rooms[room].tasks.get(task_id)

    def room_of(self, task_id: str) -> str | None:
        return self._task_room.get(task_id)

    def remove(self, task_id: str) -> Task | None:
        room = self._task_room.pop(task_id, None)
        if room is None:
            return None
        book = self._rooms[room]
        book.task_assignments.pop(task_id, None)
        return book.tasks.pop(task_id, None)

    def all_tasks(self) -> list[Task]:
        return [t for book in self._rooms.values() for t in book.tasks.values()]

    def tasks_in(self, room_name: str) -> list[Task]:
        book = self._rooms.get(room_name)
        return list(book.tasks.values()) if book else []

    # -- worker index --

    def creep_task_id(self, worker: str) -> str | None:
        for book in self._rooms.values():
            task_id = book.creep_tasks.get(worker)
            if task_id is not None:
                return task_id
        return None

    def bind_creep(self, task: Task, worker: str) -> None:
        book = self.book(task.room_name)
        book.creep_tasks[worker] = task.id
        book.task_assignments.setdefault(task.id, []).append(worker)

    def release_creep(self, worker: str) -> str | None:
        """Drop *worker* from both indexes. Returns the task id it was bound to."""
        for book in self._rooms.values():
            task_id = book.creep_tasks.pop(worker, None)
            if task_id is None:
                continue
            assignees = book.task_assignments.get(task_id)
            if assignees and worker in assignees:
                assignees.remove(worker)
            return task_id
        return None

    def bound_workers(self) -> list[tuple[str, str]]:
        """(worker, task_id) for every index entry across all rooms."""
        return [(w, tid) for book in self._rooms.values() for w, tid in book.creep_tasks.items()]

    # -- stats --

    def stats(self) -> dict[str, int]:
        out = {
            "tasks_created": 0,
            "tasks_completed": 0,
            "tasks_failed": 0,
        }
        for status in TaskStatus:
            out[status.value] = 0
        for book in self._rooms.values():
            out["tasks_created"] += book.tasks_created
            out["tasks_completed"] += book.tasks_completed
            out["tasks_failed"] += book.tasks_failed
            for task in book.tasks.values():
                out[task.status.value] += 1
        out["total"] = sum(len(b.tasks) for b in self._rooms.values())
        return out

    # -- persistence --

    def to_dict(self) -> dict[str, Any]:
        return {
            "next_seq": self._next_seq,
            "rooms": {name: book.to_dict() for name, book in self._rooms.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskRegistry:
        reg = cls()
        reg._next_seq = data.get("next_seq", 1)
        for name, raw in data.get("rooms", {}).items():
            book = RoomTaskBook.from_dict(raw)
            reg._rooms[name] = book
            for task_id in book.tasks:
                reg._task_room[task_id] = name
        logger.debug("Loaded task registry: %d rooms, %d tasks", len(reg._rooms), len(reg._task_room))
        return reg
