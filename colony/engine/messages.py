"""Inbound notifications and the queue that carries them into the ColonyLoop."""

from __future__ import annotations

import queue
from dataclasses import dataclass
from typing import Union

from colony.core.enums import LogisticsRole, ObjectKind
from colony.core.models import Position


@dataclass(frozen=True, slots=True)
class WorkerDied:
    worker: str


@dataclass(frozen=True, slots=True)
class ConstructionPlanUpdated:
    """A construction site was placed; track it under its planned logistics role."""

    room_name: str
    structure_kind: ObjectKind
    pos: Position
    role: LogisticsRole
    resource_type: str


@dataclass(frozen=True, slots=True)
class ConstructionCompleted:
    """The site at ``pos`` became a structure; ``old_id`` is the site's id."""

    pos: Position
    structure_kind: ObjectKind
    old_id: str


Message = Union[WorkerDied, ConstructionPlanUpdated, ConstructionCompleted]


class MessageQueue:
    """MPSC queue for notifications.

    Any thread may push; the ColonyLoop drains it once per tick, in
    arrival order, before any other pipeline step.
    """

    __slots__ = ("_queue",)

    def __init__(self) -> None:
        self._queue: queue.Queue[Message] = queue.Queue()

    def push(self, message: Message) -> None:
        self._queue.put_nowait(message)

    def drain(self) -> list[Message]:
        messages: list[Message] = []
        while True:
            try:
                messages.append(self._queue.get_nowait())
            except queue.Empty:
                break
        return messages

    @property
    def empty(self) -> bool:
        return self._queue.empty()
