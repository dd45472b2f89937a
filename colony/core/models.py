"""Core data models: Position, Task, TaskSpec, provider/consumer records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from colony.core.enums import (
    AssignmentType,
    LogisticsRole,
    ObjectKind,
    ProviderStatus,
    TaskKind,
    TaskLifetime,
    TaskPriority,
    TaskStatus,
    TaskType,
)


@dataclass(frozen=True, slots=True)
class Position:
    """Immutable tile coordinate inside a named room."""

    x: int = 0
    y: int = 0
    room: str = ""

    def manhattan(self, other: Position) -> int:
        return abs(self.x - other.x) + abs(self.y - other.y)

    def range_to(self, other: Position) -> int:
        """Chebyshev range; a worker at range 1 can interact with the target."""
        return max(abs(self.x - other.x), abs(self.y - other.y))

    def to_dict(self) -> dict[str, Any]:
        return {"x": self.x, "y": self.y, "room": self.room}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Position:
        return cls(int(data["x"]), int(data["y"]), str(data.get("room", "")))

    def __repr__(self) -> str:
        return f"({self.x}, {self.y} @ {self.room})"


# ---------------------------------------------------------------------------
# Task
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class CreepFSMState:
    """Per-worker execution state inside a task's FSM."""

    current_state: str
    interruptible: bool = True
    record: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_state": self.current_state,
            "interruptible": self.interruptible,
            "record": dict(self.record),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CreepFSMState:
        return cls(
            current_state=data["current_state"],
            interruptible=data.get("interruptible", True),
            record=dict(data.get("record", {})),
        )


@dataclass(slots=True)
class TaskFSM:
    """FSM bookkeeping stored on a task. Transitions belong to the executors."""

    kind: TaskKind
    task_state: str
    creep_states: dict[str, CreepFSMState] = field(default_factory=dict)
    group_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "task_state": self.task_state,
            "creep_states": {k: v.to_dict() for k, v in self.creep_states.items()},
            "group_id": self.group_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskFSM:
        return cls(
            kind=TaskKind(data["kind"]),
            task_state=data["task_state"],
            creep_states={
                k: CreepFSMState.from_dict(v) for k, v in data.get("creep_states", {}).items()
            },
            group_id=data.get("group_id"),
        )


@dataclass(slots=True)
class Task:
    """A unit of assignable work. Mutated only through the lifecycle engine."""

    id: str
    type: TaskType
    room_name: str
    params: dict[str, Any]
    fsm: TaskFSM
    status: TaskStatus = TaskStatus.PENDING
    assignment_type: AssignmentType = AssignmentType.EXCLUSIVE
    lifetime: TaskLifetime = TaskLifetime.ONCE
    max_assignees: int = 1
    assigned_creeps: list[str] = field(default_factory=list)
    base_priority: int = TaskPriority.NORMAL
    created_at: int = 0
    updated_at: int = 0
    started_at: int | None = None
    completed_at: int | None = None
    retry_count: int = 0
    max_retries: int = 3

    @property
    def terminal(self) -> bool:
        return self.status.terminal

    @property
    def remaining_capacity(self) -> int:
        return max(self.max_assignees - len(self.assigned_creeps), 0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "room_name": self.room_name,
            "params": _encode_params(self.params),
            "fsm": self.fsm.to_dict(),
            "status": self.status.value,
            "assignment_type": self.assignment_type.value,
            "lifetime": self.lifetime.value,
            "max_assignees": self.max_assignees,
            "assigned_creeps": list(self.assigned_creeps),
            "base_priority": int(self.base_priority),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "retry_count": self.retry_count,
            "max_retries": self.max_retries,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        return cls(
            id=data["id"],
            type=TaskType(data["type"]),
            room_name=data["room_name"],
            params=_decode_params(data.get("params", {})),
            fsm=TaskFSM.from_dict(data["fsm"]),
            status=TaskStatus(data["status"]),
            assignment_type=AssignmentType(data["assignment_type"]),
            lifetime=TaskLifetime(data["lifetime"]),
            max_assignees=data["max_assignees"],
            assigned_creeps=list(data.get("assigned_creeps", [])),
            base_priority=data.get("base_priority", TaskPriority.NORMAL),
            created_at=data.get("created_at", 0),
            updated_at=data.get("updated_at", 0),
            started_at=data.get("started_at"),
            completed_at=data.get("completed_at"),
            retry_count=data.get("retry_count", 0),
            max_retries=data.get("max_retries", 3),
        )


def _encode_params(params: dict[str, Any]) -> dict[str, Any]:
    return {k: (v.to_dict() if isinstance(v, Position) else v) for k, v in params.items()}


def _decode_params(params: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for k, v in params.items():
        # Position-valued keys all end in "_pos" by convention
        if k.endswith("_pos") and isinstance(v, dict):
            out[k] = Position.from_dict(v)
        else:
            out[k] = v
    return out


@dataclass(slots=True)
class TaskSpec:
    """Caller-supplied description of a task to create."""

    type: TaskType
    room_name: str
    params: dict[str, Any] = field(default_factory=dict)
    base_priority: int | None = None
    max_assignees: int | None = None
    max_retries: int | None = None

    @classmethod
    def transport(
        cls,
        room_name: str,
        resource_type: str,
        amount: int,
        target_id: str,
        source_id: str | None = None,
        source_pos: Position | None = None,
    ) -> TaskSpec:
        """Build a transport spec: exclusive, single-assignee, retry budget 2."""
        return cls(
            type=TaskType.TRANSPORT,
            room_name=room_name,
            params={
                "source_id": source_id,
                "source_pos": source_pos,
                "target_id": target_id,
                "resource_type": resource_type,
                "amount": amount,
            },
            base_priority=TaskPriority.NORMAL,
            max_assignees=1,
            max_retries=2,
        )


# ---------------------------------------------------------------------------
# Logistics records
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class ProviderInfo:
    """A world object that can supply a resource.

    ``amount`` is transient: re-derived from the world before every use and
    never persisted as authoritative.
    """

    id: str
    kind: ObjectKind
    pos: Position
    resource_type: str
    status: ProviderStatus = ProviderStatus.READY
    amount: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "pos": self.pos.to_dict(),
            "resource_type": self.resource_type,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProviderInfo:
        return cls(
            id=data["id"],
            kind=ObjectKind(data["kind"]),
            pos=Position.from_dict(data["pos"]),
            resource_type=data["resource_type"],
            status=ProviderStatus(data.get("status", ProviderStatus.READY.value)),
        )


@dataclass(slots=True)
class ConsumerInfo:
    """A world object with storage capacity to fill. ``needs``/``priority`` are transient."""

    id: str
    kind: ObjectKind
    pos: Position
    resource_type: str
    needs: int = 0
    priority: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "pos": self.pos.to_dict(),
            "resource_type": self.resource_type,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConsumerInfo:
        return cls(
            id=data["id"],
            kind=ObjectKind(data["kind"]),
            pos=Position.from_dict(data["pos"]),
            resource_type=data["resource_type"],
        )


@dataclass(slots=True)
class RoomNetwork:
    """Per-room provider/consumer registry."""

    providers: dict[str, ProviderInfo] = field(default_factory=dict)
    consumers: dict[str, ConsumerInfo] = field(default_factory=dict)
    planned_roles: dict[str, LogisticsRole] = field(default_factory=dict)
    last_updated: int = 0

    @property
    def empty(self) -> bool:
        return not self.providers and not self.consumers

    def to_dict(self) -> dict[str, Any]:
        return {
            "providers": {k: v.to_dict() for k, v in self.providers.items()},
            "consumers": {k: v.to_dict() for k, v in self.consumers.items()},
            "planned_roles": {k: v.value for k, v in self.planned_roles.items()},
            "last_updated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RoomNetwork:
        return cls(
            providers={k: ProviderInfo.from_dict(v) for k, v in data.get("providers", {}).items()},
            consumers={k: ConsumerInfo.from_dict(v) for k, v in data.get("consumers", {}).items()},
            planned_roles={k: LogisticsRole(v) for k, v in data.get("planned_roles", {}).items()},
            last_updated=data.get("last_updated", 0),
        )


@dataclass(slots=True)
class SupplyRequest:
    """A worker's standing request to have a resource delivered to it."""

    id: str
    worker: str
    room_name: str
    resource_type: str
    created_at: int
    suggested_wait: int
    amount: int | None = None
    expires_at: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "worker": self.worker,
            "room_name": self.room_name,
            "resource_type": self.resource_type,
            "created_at": self.created_at,
            "suggested_wait": self.suggested_wait,
            "amount": self.amount,
            "expires_at": self.expires_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SupplyRequest:
        return cls(**data)
