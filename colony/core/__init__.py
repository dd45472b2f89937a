"""Core data models, enums and the world oracle protocol."""

from colony.core.enums import (
    AssignmentType,
    LogisticsRole,
    ObjectKind,
    ProviderStatus,
    TaskLifetime,
    TaskPriority,
    TaskStatus,
    TaskType,
)
from colony.core.errors import ColonyError, StateLoadError, UnknownTaskTypeError
from colony.core.models import ConsumerInfo, Position, ProviderInfo, RoomNetwork, Task, TaskSpec
from colony.core.oracle import ObjectRef, WorkerView, WorldOracle

__all__ = [
    "AssignmentType",
    "ColonyError",
    "ConsumerInfo",
    "LogisticsRole",
    "ObjectKind",
    "ObjectRef",
    "Position",
    "ProviderInfo",
    "ProviderStatus",
    "RoomNetwork",
    "StateLoadError",
    "Task",
    "TaskLifetime",
    "TaskPriority",
    "TaskSpec",
    "TaskStatus",
    "TaskType",
    "UnknownTaskTypeError",
    "WorkerView",
    "WorldOracle",
]
