"""Enumerations used throughout the engine."""

from __future__ import annotations

from enum import Enum, IntEnum, unique


@unique
class TaskType(str, Enum):
    """Kinds of assignable work."""

    HARVEST = "harvest"
    TRANSPORT = "transport"
    BUILD = "build"
    REPAIR = "repair"
    UPGRADE = "upgrade"
    ATTACK = "attack"


@unique
class TaskStatus(str, Enum):
    """Task lifecycle status. COMPLETED and FAILED are terminal."""

    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)

    @property
    def active(self) -> bool:
        return not self.terminal


@unique
class TaskPriority(IntEnum):
    """Base priority bands."""

    EMERGENCY = 100
    CRITICAL = 80
    HIGH = 60
    NORMAL = 40
    LOW = 20
    BACKGROUND = 10


@unique
class AssignmentType(str, Enum):
    """Whether a task takes exactly one worker or up to N concurrent workers."""

    EXCLUSIVE = "exclusive"
    SHARED = "shared"


@unique
class TaskLifetime(str, Enum):
    """ONCE tasks are dropped when terminal; PERSISTENT ones recur."""

    ONCE = "once"
    PERSISTENT = "persistent"


@unique
class TaskKind(str, Enum):
    """FSM family a task belongs to. Mirrors TaskType one-to-one."""

    HARVEST = "HARVEST"
    TRANSPORT = "TRANSPORT"
    BUILD = "BUILD"
    REPAIR = "REPAIR"
    UPGRADE = "UPGRADE"
    ATTACK = "ATTACK"


@unique
class ObjectKind(str, Enum):
    """Tag for a world object, fixed when the object is registered."""

    SPAWN = "spawn"
    EXTENSION = "extension"
    TOWER = "tower"
    LINK = "link"
    POWER_SPAWN = "powerSpawn"
    LAB = "lab"
    NUKER = "nuker"
    CONTAINER = "container"
    STORAGE = "storage"
    TERMINAL = "terminal"
    DROPPED_RESOURCE = "droppedResource"
    TOMBSTONE = "tombstone"
    CREEP = "creep"
    SOURCE = "source"
    CONTROLLER = "controller"
    CONSTRUCTION_SITE = "constructionSite"

    @property
    def ephemeral(self) -> bool:
        """Dropped resources and corpses vanish on their own and are GC'd every tick."""
        return self in (ObjectKind.DROPPED_RESOURCE, ObjectKind.TOMBSTONE)


@unique
class ProviderStatus(str, Enum):
    READY = "ready"
    UNDER_CONSTRUCTION = "underConstruction"


@unique
class LogisticsRole(str, Enum):
    PROVIDER = "provider"
    CONSUMER = "consumer"


@unique
class BodyPart(str, Enum):
    """Worker body parts that gate which tasks a worker can take."""

    MOVE = "move"
    WORK = "work"
    CARRY = "carry"
    ATTACK = "attack"
    RANGED_ATTACK = "ranged_attack"


@unique
class Domain(IntEnum):
    """RNG domains for deterministic randomness isolation."""

    MAP_GEN = 0
    WORKER_DEATH = 1
    DROP = 2


RESOURCE_ENERGY = "energy"
