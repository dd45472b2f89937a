"""Per-kind FSM state enumerations and initial-state bootstrap.

The engine only guarantees a task starts in its kind's INIT state and that
the FSM record is stored with the task. Transition logic lives with the
worker executors.
"""

from __future__ import annotations

from enum import Enum, unique

from colony.core.enums import TaskKind, TaskType
from colony.core.errors import UnknownTaskTypeError
from colony.core.models import CreepFSMState, TaskFSM


@unique
class HarvestState(str, Enum):
    INIT = "INIT"
    MOVING = "MOVING"
    HARVESTING = "HARVESTING"
    DUMPING = "DUMPING"
    FINISHED = "FINISHED"


@unique
class TransportState(str, Enum):
    INIT = "INIT"
    PICKUP = "PICKUP"
    DELIVER = "DELIVER"
    DROPPING = "DROPPING"
    FINISHED = "FINISHED"


@unique
class BuildState(str, Enum):
    INIT = "INIT"
    GET_ENERGY = "GET_ENERGY"
    BUILDING = "BUILDING"
    FINISHED = "FINISHED"


@unique
class RepairState(str, Enum):
    INIT = "INIT"
    GET_ENERGY = "GET_ENERGY"
    REPAIRING = "REPAIRING"
    FINISHED = "FINISHED"


@unique
class UpgradeState(str, Enum):
    INIT = "INIT"
    GET_ENERGY = "GET_ENERGY"
    UPGRADING = "UPGRADING"
    FINISHED = "FINISHED"


@unique
class AttackState(str, Enum):
    INIT = "INIT"
    MOVE = "MOVE"
    MELEE = "MELEE"
    RANGED = "RANGED"
    FINISHED = "FINISHED"


TASK_KINDS: dict[TaskType, TaskKind] = {
    TaskType.HARVEST: TaskKind.HARVEST,
    TaskType.TRANSPORT: TaskKind.TRANSPORT,
    TaskType.BUILD: TaskKind.BUILD,
    TaskType.REPAIR: TaskKind.REPAIR,
    TaskType.UPGRADE: TaskKind.UPGRADE,
    TaskType.ATTACK: TaskKind.ATTACK,
}

STATE_TABLES: dict[TaskKind, type[Enum]] = {
    TaskKind.HARVEST: HarvestState,
    TaskKind.TRANSPORT: TransportState,
    TaskKind.BUILD: BuildState,
    TaskKind.REPAIR: RepairState,
    TaskKind.UPGRADE: UpgradeState,
    TaskKind.ATTACK: AttackState,
}


def initial_fsm(task_type: TaskType) -> TaskFSM:
    """Fresh FSM record for *task_type*, positioned at the kind's INIT state."""
    kind = TASK_KINDS.get(task_type)
    if kind is None:
        raise UnknownTaskTypeError(f"No FSM kind for task type {task_type!r}")
    table = STATE_TABLES[kind]
    return TaskFSM(kind=kind, task_state=table["INIT"].value)


def creep_state(fsm: TaskFSM, worker: str) -> CreepFSMState:
    """Return (creating on first use) *worker*'s state inside *fsm*."""
    state = fsm.creep_states.get(worker)
    if state is None:
        state = CreepFSMState(current_state=STATE_TABLES[fsm.kind]["INIT"].value)
        fsm.creep_states[worker] = state
    return state
