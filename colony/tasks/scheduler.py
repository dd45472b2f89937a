"""TaskScheduler — hands assignable tasks to idle workers.

One pass:
  1. idle workers: live, not spawning, not bound to a task
  2. assignable tasks, ranked by effective priority (ties by task id)
  3. per task, the best-scoring capable workers up to its remaining capacity
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from colony.core.enums import AssignmentType, BodyPart, TaskType
from colony.tasks.lifecycle import can_accept
from colony.tasks.priority import PriorityCalculator

if TYPE_CHECKING:
    from colony.config import ColonyConfig
    from colony.core.models import Position, Task
    from colony.core.oracle import WorkerView, WorldOracle
    from colony.tasks.lifecycle import TaskLifecycleEngine

logger = logging.getLogger(__name__)

# Body part a worker needs (at least one of) to take a task of each type.
REQUIRED_PARTS: dict[TaskType, tuple[BodyPart, ...]] = {
    TaskType.HARVEST: (BodyPart.WORK,),
    TaskType.TRANSPORT: (BodyPart.CARRY,),
    TaskType.BUILD: (BodyPart.WORK,),
    TaskType.REPAIR: (BodyPart.WORK,),
    TaskType.UPGRADE: (BodyPart.WORK,),
    TaskType.ATTACK: (BodyPart.ATTACK, BodyPart.RANGED_ATTACK),
}

CAPABILITY_WEIGHT = 0.5
DISTANCE_WEIGHT = 0.3
LOAD_WEIGHT = 0.2
DISTANCE_HORIZON = 50


def can_execute(worker: WorkerView, task: Task) -> bool:
    if worker.spawning or worker.parts(BodyPart.MOVE) == 0:
        return False
    required = REQUIRED_PARTS.get(task.type, (BodyPart.WORK,))
    return any(worker.parts(p) > 0 for p in required)


class TaskScheduler:
    """Greedy priority-ordered assignment of tasks to idle workers."""

    __slots__ = ("_config", "_engine", "_oracle", "_priority")

    def __init__(self, config: ColonyConfig, engine: TaskLifecycleEngine, oracle: WorldOracle) -> None:
        self._config = config
        self._engine = engine
        self._oracle = oracle
        self._priority = PriorityCalculator(config.aging_factor, config.saturation_factor)

    def available_workers(self) -> list[WorkerView]:
        return [
            w for w in self._oracle.workers()
            if not w.spawning and self._engine.get_creep_task(w.name) is None
        ]

    def assignable_tasks(self) -> list[Task]:
        return [t for t in self._engine.get_active_tasks() if can_accept(t)]

    def schedule(self) -> int:
        """Run one scheduling pass. Returns the number of assignments made."""
        idle = self.available_workers()
        if not idle:
            return 0
        tasks = self.assignable_tasks()
        if not tasks:
            return 0

        tick = self._engine.state.tick
        ranked = [(self._priority.calculate(t, tick), t) for t in tasks]
        ranked = [(p, t) for p, t in ranked if p > 0]
        ranked.sort(key=lambda pt: (-pt[0], pt[1].id))

        made = 0
        for _prio, task in ranked:
            if not idle:
                break
            want = 1 if task.assignment_type == AssignmentType.EXCLUSIVE else task.remaining_capacity
            if want <= 0:
                continue
            for worker in self._best_workers(task, idle, want):
                if self._engine.assign_task(task.id, worker.name):
                    idle.remove(worker)
                    made += 1

        if made:
            logger.debug("Tick %d: scheduler made %d assignments", tick, made)
        return made

    def _best_workers(self, task: Task, workers: list[WorkerView], count: int) -> list[WorkerView]:
        target = self._task_position(task)
        scored = [
            (self._score(w, target), w.name, w)
            for w in workers
            if can_execute(w, task)
        ]
        scored.sort(key=lambda s: (-s[0], s[1]))
        return [w for _score, _name, w in scored[:count]]

    @staticmethod
    def _score(worker: WorkerView, target: Position | None) -> float:
        capability = 0.5
        distance = worker.pos.range_to(target) if target is not None else 0
        distance_score = max(0.0, (DISTANCE_HORIZON - distance) / DISTANCE_HORIZON)
        load_score = worker.carry_free / worker.carry_capacity if worker.carry_capacity > 0 else 0.5
        return (
            capability * CAPABILITY_WEIGHT
            + distance_score * DISTANCE_WEIGHT
            + load_score * LOAD_WEIGHT
        )

    def _task_position(self, task: Task) -> Position | None:
        params = task.params
        if params.get("harvest_pos") is not None:
            return params["harvest_pos"]
        if params.get("source_pos") is not None:
            return params["source_pos"]
        for key in ("source_id", "target_id", "controller_id"):
            object_id = params.get(key)
            if object_id:
                pos = self._oracle.object_pos(object_id)
                if pos is not None:
                    return pos
        return None
