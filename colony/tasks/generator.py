"""TaskGenerator — strategy-driven creation of non-transport tasks.

Per owned room, every tick:
  - one HARVEST task per source (max assignees = free tiles around it)
  - one UPGRADE task per controller
  - one BUILD task per construction site

An active task for the same target suppresses a new one.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from colony.core.enums import ObjectKind, TaskPriority, TaskType
from colony.core.models import TaskSpec

if TYPE_CHECKING:
    from colony.core.oracle import WorldOracle
    from colony.tasks.lifecycle import TaskLifecycleEngine

logger = logging.getLogger(__name__)

HARVEST_MAX_ASSIGNEES = 3


class TaskGenerator:
    __slots__ = ("_engine", "_oracle")

    def __init__(self, engine: TaskLifecycleEngine, oracle: WorldOracle) -> None:
        self._engine = engine
        self._oracle = oracle

    def generate(self) -> list[str]:
        created: list[str] = []
        for room_name in self._oracle.owned_rooms():
            created.extend(self.generate_for_room(room_name))
        return created

    def generate_for_room(self, room_name: str) -> list[str]:
        covered = {
            (t.type, t.params.get("source_id") or t.params.get("controller_id") or t.params.get("target_id"))
            for t in self._engine.get_active_tasks(room_name)
        }
        created: list[str] = []

        for source in self._oracle.find_objects(room_name, ObjectKind.SOURCE):
            if (TaskType.HARVEST, source.id) in covered:
                continue
            slots = self._oracle.harvest_slots(source.id)
            created.append(self._engine.create_task(TaskSpec(
                type=TaskType.HARVEST,
                room_name=room_name,
                params={"source_id": source.id},
                base_priority=TaskPriority.HIGH,
                max_assignees=max(1, min(slots, HARVEST_MAX_ASSIGNEES)) if slots else None,
            )))

        for controller in self._oracle.find_objects(room_name, ObjectKind.CONTROLLER):
            if (TaskType.UPGRADE, controller.id) in covered:
                continue
            created.append(self._engine.create_task(TaskSpec(
                type=TaskType.UPGRADE,
                room_name=room_name,
                params={"controller_id": controller.id},
                base_priority=TaskPriority.NORMAL,
            )))

        for site in self._oracle.find_objects(room_name, ObjectKind.CONSTRUCTION_SITE):
            if (TaskType.BUILD, site.id) in covered:
                continue
            created.append(self._engine.create_task(TaskSpec(
                type=TaskType.BUILD,
                room_name=room_name,
                params={"target_id": site.id},
                base_priority=TaskPriority.NORMAL,
            )))

        if created:
            logger.debug("Generated %d tasks in %s", len(created), room_name)
        return created
