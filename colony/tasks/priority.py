"""Effective task priority: base weight, boosted by waiting time, damped by staffing.

    P_eff = base_weight * (1 + aging) * saturation

- aging: ``k1 * log1p(ticks_waiting)``; grows fast at first, then flattens,
  so long-waiting low-priority work eventually outranks fresh high-priority work.
- saturation: ``max(0, 1 - k2 * assigned / max)``; 0 once a task is full,
  which takes it out of the competition entirely.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from colony.core.enums import TaskPriority

if TYPE_CHECKING:
    from colony.core.models import Task

BASE_WEIGHTS: dict[int, float] = {
    TaskPriority.EMERGENCY: 10.0,
    TaskPriority.CRITICAL: 8.0,
    TaskPriority.HIGH: 6.0,
    TaskPriority.NORMAL: 4.0,
    TaskPriority.LOW: 2.0,
    TaskPriority.BACKGROUND: 1.0,
}


class PriorityCalculator:
    """Stateless calculator parameterised by the aging/saturation factors."""

    __slots__ = ("_aging_factor", "_saturation_factor")

    def __init__(self, aging_factor: float = 0.3, saturation_factor: float = 1.0) -> None:
        self._aging_factor = aging_factor
        self._saturation_factor = saturation_factor

    def calculate(self, task: Task, current_tick: int) -> float:
        saturation = self.saturation(len(task.assigned_creeps), task.max_assignees)
        if saturation <= 0:
            return 0.0
        aging = self.aging(current_tick - task.created_at)
        return self.base_weight(task.base_priority) * (1.0 + aging) * saturation

    @staticmethod
    def base_weight(priority: int) -> float:
        return BASE_WEIGHTS.get(priority, 4.0)

    def aging(self, ticks_waiting: int) -> float:
        return self._aging_factor * math.log1p(max(0, ticks_waiting))

    def saturation(self, assigned: int, maximum: int) -> float:
        if maximum <= 0:
            return 1.0
        if assigned >= maximum:
            return 0.0
        return max(0.0, 1.0 - self._saturation_factor * (assigned / maximum))
