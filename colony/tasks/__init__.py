"""Task layer: registry, lifecycle engine, generation, scheduling."""

from colony.tasks.generator import TaskGenerator
from colony.tasks.lifecycle import TaskLifecycleEngine
from colony.tasks.priority import PriorityCalculator
from colony.tasks.registry import TaskRegistry
from colony.tasks.scheduler import TaskScheduler

__all__ = ["PriorityCalculator", "TaskGenerator", "TaskLifecycleEngine", "TaskRegistry", "TaskScheduler"]
