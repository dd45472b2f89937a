"""TaskLifecycleEngine — creation, assignment, status transitions and cleanup.

Assignment rules:
  - EXCLUSIVE tasks are assignable only while PENDING.
  - SHARED tasks are assignable while PENDING, ASSIGNED or IN_PROGRESS.
  - Never more than ``max_assignees`` workers, never the same worker twice.
  - Dropping to zero assignees from a non-terminal status resets to PENDING.

Rejected requests return False and leave no partial mutation behind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable

from colony.core.enums import (
    AssignmentType,
    TaskLifetime,
    TaskPriority,
    TaskStatus,
    TaskType,
)
from colony.core.errors import UnknownTaskTypeError
from colony.core.models import Task, TaskSpec
from colony.tasks.fsm import initial_fsm

if TYPE_CHECKING:
    from colony.config import ColonyConfig
    from colony.core.colony_state import ColonyState
    from colony.core.oracle import WorldOracle

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TaskDefaults:
    assignment_type: AssignmentType
    lifetime: TaskLifetime
    max_assignees: int
    max_retries: int = 3


TASK_DEFAULTS: dict[TaskType, TaskDefaults] = {
    TaskType.HARVEST:   TaskDefaults(AssignmentType.SHARED, TaskLifetime.PERSISTENT, 3),
    TaskType.TRANSPORT: TaskDefaults(AssignmentType.EXCLUSIVE, TaskLifetime.ONCE, 1, max_retries=2),
    TaskType.BUILD:     TaskDefaults(AssignmentType.SHARED, TaskLifetime.ONCE, 5),
    TaskType.REPAIR:    TaskDefaults(AssignmentType.SHARED, TaskLifetime.ONCE, 3),
    TaskType.UPGRADE:   TaskDefaults(AssignmentType.SHARED, TaskLifetime.PERSISTENT, 4),
    TaskType.ATTACK:    TaskDefaults(AssignmentType.SHARED, TaskLifetime.ONCE, 10),
}

_SHARED_ASSIGNABLE = frozenset({TaskStatus.PENDING, TaskStatus.ASSIGNED, TaskStatus.IN_PROGRESS})

# Explicit status moves accepted by update_task_status. PENDING <-> ASSIGNED
# is driven by assignment, never set directly.
_ALLOWED_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED}),
    TaskStatus.ASSIGNED: frozenset({TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, TaskStatus.FAILED}),
    TaskStatus.IN_PROGRESS: frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED}),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.FAILED: frozenset(),
}


def task_defaults(task_type: TaskType) -> TaskDefaults:
    try:
        return TASK_DEFAULTS[TaskType(task_type)]
    except (KeyError, ValueError) as exc:
        raise UnknownTaskTypeError(f"Unknown task type: {task_type!r}") from exc


def can_accept(task: Task, worker: str | None = None) -> bool:
    """Whether *task* would accept one more worker (optionally *worker* specifically)."""
    if task.assignment_type == AssignmentType.EXCLUSIVE:
        if task.status != TaskStatus.PENDING:
            return False
    elif task.status not in _SHARED_ASSIGNABLE:
        return False
    if len(task.assigned_creeps) >= task.max_assignees:
        return False
    if worker is not None and worker in task.assigned_creeps:
        return False
    return True


@dataclass(frozen=True, slots=True)
class CleanupReport:
    ran: bool
    purged_terminal: int = 0
    released_workers: int = 0
    expired: int = 0


class TaskLifecycleEngine:
    """Owns every mutation of tasks in the registry."""

    __slots__ = ("_config", "_state", "_oracle")

    def __init__(self, config: ColonyConfig, state: ColonyState, oracle: WorldOracle) -> None:
        self._config = config
        self._state = state
        self._oracle = oracle

    @property
    def state(self) -> ColonyState:
        return self._state

    # -- creation --

    def create_task(self, spec: TaskSpec) -> str:
        """Store a new PENDING task built from *spec* and return its id.

        Raises UnknownTaskTypeError for a type outside the closed enumeration.
        """
        defaults = task_defaults(spec.type)
        fsm = initial_fsm(TaskType(spec.type))
        registry = self._state.registry
        tick = self._state.tick

        task = Task(
            id=registry.next_task_id(TaskType(spec.type)),
            type=TaskType(spec.type),
            room_name=spec.room_name,
            params=dict(spec.params),
            fsm=fsm,
            status=TaskStatus.PENDING,
            assignment_type=defaults.assignment_type,
            lifetime=defaults.lifetime,
            max_assignees=spec.max_assignees if spec.max_assignees is not None else defaults.max_assignees,
            base_priority=spec.base_priority if spec.base_priority is not None else TaskPriority.NORMAL,
            created_at=tick,
            updated_at=tick,
            max_retries=spec.max_retries if spec.max_retries is not None else defaults.max_retries,
        )
        # An exclusive task never takes more than one worker, whatever the caller asked for.
        if task.assignment_type == AssignmentType.EXCLUSIVE:
            task.max_assignees = 1

        registry.add(task)
        registry.book(task.room_name).tasks_created += 1
        self._state.emit("task-created", f"Created {task.type.value} task {task.id}", (task.id,))
        logger.debug("Tick %d: created %s in %s", tick, task.id, task.room_name)
        return task.id

    def inject_transport_tasks(self, room_name: str, specs: Iterable[TaskSpec]) -> list[str]:
        """Create matcher output, skipping pairs an active transport task already covers."""
        existing = {
            _transport_key(t.params)
            for t in self.get_active_tasks(room_name)
            if t.type == TaskType.TRANSPORT
        }
        created: list[str] = []
        for spec in specs:
            key = _transport_key(spec.params)
            if key in existing:
                continue
            existing.add(key)
            created.append(self.create_task(spec))
        return created

    # -- assignment --

    def assign_task(self, task_id: str, worker: str) -> bool:
        registry = self._state.registry
        task = registry.get(task_id)
        if task is None:
            logger.warning("assign_task: unknown task %s", task_id)
            return False
        if not can_accept(task, worker):
            logger.debug(
                "assign_task: %s rejected %s (status=%s, %d/%d assigned)",
                task_id, worker, task.status.value, len(task.assigned_creeps), task.max_assignees,
            )
            return False
        current = registry.creep_task_id(worker)
        if current is not None and current != task_id:
            logger.debug("assign_task: %s already bound to %s", worker, current)
            return False

        task.assigned_creeps.append(worker)
        if task.status == TaskStatus.PENDING:
            task.status = TaskStatus.ASSIGNED
        task.updated_at = self._state.tick
        registry.bind_creep(task, worker)
        return True

    def unassign_creep(self, worker: str) -> bool:
        """Remove *worker* from its current task. False if it had none."""
        return self._release(worker, reason="unassigned")

    def on_worker_died(self, worker: str) -> bool:
        """Reconcile a dead worker: same effect as unassigning, whatever the task status."""
        released = self._release(worker, reason="died")
        self._state.emit("worker-died", f"Worker {worker} died", (worker,))
        return released

    def _release(self, worker: str, reason: str) -> bool:
        registry = self._state.registry
        task_id = registry.release_creep(worker)
        if task_id is None:
            return False
        task = registry.get(task_id)
        if task is None:
            logger.warning("Worker %s indexed to missing task %s", worker, task_id)
            return False

        if worker in task.assigned_creeps:
            task.assigned_creeps.remove(worker)
        task.fsm.creep_states.pop(worker, None)
        if not task.assigned_creeps and not task.terminal:
            task.status = TaskStatus.PENDING
        task.updated_at = self._state.tick
        logger.debug("Tick %d: %s %s from %s", self._state.tick, worker, reason, task_id)
        return True

    # -- status --

    def update_task_status(self, task_id: str, status: TaskStatus) -> bool:
        registry = self._state.registry
        task = registry.get(task_id)
        if task is None:
            logger.warning("update_task_status: unknown task %s", task_id)
            return False
        status = TaskStatus(status)
        tick = self._state.tick

        if status == task.status:
            task.updated_at = tick
            return True
        if status not in _ALLOWED_TRANSITIONS[task.status]:
            logger.debug("update_task_status: %s %s -> %s not allowed", task_id, task.status.value, status.value)
            return False

        task.status = status
        task.updated_at = tick
        if status == TaskStatus.IN_PROGRESS and task.started_at is None:
            task.started_at = tick

        if status.terminal:
            task.completed_at = tick
            book = registry.book(task.room_name)
            for worker in task.assigned_creeps:
                if book.creep_tasks.get(worker) == task_id:
                    del book.creep_tasks[worker]
            book.task_assignments.pop(task_id, None)
            if status == TaskStatus.COMPLETED:
                book.tasks_completed += 1
                self._state.emit("task-completed", f"Task {task_id} completed", (task_id,))
            else:
                book.tasks_failed += 1
                self._state.emit("task-failed", f"Task {task_id} failed", (task_id,))
            book.completed_tasks.append(task_id)
        return True

    def record_retry(self, task_id: str) -> bool:
        """Count one failed attempt. Fails the task once the retry budget is spent.

        Returns True while the task may still be retried.
        """
        task = self._state.registry.get(task_id)
        if task is None or task.terminal:
            return False
        task.retry_count += 1
        task.updated_at = self._state.tick
        if task.retry_count > task.max_retries:
            self.update_task_status(task_id, TaskStatus.FAILED)
            return False
        return True

    # -- cleanup --

    def cleanup(self, force: bool = False) -> CleanupReport:
        """Purge terminal tasks, dead-worker bindings and expired tasks.

        Throttled to once per ``cleanup_interval`` ticks unless *force*.
        Idempotent: a second pass right after the first changes nothing.
        """
        tick = self._state.tick
        if not force and tick - self._state.last_cleanup < self._config.cleanup_interval:
            return CleanupReport(ran=False)

        registry = self._state.registry
        purged = 0
        for _room, book in registry.books():
            for task_id in book.completed_tasks:
                if registry.remove(task_id) is not None:
                    purged += 1
            book.completed_tasks.clear()

        released = 0
        for worker, _task_id in registry.bound_workers():
            if not self._oracle.worker_exists(worker):
                if self._release(worker, reason="reaped"):
                    released += 1

        expired = 0
        expiry = self._config.task_expiry_ticks
        for task in registry.all_tasks():
            if tick - task.created_at < expiry:
                continue
            for worker in list(task.assigned_creeps):
                if registry.creep_task_id(worker) == task.id:
                    registry.release_creep(worker)
            registry.remove(task.id)
            expired += 1

        self._state.last_cleanup = tick
        if purged or released or expired:
            logger.info(
                "Tick %d: task cleanup purged=%d released=%d expired=%d",
                tick, purged, released, expired,
            )
        return CleanupReport(ran=True, purged_terminal=purged, released_workers=released, expired=expired)

    # -- queries --

    def get_task_by_id(self, task_id: str) -> Task | None:
        return self._state.registry.get(task_id)

    def get_creep_task(self, worker: str) -> Task | None:
        task_id = self._state.registry.creep_task_id(worker)
        if task_id is None:
            return None
        return self._state.registry.get(task_id)

    def get_tasks(self, status: TaskStatus | None = None, room_name: str | None = None) -> list[Task]:
        registry = self._state.registry
        tasks = registry.tasks_in(room_name) if room_name is not None else registry.all_tasks()
        if status is None:
            return tasks
        return [t for t in tasks if t.status == status]

    def get_pending_tasks(self, room_name: str | None = None) -> list[Task]:
        return self.get_tasks(TaskStatus.PENDING, room_name)

    def get_active_tasks(self, room_name: str | None = None) -> list[Task]:
        return [t for t in self.get_tasks(room_name=room_name) if t.status.active]

    def get_tasks_by_room(self, room_name: str) -> list[Task]:
        if self._state.registry.find_book(room_name) is None:
            logger.warning("get_tasks_by_room: no tasks recorded for room %s", room_name)
            return []
        return self._state.registry.tasks_in(room_name)


def _transport_key(params: dict) -> tuple:
    return (
        params.get("source_id") or params.get("source_pos"),
        params.get("target_id"),
        params.get("resource_type"),
    )
