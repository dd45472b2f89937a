"""GET /api/v1/tasks, /creeps/{name}/task, /rooms/{room}/tasks — task queries."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from colony.api.dependencies import get_engine_manager
from colony.api.engine_manager import EngineManager
from colony.api.schemas import CreepStateSchema, CreepTaskResponse, TaskListResponse, TaskSchema
from colony.core.enums import TaskStatus, TaskType
from colony.core.models import Task
from colony.core.snapshot import ColonySnapshot

router = APIRouter()


def serialize_task(task: Task) -> TaskSchema:
    data = task.to_dict()
    return TaskSchema(
        id=task.id,
        type=task.type.value,
        room_name=task.room_name,
        status=task.status.value,
        assignment_type=task.assignment_type.value,
        lifetime=task.lifetime.value,
        max_assignees=task.max_assignees,
        assigned_creeps=list(task.assigned_creeps),
        base_priority=int(task.base_priority),
        params=data["params"],
        fsm_kind=task.fsm.kind.value,
        task_state=task.fsm.task_state,
        creep_states={
            w: CreepStateSchema(**s.to_dict()) for w, s in task.fsm.creep_states.items()
        },
        created_at=task.created_at,
        updated_at=task.updated_at,
        started_at=task.started_at,
        completed_at=task.completed_at,
        retry_count=task.retry_count,
        max_retries=task.max_retries,
    )


def require_snapshot(manager: EngineManager) -> ColonySnapshot:
    snapshot = manager.get_snapshot()
    if snapshot is None:
        raise HTTPException(status_code=503, detail="No snapshot available yet.")
    return snapshot


def _listing(snapshot: ColonySnapshot, tasks: list[Task]) -> TaskListResponse:
    tasks = sorted(tasks, key=lambda t: t.id)
    return TaskListResponse(tick=snapshot.tick, count=len(tasks), tasks=[serialize_task(t) for t in tasks])


@router.get("/tasks", response_model=TaskListResponse)
def list_tasks(
    status: TaskStatus | None = Query(None, description="Filter by status"),
    type: TaskType | None = Query(None, description="Filter by task type"),
    active: bool = Query(False, description="Only non-terminal tasks"),
    manager: EngineManager = Depends(get_engine_manager),
) -> TaskListResponse:
    snapshot = require_snapshot(manager)
    tasks = list(snapshot.tasks.values())
    if status is not None:
        tasks = [t for t in tasks if t.status == status]
    if type is not None:
        tasks = [t for t in tasks if t.type == type]
    if active:
        tasks = [t for t in tasks if t.status.active]
    return _listing(snapshot, tasks)


@router.get("/tasks/{task_id}", response_model=TaskSchema)
def get_task(
    task_id: str,
    manager: EngineManager = Depends(get_engine_manager),
) -> TaskSchema:
    snapshot = require_snapshot(manager)
    task = snapshot.tasks.get(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found.")
    return serialize_task(task)


@router.get("/creeps/{name}/task", response_model=CreepTaskResponse)
def get_creep_task(
    name: str,
    manager: EngineManager = Depends(get_engine_manager),
) -> CreepTaskResponse:
    snapshot = require_snapshot(manager)
    if name not in snapshot.creep_tasks and all(w.name != name for w in snapshot.workers):
        raise HTTPException(status_code=404, detail=f"Worker {name} not found.")
    task = snapshot.creep_task(name)
    return CreepTaskResponse(worker=name, task=serialize_task(task) if task else None)


@router.get("/rooms/{room_name}/tasks", response_model=TaskListResponse)
def get_room_tasks(
    room_name: str,
    manager: EngineManager = Depends(get_engine_manager),
) -> TaskListResponse:
    snapshot = require_snapshot(manager)
    return _listing(snapshot, snapshot.tasks_in(room_name))
