"""Pydantic response models for the REST API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


# --- Tasks ---

class PositionSchema(BaseModel):
    x: int
    y: int
    room: str = ""


class CreepStateSchema(BaseModel):
    current_state: str
    interruptible: bool = True
    record: dict[str, Any] = Field(default_factory=dict)


class TaskSchema(BaseModel):
    id: str
    type: str
    room_name: str
    status: str
    assignment_type: str
    lifetime: str
    max_assignees: int
    assigned_creeps: list[str] = Field(default_factory=list)
    base_priority: int
    params: dict[str, Any] = Field(default_factory=dict)
    fsm_kind: str
    task_state: str
    creep_states: dict[str, CreepStateSchema] = Field(default_factory=dict)
    created_at: int = 0
    updated_at: int = 0
    started_at: int | None = None
    completed_at: int | None = None
    retry_count: int = 0
    max_retries: int = 3


class TaskListResponse(BaseModel):
    tick: int
    count: int
    tasks: list[TaskSchema]


class CreepTaskResponse(BaseModel):
    worker: str
    task: TaskSchema | None = None


# --- Logistics ---

class ProviderSchema(BaseModel):
    id: str
    kind: str
    pos: PositionSchema
    resource_type: str
    status: str
    amount: int = 0


class ConsumerSchema(BaseModel):
    id: str
    kind: str
    pos: PositionSchema
    resource_type: str
    needs: int = 0
    priority: float = 0.0


class SupplyRequestSchema(BaseModel):
    id: str
    worker: str
    resource_type: str
    created_at: int
    suggested_wait: int
    amount: int | None = None


class LogisticsResponse(BaseModel):
    tick: int
    room_name: str
    last_updated: int
    providers: list[ProviderSchema]
    consumers: list[ConsumerSchema]
    supply_requests: list[SupplyRequestSchema] = Field(default_factory=list)


# --- Stats / events ---

class StatsResponse(BaseModel):
    tick: int
    running: bool
    paused: bool
    tasks_created: int = 0
    tasks_completed: int = 0
    tasks_failed: int = 0
    total: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)
    workers: int = 0
    idle_workers: int = 0
    transport_rooms: list[str] = Field(default_factory=list)


class EventSchema(BaseModel):
    tick: int
    category: str
    message: str
    subject_ids: list[str] = Field(default_factory=list)


class EventListResponse(BaseModel):
    events: list[EventSchema]


# --- Control ---

class ControlResponse(BaseModel):
    status: str
    message: str
    tick: int = 0


# --- Config ---

class ColonyConfigResponse(BaseModel):
    world_seed: int
    grid_width: int
    grid_height: int
    room_name: str
    max_ticks: int
    cleanup_interval: int
    task_expiry_ticks: int
    matching_interval: int
    scheduling_interval: int
    full_gc_interval: int
    aging_factor: float
    saturation_factor: float
    supply_cleanup_interval: int
    eta_min_wait: int
    eta_max_wait: int
    tick_rate: float
