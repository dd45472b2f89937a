"""GET /api/v1/stats and /api/v1/events — counters and the notification log."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from colony.api.dependencies import get_engine_manager
from colony.api.engine_manager import EngineManager
from colony.api.routes.tasks import require_snapshot
from colony.api.schemas import EventListResponse, EventSchema, StatsResponse
from colony.core.enums import TaskStatus

router = APIRouter()


@router.get("/stats", response_model=StatsResponse)
def get_stats(
    manager: EngineManager = Depends(get_engine_manager),
) -> StatsResponse:
    snapshot = require_snapshot(manager)
    stats = snapshot.stats
    workers = [w for w in snapshot.workers if not w.spawning]
    return StatsResponse(
        tick=snapshot.tick,
        running=manager.running,
        paused=manager.paused,
        tasks_created=stats.get("tasks_created", 0),
        tasks_completed=stats.get("tasks_completed", 0),
        tasks_failed=stats.get("tasks_failed", 0),
        total=stats.get("total", 0),
        by_status={s.value: stats.get(s.value, 0) for s in TaskStatus},
        workers=len(workers),
        idle_workers=sum(1 for w in workers if w.name not in snapshot.creep_tasks),
        transport_rooms=sorted(room for room, net in snapshot.networks.items() if not net.empty),
    )


@router.get("/events", response_model=EventListResponse)
def get_events(
    since_tick: int | None = Query(None, ge=0, description="Only events from this tick on"),
    limit: int = Query(100, ge=1, le=5000),
    category: str | None = Query(None, description="e.g. task-created, worker-died"),
    manager: EngineManager = Depends(get_engine_manager),
) -> EventListResponse:
    log = manager.event_log
    events = log.since_tick(since_tick) if since_tick is not None else log.latest(limit)
    if category:
        events = [e for e in events if e.category == category]
    return EventListResponse(events=[
        EventSchema(tick=e.tick, category=e.category, message=e.message, subject_ids=list(e.subject_ids))
        for e in events[-limit:]
    ])
