"""GET /api/v1/rooms/{room}/logistics — provider/consumer network of a room."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from colony.api.dependencies import get_engine_manager
from colony.api.engine_manager import EngineManager
from colony.api.routes.tasks import require_snapshot
from colony.api.schemas import (
    ConsumerSchema,
    LogisticsResponse,
    PositionSchema,
    ProviderSchema,
    SupplyRequestSchema,
)

router = APIRouter()


@router.get("/rooms/{room_name}/logistics", response_model=LogisticsResponse)
def get_room_logistics(
    room_name: str,
    manager: EngineManager = Depends(get_engine_manager),
) -> LogisticsResponse:
    snapshot = require_snapshot(manager)
    network = snapshot.networks.get(room_name)
    if network is None:
        raise HTTPException(status_code=404, detail=f"No logistics network for room {room_name}.")
    return LogisticsResponse(
        tick=snapshot.tick,
        room_name=room_name,
        last_updated=network.last_updated,
        providers=[
            ProviderSchema(
                id=p.id,
                kind=p.kind.value,
                pos=PositionSchema(**p.pos.to_dict()),
                resource_type=p.resource_type,
                status=p.status.value,
                amount=p.amount,
            )
            for p in sorted(network.providers.values(), key=lambda p: p.id)
        ],
        consumers=[
            ConsumerSchema(
                id=c.id,
                kind=c.kind.value,
                pos=PositionSchema(**c.pos.to_dict()),
                resource_type=c.resource_type,
                needs=c.needs,
                priority=c.priority,
            )
            for c in sorted(network.consumers.values(), key=lambda c: c.id)
        ],
        supply_requests=[
            SupplyRequestSchema(
                id=r.id,
                worker=r.worker,
                resource_type=r.resource_type,
                created_at=r.created_at,
                suggested_wait=r.suggested_wait,
                amount=r.amount,
            )
            for r in snapshot.supply_requests
            if r.room_name == room_name
        ],
    )
