"""GET /api/v1/config — expose colony configuration."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from colony.api.dependencies import get_engine_manager
from colony.api.engine_manager import EngineManager
from colony.api.schemas import ColonyConfigResponse

router = APIRouter()


@router.get("/config", response_model=ColonyConfigResponse)
def get_config(
    manager: EngineManager = Depends(get_engine_manager),
) -> ColonyConfigResponse:
    cfg = manager.config
    return ColonyConfigResponse(
        world_seed=cfg.world_seed,
        grid_width=cfg.grid_width,
        grid_height=cfg.grid_height,
        room_name=cfg.room_name,
        max_ticks=cfg.max_ticks,
        cleanup_interval=cfg.cleanup_interval,
        task_expiry_ticks=cfg.task_expiry_ticks,
        matching_interval=cfg.matching_interval,
        scheduling_interval=cfg.scheduling_interval,
        full_gc_interval=cfg.full_gc_interval,
        aging_factor=cfg.aging_factor,
        saturation_factor=cfg.saturation_factor,
        supply_cleanup_interval=cfg.supply_cleanup_interval,
        eta_min_wait=cfg.eta_min_wait,
        eta_max_wait=cfg.eta_max_wait,
        tick_rate=manager.tick_rate,
    )
