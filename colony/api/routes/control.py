"""POST /api/v1/control/{action} — colony run lifecycle controls."""

from __future__ import annotations

from enum import Enum

from fastapi import APIRouter, Depends, Query

from colony.api.dependencies import get_engine_manager
from colony.api.engine_manager import EngineManager
from colony.api.schemas import ControlResponse

router = APIRouter()


class ControlAction(str, Enum):
    start = "start"
    pause = "pause"
    resume = "resume"
    step = "step"
    reset = "reset"
    save = "save"


@router.post("/control/{action}", response_model=ControlResponse)
def control(
    action: ControlAction,
    manager: EngineManager = Depends(get_engine_manager),
) -> ControlResponse:
    snapshot = manager.get_snapshot()
    tick = snapshot.tick if snapshot else 0

    match action:
        case ControlAction.start:
            if manager.running:
                return ControlResponse(status="noop", message="Already running.", tick=tick)
            manager.start()
            return ControlResponse(status="ok", message="Colony started.", tick=tick)

        case ControlAction.pause:
            if not manager.running:
                return ControlResponse(status="error", message="Not running.", tick=tick)
            manager.pause()
            return ControlResponse(status="ok", message="Colony paused.", tick=tick)

        case ControlAction.resume:
            if not manager.running:
                return ControlResponse(status="error", message="Not running.", tick=tick)
            manager.resume()
            return ControlResponse(status="ok", message="Colony resumed.", tick=tick)

        case ControlAction.step:
            if not manager.running:
                manager.start(paused=True)
            manager.step()
            return ControlResponse(status="ok", message="Single tick executed.", tick=tick)

        case ControlAction.reset:
            manager.reset()
            snapshot = manager.get_snapshot()
            new_tick = snapshot.tick if snapshot else 0
            return ControlResponse(status="ok", message="Colony reset.", tick=new_tick)

        case ControlAction.save:
            if manager.running and not manager.paused:
                return ControlResponse(status="error", message="Pause before saving.", tick=tick)
            path = manager.save()
            return ControlResponse(status="ok", message=f"State saved to {path}.", tick=tick)


@router.post("/speed")
def set_speed(
    tps: float = Query(20.0, gt=0.5, le=100.0, description="Ticks per second"),
    manager: EngineManager = Depends(get_engine_manager),
) -> ControlResponse:
    manager.tick_rate = 1.0 / tps
    snapshot = manager.get_snapshot()
    tick = snapshot.tick if snapshot else 0
    return ControlResponse(status="ok", message=f"Speed set to {tps:.1f} tps.", tick=tick)
