"""FastAPI dependency injection — provides the EngineManager singleton."""

from __future__ import annotations

from fastapi import HTTPException

from colony.api.engine_manager import EngineManager

_engine_manager: EngineManager | None = None


def set_engine_manager(manager: EngineManager | None) -> None:
    global _engine_manager
    _engine_manager = manager


def get_engine_manager() -> EngineManager:
    if _engine_manager is None:
        raise HTTPException(status_code=503, detail="Colony engine not started.")
    return _engine_manager
