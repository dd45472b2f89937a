"""Versioned API route modules."""

from fastapi import APIRouter

from colony.api.routes.config import router as config_router
from colony.api.routes.control import router as control_router
from colony.api.routes.logistics import router as logistics_router
from colony.api.routes.state import router as state_router
from colony.api.routes.tasks import router as tasks_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(tasks_router, tags=["Tasks"])
api_router.include_router(logistics_router, tags=["Logistics"])
api_router.include_router(state_router, tags=["State"])
api_router.include_router(control_router, tags=["Control"])
api_router.include_router(config_router, tags=["Config"])

__all__ = ["api_router"]
