"""FastAPI application factory with lifespan management."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from colony.api.dependencies import set_engine_manager
from colony.api.engine_manager import EngineManager
from colony.api.routes import api_router
from colony.config import ColonyConfig
from colony.core.colony_state import ColonyState
from colony.utils.logging import setup_logging

logger = logging.getLogger(__name__)


def create_app(
    config: ColonyConfig | None = None,
    state: ColonyState | None = None,
    autostart: bool = True,
) -> FastAPI:
    """Build and return the fully-configured FastAPI application."""
    if config is None:
        config = ColonyConfig()

    _config = config

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        setup_logging(_config.log_level)
        manager = EngineManager(_config, state)
        set_engine_manager(manager)
        if autostart:
            manager.start()
        logger.info("API server started (autostart=%s).", autostart)
        yield
        manager.stop()
        set_engine_manager(None)
        logger.info("API server shutting down.")

    app = FastAPI(
        title="Colony Task Engine",
        description=(
            "Task lifecycle and logistics engine running against a sandbox world.\n\n"
            "## API Groups\n\n"
            "- **Tasks** — Task registry: all tasks, single task, per worker, per room\n"
            "- **Logistics** — Per-room provider/consumer network and supply requests\n"
            "- **State** — Counters and the notification log\n"
            "- **Control** — Run lifecycle: start, pause, resume, step, reset, save\n"
            "- **Config** — Read-only engine configuration\n"
        ),
        version="0.1.0",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "Tasks", "description": "Read-only views of the task registry."},
            {"name": "Logistics", "description": "Providers, consumers and open supply requests per room."},
            {"name": "State", "description": "Task counters and the task-created / worker-died event log."},
            {"name": "Control", "description": "Run lifecycle controls: start, pause, resume, single-step, reset and save."},
            {"name": "Config", "description": "Read-only engine configuration (intervals, priority factors, ETA bounds)."},
        ],
    )

    # CORS: allow any origin in dev
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    return app
