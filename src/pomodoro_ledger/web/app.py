"""FastAPI application exposing the timer over a local HTTP API."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from pomodoro_ledger import __version__
from pomodoro_ledger.core.clock import Clock, SystemClock
from pomodoro_ledger.core.config import Config, get_config
from pomodoro_ledger.focus.service import PomodoroService
from pomodoro_ledger.storage.database import Database
from pomodoro_ledger.storage.state_store import StateStore

logger = logging.getLogger(__name__)


def get_service(request: Request) -> PomodoroService:
    """Service owned by the running application."""
    return request.app.state.service


def get_db(request: Request) -> Database:
    return request.app.state.db


def create_app(config: Config | None = None, clock: Clock | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    config = config or get_config()
    clock = clock or SystemClock()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        # Startup
        logger.info("Starting Pomodoro Ledger API...")
        db = Database(config.db_path)
        await db.connect()

        store = StateStore(db, config.storage.state_key, config.timer.default_durations())
        service = await PomodoroService.load(store, clock, config.timer.tick_interval_seconds)
        service.start_ticker()

        app.state.db = db
        app.state.service = service

        yield

        # Shutdown
        await service.stop_ticker()
        service.pause()
        await service.flush()
        await db.close()
        logger.info("API shutdown complete")

    app = FastAPI(
        title="Pomodoro Ledger",
        description="Pomodoro timer with per-task countdowns",
        version=__version__,
        lifespan=lifespan,
    )

    # Local frontends only
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from pomodoro_ledger.web.routes import api

    app.include_router(api.router, prefix="/api")

    return app
