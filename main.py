"""
Proctor Telemetry Viewer — Application Entry Point.

Creates the FastAPI application, wires the telemetry source into the
routes, and mounts CORS middleware for the instructor front end.
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import router, set_source
from config.settings import get_settings
from services.demo_source import DemoTelemetrySource

# ── Logging setup ───────────────────────────────────────────────────────

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)-35s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)

logger = logging.getLogger("viewer")


# ── Application factory ────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan: initialize and tear down resources."""
    logger.info("═══ Starting %s ═══", settings.APP_NAME)
    logger.info(
        "Environment: %s | Demo Mode: %s | Timeline limit: %d",
        settings.ENVIRONMENT.value,
        settings.DEMO_MODE,
        settings.TIMELINE_FETCH_LIMIT,
    )

    set_source(DemoTelemetrySource())
    logger.info("Telemetry source wired. System ready.")
    yield

    set_source(None)
    logger.info("═══ Shutting down %s ═══", settings.APP_NAME)


app = FastAPI(
    title=settings.APP_NAME,
    description=(
        "Instructor-facing viewer for proctoring telemetry: lists assignments "
        "and students and reconciles each student's signal stream with the "
        "server-side report into focused/active time, sessions and bursts."
    ),
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── Middleware ──────────────────────────────────────────────────────────

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routes ──────────────────────────────────────────────────────────────

app.include_router(router)


# ── CLI entry point ─────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
