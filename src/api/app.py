"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.stream_core.registry import SessionRegistry

from .deps.pipeline import Collaborators, build_collaborators
from .logging_setup import configure_logging
from .metrics import router as metrics_router
from .routers import health, stream
from .services.publisher import RedisPatchPublisher
from .settings import APISettings, get_settings

LOGGER = logging.getLogger("meetinglistener.boot")


def create_app(
    settings: APISettings | None = None, collaborators: Collaborators | None = None
) -> FastAPI:
    """Build the app with its transcription and summary engines constructed up front."""
    explicit = settings is not None
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await app.state.registry.close_all()
        publisher = app.state.publisher
        if publisher is not None:
            await publisher.close()

    app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)
    if explicit:
        app.dependency_overrides[get_settings] = lambda: settings
    app.state.registry = SessionRegistry()
    app.state.collaborators = collaborators or build_collaborators(settings)
    app.state.publisher = None
    if settings.redis_url:
        app.state.publisher = RedisPatchPublisher(settings.redis_url, settings.redis_stream)
        LOGGER.info("Publishing transcript patches to redis stream %s", settings.redis_stream)

    app.include_router(health.router)
    app.include_router(stream.router)
    app.include_router(metrics_router)
    LOGGER.info(
        "%s ready (transcribe every %dms, summarize every %dms)",
        settings.app_name,
        settings.transcribe_interval_ms,
        settings.summary_interval_ms,
    )
    return app
