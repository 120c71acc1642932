from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import uvicorn
from fastapi import FastAPI

from hr_portal.api.health import router as health_router
from hr_portal.api.router import api_router
from hr_portal.config import get_settings
from hr_portal.db import create_tables, dispose_engine
from hr_portal.exceptions import setup_exception_handlers
from hr_portal.middleware import setup_middleware
from hr_portal.services.hr_api import close_hr_api

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager for startup and shutdown."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    logger.info("Starting %s v%s [%s]", settings.app_name, settings.app_version, settings.environment)
    await create_tables()
    yield
    await close_hr_api()
    await dispose_engine()
    logger.info("Shutting down %s", settings.app_name)


def create_app() -> FastAPI:
    """Application factory."""
    settings = get_settings()

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
    )

    setup_middleware(application, settings)
    setup_exception_handlers(application)

    application.include_router(health_router)
    application.include_router(api_router)

    return application


app = create_app()


def run() -> None:
    """Serve the portal with uvicorn (console script ``hr-portal``)."""
    settings = get_settings()
    uvicorn.run(
        "hr_portal.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
