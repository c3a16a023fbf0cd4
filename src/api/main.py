"""FastAPI application setup and configuration."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.middleware.error_handler import setup_exception_handlers
from src.api.middleware.logging import RequestLoggingMiddleware, setup_logging
from src.jobs.scheduler import get_scheduler
from src.shared.config import get_settings
from src.shared.database import init_db, shutdown, startup
from src.shared.feature_flags import is_database_persistence_enabled

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Connects the database when persistence is enabled and runs the tick
    scheduler for the lifetime of the app.
    """
    db_enabled = is_database_persistence_enabled()
    if db_enabled:
        await startup()
        await init_db()

    scheduler = get_scheduler()
    scheduler.start()
    try:
        yield
    finally:
        scheduler.shutdown(wait=False)
        if db_enabled:
            await shutdown()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    setup_logging()

    application = FastAPI(
        title="Exam Practice API",
        description="""
        Timed exam practice sessions:
        - Step through an exam's questions with per-question time limits
        - Self-assess answers against model answers
        - Save session results and earn experience
        """,
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    cors_origins = settings.cors_origins_list
    if settings.is_production and not cors_origins:
        logger.warning(
            "No CORS_ORIGINS configured in production. "
            "API will not be accessible from browsers."
        )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=[
            "Content-Type",
            "Accept",
            "Origin",
            "X-Requested-With",
            "X-Request-ID",
            "X-Learner-ID",
        ],
        max_age=600,
    )

    setup_exception_handlers(application)
    application.add_middleware(RequestLoggingMiddleware)

    from src.api.routers import health_router, practice_router

    application.include_router(
        health_router,
        prefix="/health",
        tags=["Health"],
    )
    application.include_router(
        practice_router,
        prefix="/practice",
        tags=["Practice"],
    )

    return application


# Create app instance
app = create_app()
