"""
Leave Lifecycle Engine - Main Application Entry Point
"""
import logging
from typing import Optional
from urllib.parse import urlparse, urlunparse

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from leave_engine.api.router import api_router
from leave_engine.core.config import Settings, get_settings
from leave_engine.core.errors import (
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)
from leave_engine.core.logging import setup_logging
from leave_engine.db.session import create_db_engine, create_session_factory
from leave_engine.services.notification_service import Notifier, build_notifier

logger = logging.getLogger(__name__)


def _mask_database_url(url: str) -> str:
    """Mask password in DATABASE_URL for safe logging; show full path for sqlite."""
    try:
        parsed = urlparse(url)
        if parsed.scheme.startswith("sqlite"):
            return url
        if parsed.password:
            netloc = f"{parsed.username}:****@{parsed.hostname or ''}"
            if parsed.port:
                netloc += f":{parsed.port}"
            return urlunparse(parsed._replace(netloc=netloc))
    except ValueError:
        return "***"
    return url


async def _handle_operational_error(request, exc: OperationalError):
    # Missing tables mean the schema was never migrated
    if "no such table" in str(exc).lower() or "does not exist" in str(exc).lower():
        return JSONResponse(
            status_code=500,
            content={"detail": "Run alembic upgrade head"},
        )
    return await generic_exception_handler(request, exc)


def create_app(settings: Optional[Settings] = None, notifier: Optional[Notifier] = None) -> FastAPI:
    """
    Build the FastAPI application.

    The engine, session factory, settings and notifier live on ``app.state``;
    request handlers reach them through the dependencies in core.deps.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(
        title="Leave Lifecycle Engine",
        description="Leave applications, approvals, balances, accrual, recall and encashment",
        version=settings.VERSION or "1.0.0"
    )

    engine = create_db_engine(settings.DATABASE_URL)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.notifier = notifier or build_notifier(settings)

    # CORS must be registered before other middleware
    origins = settings.get_allowed_origins_list()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(OperationalError, _handle_operational_error)
    app.add_exception_handler(Exception, generic_exception_handler)

    # Include all API routes under /api/v1
    app.include_router(api_router, prefix="/api/v1")

    @app.on_event("startup")
    def startup_log_config() -> None:
        """Log DATABASE_URL at startup so it can be verified against Alembic."""
        logger.info("DATABASE_URL (app): %s", _mask_database_url(settings.DATABASE_URL))

    @app.on_event("shutdown")
    def dispose_engine() -> None:
        engine.dispose()

    return app


app = create_app()
