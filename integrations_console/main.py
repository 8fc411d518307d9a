"""Main FastAPI application."""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging

from integrations_console.core.backend import backend
from integrations_console.core.cache import query_cache
from integrations_console.core.config import get_settings
from integrations_console.core.exceptions import (
    AuthorizationError,
    BackendError,
    ConsoleError,
    DuplicateSubmission,
    UnknownResponseShape,
    ValidationError,
)
from integrations_console.api import gdpr, health, integrations, zapier
from integrations_console.models import Notification, NotificationVariant
from integrations_console.utils.logging import setup_logging

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)

# Get settings
settings = get_settings()

ERROR_STATUS = (
    (ValidationError, 400),
    (AuthorizationError, 403),
    (DuplicateSubmission, 409),
    (BackendError, 502),
    (UnknownResponseShape, 502),
)


def error_status(exc: ConsoleError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info("Starting up integrations console...")
    logger.info(f"Service: {settings.service_name}")
    logger.info(f"Environment: {settings.environment}")
    await backend.connect()
    await query_cache.connect()

    yield

    # Shutdown
    logger.info("Shutting down integrations console...")
    await query_cache.disconnect()
    await backend.disconnect()


# Create FastAPI app
app = FastAPI(
    title="Integrations Console",
    description="Admin console service for integration connections, Zapier keys and webhooks",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ConsoleError)
async def console_error_handler(request: Request, exc: ConsoleError):
    """Every console error becomes a destructive notification."""
    status_code = error_status(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")
    notification = Notification(
        title=exc.title,
        description=exc.message,
        variant=NotificationVariant.DESTRUCTIVE,
        code=exc.code,
        details=exc.details,
    )
    return JSONResponse(status_code=status_code, content=notification.model_dump(mode="json"))


# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(
    integrations.router,
    prefix="/api/v1/integrations",
    tags=["integrations"]
)
app.include_router(
    zapier.router,
    prefix="/api/v1/zapier",
    tags=["zapier"]
)
app.include_router(
    gdpr.router,
    prefix="/api/v1/gdpr",
    tags=["gdpr"]
)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "integrations_console.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug,
    )
