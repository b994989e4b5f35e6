"""
FastAPI Application Entry Point.

This is the main application file for the Courier Backend.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from courier_backend.app.core.config import settings
from courier_backend.app.api.router import router as api_router
from courier_backend.app.db.session import engine, Base
from courier_backend.app.core.observability import ObservabilityMiddleware, TimeoutMiddleware, configure_logging
from courier_backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    store_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from courier_backend.app.models.user import User
from courier_backend.app.models.parcel import Parcel
from courier_backend.app.models.payment import Payment
from courier_backend.app.models.rider import Rider
from courier_backend.app.models.tracking_event import TrackingEvent
from courier_backend.app.models.audit_log import AuditLog


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Configures logging and creates database tables on startup.
    2. Disposes the engine's connection pool on shutdown.
    """
    configure_logging(settings.log_level)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Parcel delivery backend: parcels, payments, riders and tracking",
    lifespan=lifespan,
)

# Timeout runs inside observability so timed-out requests are still logged
app.add_middleware(TimeoutMiddleware, timeout_seconds=settings.request_timeout_seconds)
app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(SQLAlchemyError, store_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
    }


app.include_router(api_router)


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": "Parcel Server is running",
        "docs": "/docs",
        "health": "/health",
    }
