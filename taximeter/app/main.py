"""
FastAPI Application Entry Point.

This is the main application file for the Taxi Meter Dispatch Backend.
"""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from taximeter.app.core.config import settings
from taximeter.app.core.cors import configure_cors
from taximeter.app.api.v1.router import router as api_v1_router
from taximeter.app.db.session import engine, Base, AsyncSessionLocal
from taximeter.app.core.redis_client import ping_redis
from taximeter.app.core.observability import ObservabilityMiddleware, setup_logging
from taximeter.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler,
    UnhandledErrorMiddleware,
)
from taximeter.app.services.compliance_reporter import ComplianceReporter
from taximeter.app.services.compliance_dispatcher import ComplianceDispatcher

# Import models to ensure they are registered with Base
from taximeter.app.models.user import User
from taximeter.app.models.company import Company
from taximeter.app.models.vehicle import Vehicle
from taximeter.app.models.driver import Driver
from taximeter.app.models.location_update import LocationUpdate
from taximeter.app.models.trip_log import TripLog
from taximeter.app.models.vehicle_trip_state import VehicleTripState
from taximeter.app.models.compliance_report_attempt import ComplianceReportAttempt
from taximeter.app.models.audit_log import AuditLog

setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Creates database tables on startup.
    2. Starts the regulator report workers; drains them on shutdown.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with httpx.AsyncClient(timeout=settings.regulator_timeout_seconds) as client:
        dispatcher = ComplianceDispatcher(
            AsyncSessionLocal,
            ComplianceReporter(client),
            workers=settings.compliance_workers,
            maxsize=settings.compliance_queue_size,
        )
        dispatcher.start()
        app.state.compliance_dispatcher = dispatcher
        yield
        await dispatcher.stop()

    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Driver presence, trip logging and regulator reporting for taxi meters",
    lifespan=lifespan,
)

# Innermost first: unhandled errors become 500s that still pass through CORS
app.add_middleware(UnhandledErrorMiddleware)
# Public API: any origin, any method, any header
configure_cors(app, settings.cors_allowed_origins)
app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
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
        "appName": settings.app_name,
        "version": settings.api_version,
        "redis": await ping_redis(),
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")
