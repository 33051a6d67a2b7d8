"""
Location Ingestion API.

Application factory and entry point. The store is opened in the lifespan
handler and shared by every request through ``app.state``.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from config.settings import Settings, get_settings, validate_startup
from errors.handlers import register_exception_handlers
from health.service import HealthCheckService
from locations.routes import router as locations_router
from locations.service import LocationService
from middleware.access_log import AccessLogMiddleware
from middleware.request_id import RequestIDMiddleware
from storage.base import LocationStore
from storage.sql_store import SQLLocationStore
from telemetry.service import initialize_telemetry

logger = logging.getLogger(__name__)

SERVICE_NAME = "Location Ingestion API"
SERVICE_VERSION = "1.0.0"


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[LocationStore] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings to use; loaded from the environment if omitted
        store: Store to use; when omitted a SQLLocationStore is opened on
            ``settings.database_url`` at startup and closed at shutdown

    Returns:
        The configured application
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        telemetry = initialize_telemetry(settings)

        owns_store = store is None
        location_store = store or await SQLLocationStore.connect(settings.database_url)

        app.state.location_service = LocationService(location_store, telemetry=telemetry)
        app.state.health_check_service = HealthCheckService(
            store=location_store,
            check_timeout=settings.store_check_timeout
        )
        logger.info(
            f"Starting {SERVICE_NAME}",
            extra={"extra_data": {
                "environment": settings.environment.value,
                "host": settings.host,
                "port": settings.port,
            }}
        )

        try:
            yield
        finally:
            if owns_store:
                await location_store.close()
            logger.info(f"Shutting down {SERVICE_NAME}")

    app = FastAPI(title=SERVICE_NAME, version=SERVICE_VERSION, lifespan=lifespan)

    register_exception_handlers(app)

    # Added last so it wraps the access log and the ID is in context there
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    async def health_basic():
        """Return 200 while the service is accepting requests."""
        result = await app.state.health_check_service.check_health()
        return {
            "status": result["status"],
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "timestamp": result["timestamp"]
        }

    @app.get("/health/ready")
    async def health_ready():
        """Return 200 if the location store answers, 503 otherwise."""
        health_status = await app.state.health_check_service.check_readiness()
        response_data = {
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            **health_status.to_dict(),
        }
        status_code = 200 if health_status.status == "healthy" else 503
        return JSONResponse(status_code=status_code, content=response_data)

    @app.get("/health/live")
    async def health_live():
        """Return 200 while the process is running, regardless of the store."""
        result = await app.state.health_check_service.check_liveness()
        return {
            "status": result["status"],
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "timestamp": result["timestamp"]
        }

    app.include_router(locations_router)

    return app


def main() -> None:
    """
    Validate configuration and serve the API.

    Raises:
        ConfigurationError: If DATABASE_URL or PORT is missing or invalid
    """
    settings = get_settings()
    validate_startup(settings)
    uvicorn.run(
        "main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
