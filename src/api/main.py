"""
FastAPI application main module.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

import core.logging  # noqa: F401  Ensure logging is configured
from api.config.settings import settings
from api.controllers.health_controller import router as health_router
from api.controllers.period_controller import period_application_service
from api.controllers.period_controller import router as period_router
from api.middleware import (
    APITokenMiddleware,
    add_metrics_endpoint,
    add_observability_middleware,
)
from api.models.responses import ErrorResponse
from api.utils.error_utils import handle_domain_error
from core.exceptions import BasePdvException
from core.messaging.kafka_producer import get_kafka_producer


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    logger.info("Starting PDV Period Engine API...")
    logger.info("PDV Period Engine API started successfully")

    yield

    # Shutdown
    logger.info("Shutting down PDV Period Engine API...")
    get_kafka_producer().close()
    period_application_service.shutdown()
    logger.info("PDV Period Engine API shutdown complete")


def create_app() -> FastAPI:
    """Create FastAPI application."""
    app = FastAPI(
        title=settings.api_title,
        description=settings.api_description,
        version=settings.api_version,
        lifespan=lifespan,
        debug=settings.debug,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Add API token middleware first (before observability)
    app.add_middleware(APITokenMiddleware)
    logger.info("API token authentication middleware enabled")

    # Add observability middleware
    add_observability_middleware(app)
    add_metrics_endpoint(app)
    logger.info("Observability middleware and metrics endpoint enabled")

    # Add trusted host middleware in production
    if settings.is_production():
        app.add_middleware(
            TrustedHostMiddleware, allowed_hosts=settings.get_allowed_hosts()
        )
        logger.info(
            f"Production security middleware enabled: trusted hosts {settings.get_allowed_hosts()}"
        )

    # Register routers
    app.include_router(period_router)
    app.include_router(health_router)

    @app.exception_handler(BasePdvException)
    async def domain_exception_handler(request: Request, exc: BasePdvException):
        logger.warning(f"{request.method} {request.url.path} -> {exc}")
        return handle_domain_error(exc)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception in {request.url.path}: {exc}")
        error_response = ErrorResponse(
            error="InternalServerError", message="An unexpected error occurred"
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_response.model_dump(mode="json"),
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level="info",
    )
