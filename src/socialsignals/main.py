"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from sqlalchemy.exc import SQLAlchemyError

from socialsignals.api.v1.router import api_router
from socialsignals.config import settings
from socialsignals.errors import ConfigurationError, NotFoundError, SocialSignalsError, ValidationError
from socialsignals.logging_config import configure_logging
from socialsignals.models.database import close_db, init_db, ping

configure_logging()

logger = structlog.get_logger(__name__)

_ERROR_STATUS = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConfigurationError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info("Starting SocialSignals API", version=settings.app_version, environment=settings.environment)
    await init_db()
    yield
    logger.info("Shutting down SocialSignals API")
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Engagement sync, profile identity resolution and enrichment for tracked LinkedIn posts",
        openapi_url=f"{settings.api_v1_prefix}/openapi.json" if settings.debug else None,
        docs_url=f"{settings.api_v1_prefix}/docs" if settings.debug else None,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    app.include_router(api_router, prefix=settings.api_v1_prefix)

    @app.get("/health", tags=["Health"])
    async def health_check() -> ORJSONResponse:
        """Liveness plus a database round trip."""
        database = "ok"
        try:
            await ping()
        except (SQLAlchemyError, OSError) as e:
            logger.warning("Health check database failure", error=str(e))
            database = "unavailable"

        healthy = database == "ok"
        return ORJSONResponse(
            status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "healthy" if healthy else "degraded",
                "database": database,
                "version": settings.app_version,
                "environment": settings.environment,
            },
        )

    @app.exception_handler(SocialSignalsError)
    async def domain_exception_handler(request: Request, exc: SocialSignalsError) -> ORJSONResponse:
        """Map domain errors that escape an endpoint onto HTTP statuses."""
        code = next(
            (code for cls, code in _ERROR_STATUS.items() if isinstance(exc, cls)),
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
        logger.warning("Domain error", path=request.url.path, kind=exc.kind, error=exc.message)
        return ORJSONResponse(status_code=code, content={"detail": exc.message, "kind": exc.kind})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
        """Handle uncaught exceptions."""
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "Internal server error",
                "error": str(exc) if settings.debug else "An unexpected error occurred",
            },
        )

    return app


app = create_app()


def run() -> None:
    """Run the application with uvicorn (for development)."""
    import uvicorn

    uvicorn.run(
        "socialsignals.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    run()
