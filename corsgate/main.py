"""
CORS Gate - Main Application
============================
FastAPI application entry point
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from .api.middleware.cors import setup_cors_middleware
from .core.config import settings
from .core.logging import logger
from .cors.service import CorsService


# =============================================================================
# Application Lifespan
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Log startup and shutdown."""
    logger.info(
        "Starting CORS Gate",
        version=settings.app_version,
        dev_mode=settings.dev_mode,
    )

    yield

    logger.info("Shutting down CORS Gate")


# =============================================================================
# Application Factory
# =============================================================================


def create_application(cors_service: Optional[CorsService] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        cors_service: Policy engine to mount; built from settings when omitted

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="CORS Gate",
        description="Cross-origin policy gateway",
        version=settings.app_version,
        docs_url="/docs" if settings.dev_mode else None,
        redoc_url=None,
        openapi_url="/openapi.json" if settings.dev_mode else None,
        lifespan=lifespan,
    )

    setup_cors_middleware(app, cors_service)
    register_exception_handlers(app)
    register_routes(app)

    return app


# =============================================================================
# Exception Handlers
# =============================================================================


def register_exception_handlers(app: FastAPI) -> None:
    """Register custom exception handlers."""

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception(
            "Unhandled exception",
            path=request.url.path,
            error=str(exc),
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )


# =============================================================================
# Route Registration
# =============================================================================


def register_routes(app: FastAPI) -> None:
    """Register API routes."""

    @app.get("/health", tags=["Health"])
    async def health_check():
        return {"status": "healthy", "version": settings.app_version}

    @app.get("/", tags=["Root"])
    async def root(request: Request):
        """Root endpoint with API information and the active CORS policy."""
        config = request.app.state.cors.config
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "cors": {
                "allowed_origins": list(config.allowed_origins),
                "allow_all_origins": config.allow_all_origins,
                "supports_credentials": config.supports_credentials,
                "max_age": config.max_age,
            },
        }

    logger.info("Routes registered")


# =============================================================================
# Application Instance
# =============================================================================

app = create_application()


# =============================================================================
# Development Server
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "corsgate.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.dev_mode,
        log_level=settings.log_level.lower(),
    )
