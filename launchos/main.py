"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from launchos import __version__
from launchos.api.functions import CORS_HEADERS
from launchos.api.functions import router as functions_router
from launchos.api.middleware import RequestLoggingMiddleware
from launchos.api.v1.router import router as v1_router
from launchos.config import settings
from launchos.core.exceptions import LaunchOSError
from launchos.core.tasks import get_task_supervisor
from launchos.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    configure_logging()
    logger.info(
        "application.starting",
        version=__version__,
        environment=settings.app_env,
    )

    yield

    # Shutdown: let in-flight deployments finish
    tasks = get_task_supervisor()
    logger.info("application.draining", active_tasks=tasks.active)
    cancelled = await tasks.drain(timeout=settings.task_shutdown_grace_seconds)
    logger.info("application.shutdown", cancelled_tasks=cancelled)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="LaunchOS API",
        description="Hosting dashboard backend: projects, deployments, diagnostics and product analysis",
        version=__version__,
        docs_url="/docs" if settings.app_debug else None,
        redoc_url="/redoc" if settings.app_debug else None,
        lifespan=lifespan,
    )

    # Add middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=[h.strip() for h in CORS_HEADERS["Access-Control-Allow-Headers"].split(",")],
    )
    app.add_middleware(RequestLoggingMiddleware)

    # Register exception handlers
    @app.exception_handler(LaunchOSError)
    async def launchos_error_handler(
        request: Request, exc: LaunchOSError
    ) -> JSONResponse:
        """Render application errors as ``{"error": message}``."""
        if exc.status_code >= 500:
            logger.error(
                "request.failed",
                path=request.url.path,
                error=exc.message,
                error_type=type(exc).__name__,
                details=exc.details,
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message},
            headers=CORS_HEADERS,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected errors."""
        logger.error(
            "unhandled_exception",
            error=str(exc),
            path=request.url.path,
            exc_info=True,
        )

        message = str(exc) if settings.is_development else "An unexpected error occurred"
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": message or type(exc).__name__},
            headers=CORS_HEADERS,
        )

    # Include routers
    app.include_router(v1_router)
    app.include_router(functions_router, prefix="/functions/v1", tags=["functions"])

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "launchos.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
    )
