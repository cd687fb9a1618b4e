"""
FastAPI Application Entry Point

This module creates and configures the FastAPI application: the webhook
route, the health check, the global preflight responder and the exception
handler.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse

from projectbot import __version__
from projectbot.config import get_settings
from projectbot.logging_config import get_logger, setup_logging
from projectbot.webhook import router as webhook_router

# Initialize logging first
setup_logging()

logger = get_logger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "X-Requested-With",
    "Access-Control-Allow-Methods": "POST, GET, PUT, DELETE, OPTIONS",
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log startup and shutdown, and warn about missing secrets."""
    settings = get_settings()
    logger.info(
        "Starting projectbot",
        host=settings.host,
        port=settings.port,
        repo=f"{settings.repo_owner}/{settings.repo_name}",
        project=settings.project_name
    )

    if not settings.github_token:
        logger.warning("GITHUB_TOKEN is not set, board API calls will be unauthenticated")

    yield

    logger.info("Shutting down projectbot")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title="projectbot",
        description="Moves pull request cards to review on the project board",
        version=__version__,
        lifespan=lifespan,
    )

    # Answer every preflight request before routing
    @app.middleware("http")
    async def preflight(request: Request, call_next):
        if request.method == "OPTIONS":
            return Response(status_code=status.HTTP_204_NO_CONTENT, headers=CORS_HEADERS)
        return await call_next(request)

    app.include_router(webhook_router)

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request,
        exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            error_type=type(exc).__name__
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "Internal server error",
                "type": type(exc).__name__
            }
        )

    @app.get("/")
    async def health_check() -> Response:
        """Health check for load balancers and monitors."""
        logger.info("healthcheck ok")
        return Response(status_code=status.HTTP_200_OK)

    return app


# Create the application instance
app = create_app()
