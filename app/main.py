"""FastAPI application entry point.

Main application setup with middleware, routing, and lifecycle management.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.connections import router as connections_router
from app.api.schemas import ErrorResponse
from app.core.config import Settings, get_settings
from app.core.exceptions import DefinitionValidationError, PreviewSupersededError
from app.core.factory import get_factory
from app.core.logging_config import setup_logging
from app.db.session import close_db, init_db

# Initialize logging before importing other modules
setup_logging()
logger = logging.getLogger(__name__)

SERVICE_NAME = "feed-format-api"
VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Creates tables on startup when configured, and releases the database
    engine and the HTTP client on shutdown.
    """
    settings: Settings = app.state.settings

    logger.info("Starting feed formatting API...")

    if settings.init_db_on_startup:
        try:
            logger.info("Initializing database...")
            await init_db(settings)
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}", exc_info=True)
            raise

    yield

    logger.info("Shutting down feed formatting API...")

    try:
        await get_factory().aclose()
        await close_db()
        logger.info("Resources released")
    except Exception as e:
        logger.error(f"Error releasing resources: {e}", exc_info=True)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings. If None, loads from environment.

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Feed Formatting Engine",
        description="Custom placeholders and external properties for feed delivery",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(connections_router)
    logger.info("Registered connections router")

    @app.get("/health", tags=["health"])
    async def health_check():
        """Health check endpoint for load balancers and monitoring."""
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": VERSION,
        }

    # Exception handlers
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request body validation errors."""
        logger.warning(f"Validation error: {exc.errors()}")
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=ErrorResponse(
                detail="Validation error",
                error_code="REQUEST_VALIDATION_ERROR",
                extra={"errors": jsonable_errors(exc)},
            ).model_dump(),
        )

    @app.exception_handler(DefinitionValidationError)
    async def definition_error_handler(request: Request, exc: DefinitionValidationError):
        """Reject definition saves that failed validation."""
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=ErrorResponse(
                detail=str(exc),
                error_code="INVALID_DEFINITIONS",
                extra={"issues": [issue.model_dump(by_alias=True) for issue in exc.issues]},
            ).model_dump(),
        )

    @app.exception_handler(PreviewSupersededError)
    async def superseded_handler(request: Request, exc: PreviewSupersededError):
        logger.debug(str(exc))
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=ErrorResponse(
                detail=str(exc),
                error_code="PREVIEW_SUPERSEDED",
                extra={"requestId": exc.request_id, "latestRequestId": exc.latest_request_id},
            ).model_dump(),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle uncaught exceptions."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(
                detail="Internal server error",
                error_code="INTERNAL_ERROR",
            ).model_dump(),
        )

    logger.info("FastAPI application created")
    return app


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Request errors with non-serializable context stripped."""
    return [{k: v for k, v in error.items() if k != "ctx"} for error in exc.errors()]


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    logger.info("Starting uvicorn server on port 8000...")
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
