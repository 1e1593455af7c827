"""FastAPI application entrypoint for File Uploader."""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from file_uploader import __version__
from file_uploader.api import files_router
from file_uploader.config import Settings, StackConfig, load_config
from file_uploader.core.files.cache import create_record_cache
from file_uploader.core.files.exceptions import (
    DeletionFailureError,
    FileStoreError,
    InvalidInputError,
    RecordNotFoundError,
    StorageFailureError,
)
from file_uploader.core.files.service import FileStore
from file_uploader.observability.logging import (
    RequestIDMiddleware,
    configure_logging,
    get_logger,
)
from file_uploader.observability.metrics import (
    MetricsMiddleware,
    metrics_endpoint,
    setup_metrics,
)
from file_uploader.storage.database import init_database

logger = get_logger(__name__)

ERROR_STATUS_CODES: dict[type[FileStoreError], int] = {
    InvalidInputError: 400,
    RecordNotFoundError: 404,
    StorageFailureError: 500,
    DeletionFailureError: 500,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Handles startup and shutdown of:
    - Database connections
    - Record cache
    - The FileStore service
    """
    config: StackConfig = app.state.config
    logger.info("Starting File Uploader...")

    db_manager = await init_database(config)
    app.state.db_manager = db_manager

    cache = create_record_cache(config.cache_backends["default"])
    await cache.initialize()
    app.state.record_cache = cache

    app.state.file_store = FileStore(
        db_manager=db_manager,
        cache=cache,
        max_upload_size=config.uploads.max_upload_size_bytes,
    )

    logger.info("File Uploader started successfully")

    yield

    logger.info("Shutting down File Uploader...")
    await cache.close()
    await db_manager.close()
    logger.info("Shutdown complete")


def add_exception_handlers(app: FastAPI) -> None:
    """Map file store errors onto HTTP responses."""

    @app.exception_handler(FileStoreError)
    async def file_store_error_handler(
        request: Request, exc: FileStoreError
    ) -> JSONResponse:
        status_code = ERROR_STATUS_CODES.get(type(exc), 500)
        if status_code >= 500:
            logger.error(
                "File operation failed",
                error_type=type(exc).__name__,
                message=str(exc),
                path=request.url.path,
                method=request.method,
                cause=repr(exc.__cause__),
            )
        return JSONResponse(
            status_code=status_code,
            content={"error": type(exc).__name__, "message": str(exc)},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Report malformed requests, such as an upload without a filename."""
        errors = exc.errors()
        if any(tuple(error.get("loc", ()))[-1:] == ("file",) for error in errors):
            message = "an uploaded file with a filename is required"
        else:
            message = "; ".join(str(error.get("msg")) for error in errors)
        return JSONResponse(
            status_code=ERROR_STATUS_CODES[InvalidInputError],
            content={"error": InvalidInputError.__name__, "message": message},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Global exception handler for unhandled errors."""
        logger.error(
            "Unhandled exception",
            exception_type=type(exc).__name__,
            exception_message=str(exc),
            path=request.url.path,
            method=request.method,
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "InternalServerError",
                "message": "An unexpected error occurred",
            },
        )


def add_routes(app: FastAPI, config: StackConfig) -> None:
    """Add all application routes."""
    app.include_router(files_router)

    @app.get("/health")
    async def health_check(request: Request) -> dict[str, Any]:
        """Health check endpoint."""
        health_status: dict[str, Any] = {
            "status": "healthy",
            "version": __version__,
            "components": {},
        }

        db_manager = getattr(request.app.state, "db_manager", None)
        if db_manager is not None:
            db_healthy = await db_manager.health_check()
            health_status["components"]["database"] = {
                "status": "healthy" if db_healthy else "unhealthy",
            }

        cache = getattr(request.app.state, "record_cache", None)
        if cache is not None:
            health_status["components"]["cache"] = {
                "status": "healthy",
                "stats": await cache.stats(),
            }

        if any(
            component["status"] == "unhealthy"
            for component in health_status["components"].values()
        ):
            health_status["status"] = "degraded"

        return health_status

    if config.enable_metrics:
        app.get("/metrics", include_in_schema=False)(metrics_endpoint)

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "name": "File Uploader",
            "version": __version__,
            "description": "Upload, fetch, list, update and delete files",
            "endpoints": {
                "files": "/api/v1/files",
                "health": "/health",
                "docs": "/docs",
            },
        }


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or Settings()
    config = load_config(settings)

    configure_logging(
        level=config.logging.level,
        json_logs=config.logging.json_logs,
        enable_access_logs=config.logging.enable_access_logs,
    )

    app = FastAPI(
        title="File Uploader",
        description="Minimal file storage service backed by a relational database",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config

    # Last added runs first
    if config.enable_metrics:
        setup_metrics("file-uploader", __version__)
        app.add_middleware(MetricsMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)

    add_routes(app, config)
    add_exception_handlers(app)

    return app


def main():
    """Run the server."""
    import uvicorn

    settings = Settings()
    uvicorn.run(
        "file_uploader.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
