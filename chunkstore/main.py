"""Main FastAPI application."""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from chunkstore.api import files, uploads
from chunkstore.config import settings
from chunkstore.core.exceptions import ChunkStoreException, ErrorCategory
from chunkstore.core.service_protocols import ObjectStore
from chunkstore.services.upload_service import UploadService, build_object_store
from chunkstore.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@asynccontextmanager
async def lifespan(app: FastAPI) -> Any:
    """Application lifecycle management

    Builds the configured object store on startup unless one was injected
    when the application was created.
    """
    logger.info("Starting %s...", settings.app_name)

    if getattr(app.state, "upload_service", None) is None:
        store = build_object_store()
        ensure_bucket = getattr(store, "ensure_bucket_exists", None)
        if ensure_bucket is not None:
            await ensure_bucket()
        app.state.upload_service = UploadService(store)
        logger.info("Object store ready: %s", type(store).__name__)

    yield

    logger.info("Shutting down %s...", settings.app_name)


def create_application(object_store: Optional[ObjectStore] = None) -> FastAPI:
    """Create and configure FastAPI application instance

    Args:
        object_store: Store to serve from. When omitted the store selected by
            ``storage_backend`` is built at startup.
    """
    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Chunked object upload API: resumable uploads reassembled into single objects",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    application.state.upload_service = UploadService(object_store) if object_store is not None else None

    # Configure specific origins in production
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(application)
    _register_routes(application)

    logger.info(
        "Application '%s' v%s created successfully",
        settings.app_name, settings.app_version
    )
    return application


def _register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers for consistent error responses"""

    @app.exception_handler(ChunkStoreException)
    async def chunkstore_exception_handler(request: Request, exc: ChunkStoreException) -> JSONResponse:
        """Handle application exceptions"""
        status_code = _map_error_category_to_status_code(exc.category)
        log = logger.error if status_code >= 500 else logger.warning
        log(
            "Request failed: %s",
            exc.message,
            extra={
                "error_code": exc.error_code,
                "category": exc.category.value,
                "severity": exc.severity.value,
                "details": exc.details,
                "request_path": request.url.path,
                "request_method": request.method
            }
        )

        return JSONResponse(
            status_code=status_code,
            content={
                "error": {
                    "code": exc.error_code,
                    "message": exc.message,
                    "category": exc.category.value,
                    "severity": exc.severity.value,
                    "details": exc.details,
                    "timestamp": _timestamp(),
                    "path": str(request.url.path)
                }
            }
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        """Handle FastAPI HTTP exceptions"""
        logger.warning("HTTP exception: %s - %s", exc.status_code, exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "code": f"HTTP_{exc.status_code}",
                    "message": exc.detail,
                    "timestamp": _timestamp(),
                    "path": str(request.url.path)
                }
            }
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Handle malformed request bodies and parameters"""
        logger.warning("Request validation error on %s: %s", request.url.path, exc.errors())
        return JSONResponse(
            status_code=422,
            content={
                "error": {
                    "code": "VALIDATION_ERROR",
                    "message": "Request validation failed",
                    "category": ErrorCategory.VALIDATION.value,
                    "details": _jsonable_errors(exc.errors()),
                    "timestamp": _timestamp(),
                    "path": str(request.url.path)
                }
            }
        )

    @app.exception_handler(ValidationError)
    async def validation_exception_handler(request: Request, exc: ValidationError) -> JSONResponse:
        """Handle Pydantic model validation exceptions"""
        logger.warning("Validation error: %s", exc)
        return JSONResponse(
            status_code=422,
            content={
                "error": {
                    "code": "VALIDATION_ERROR",
                    "message": "Request validation failed",
                    "category": ErrorCategory.VALIDATION.value,
                    "details": _jsonable_errors(exc.errors()),
                    "timestamp": _timestamp(),
                    "path": str(request.url.path)
                }
            }
        )

    @app.exception_handler(StarletteHTTPException)
    async def starlette_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Handle Starlette base HTTP exceptions (unknown routes, bad methods)"""
        logger.warning("Starlette HTTP exception: %s - %s", exc.status_code, exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "code": f"HTTP_{exc.status_code}",
                    "message": exc.detail,
                    "timestamp": _timestamp(),
                    "path": str(request.url.path)
                }
            }
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler for uncaught exceptions"""
        logger.error(
            "Unhandled exception: %s: %s",
            type(exc).__name__, exc,
            exc_info=True,
            extra={
                "request_path": request.url.path,
                "request_method": request.method,
                "exception_type": type(exc).__name__
            }
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": "INTERNAL_SERVER_ERROR",
                    "message": "Internal server error",
                    "timestamp": _timestamp(),
                    "path": str(request.url.path),
                    "type": type(exc).__name__
                }
            }
        )


def _jsonable_errors(errors) -> list:
    # pydantic error dicts may carry the raw exception under "ctx"
    return jsonable_encoder([
        {key: value for key, value in error.items() if key in ("type", "loc", "msg", "input")}
        for error in errors
    ])


def _register_routes(app: FastAPI) -> None:
    """Register API routes with the FastAPI application"""
    app.include_router(
        uploads.router,
        prefix="/api/v1",
        tags=["uploads"]
    )
    app.include_router(
        files.router,
        prefix="/api/v1",
        tags=["files"]
    )

    @app.get("/health", tags=["health"])
    async def health() -> Dict[str, str]:
        return {
            "status": "ok",
            "app": settings.app_name,
            "version": settings.app_version,
            "storage_backend": settings.storage_backend.value
        }


def _map_error_category_to_status_code(category: ErrorCategory) -> int:
    """Map error categories to HTTP status codes

    Args:
        category: ErrorCategory enum value

    Returns:
        Corresponding HTTP status code
    """
    status_code_mapping: Dict[ErrorCategory, int] = {
        ErrorCategory.VALIDATION: 400,   # Bad Request
        ErrorCategory.NOT_FOUND: 404,    # Not Found
        ErrorCategory.CONFLICT: 409,     # Conflict
        ErrorCategory.STORAGE: 502,      # Bad Gateway
        ErrorCategory.SYSTEM: 500        # Internal Server Error
    }
    return status_code_mapping.get(category, 500)


app: FastAPI = create_application()

if __name__ == "__main__":
    import uvicorn

    logger.info("Starting %s v%s", settings.app_name, settings.app_version)
    logger.info("Environment: %s", settings.environment.value)
    logger.info("Debug mode: %s", settings.debug)

    uvicorn.run(
        "chunkstore.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.value.lower(),
        access_log=True
    )
