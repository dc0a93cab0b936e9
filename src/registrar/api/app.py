"""FastAPI application setup."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from registrar import __version__
from registrar.api.dependencies import (
    close_record_store,
    init_record_store,
    set_settings,
)
from registrar.api.models import ErrorResponse, field_errors
from registrar.api.routes import classes, courses, departments, maintenance, students
from registrar.config import Settings
from registrar.logging import get_logger, sanitize_for_log
from registrar.records import (
    CapacityExceededError,
    PrerequisiteUnmetError,
    RecordConflictError,
    RecordInUseError,
    RecordNotFoundError,
    RecordsError,
    RecordValidationError,
)

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = get_logger("api")


def _error(
    status_code: int,
    error: str,
    errors: dict[str, list[str]] | None = None,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    body = ErrorResponse(error=error, errors=errors, details=details)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = app.state.settings

    # Startup
    init_record_store(settings.db_path, write_retries=settings.write_retries)
    set_settings(settings)
    logger.info("Record store ready at %s", settings.db_path)

    yield
    # Shutdown
    close_record_store()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or Settings.from_env()
    app = FastAPI(
        title="Registrar API",
        description="REST API for academic records - departments, classes, courses and students",
        version=__version__,
        lifespan=lifespan,
    )

    # Store config for lifespan manager
    app.state.settings = settings

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return _error(
            status.HTTP_400_BAD_REQUEST, "Validation Error", errors=field_errors(exc.errors())
        )

    @app.exception_handler(RecordValidationError)
    async def validation_error_handler(
        _request: Request, exc: RecordValidationError
    ) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, str(exc), errors=exc.errors)

    @app.exception_handler(RecordNotFoundError)
    async def not_found_handler(_request: Request, exc: RecordNotFoundError) -> JSONResponse:
        return _error(
            status.HTTP_404_NOT_FOUND,
            f"{exc.entity} not found",
            details={"id": exc.entity_id},
        )

    @app.exception_handler(RecordInUseError)
    async def in_use_handler(_request: Request, exc: RecordInUseError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, str(exc), details=exc.blocking)

    @app.exception_handler(RecordConflictError)
    async def conflict_handler(_request: Request, exc: RecordConflictError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))

    @app.exception_handler(CapacityExceededError)
    async def capacity_handler(_request: Request, exc: CapacityExceededError) -> JSONResponse:
        return _error(
            status.HTTP_400_BAD_REQUEST,
            str(exc),
            details={
                "entity": exc.entity,
                "id": exc.entity_id,
                "current": exc.current,
                "maximum": exc.maximum,
            },
        )

    @app.exception_handler(PrerequisiteUnmetError)
    async def prerequisite_handler(
        _request: Request, exc: PrerequisiteUnmetError
    ) -> JSONResponse:
        return _error(
            status.HTTP_400_BAD_REQUEST,
            str(exc),
            details={"course": exc.course_code, "missing": exc.missing},
        )

    @app.exception_handler(RecordsError)
    async def records_error_handler(_request: Request, exc: RecordsError) -> JSONResponse:
        logger.error("Unhandled records error: %s", sanitize_for_log(str(exc)))
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

    # Service routes
    @app.get("/health", tags=["service"])
    def health() -> dict[str, Any]:
        return {
            "success": True,
            "status": "OK",
            "timestamp": datetime.now(UTC).isoformat(),
        }

    @app.get("/", tags=["service"])
    def root() -> dict[str, Any]:
        return {
            "success": True,
            "message": "Registrar API",
            "version": __version__,
            "endpoints": {
                "departments": "/api/departments",
                "classes": "/api/classes",
                "courses": "/api/courses",
                "students": "/api/students",
                "maintenance": "/api/maintenance",
            },
        }

    # Include routers
    app.include_router(departments.router, prefix="/api")
    app.include_router(classes.router, prefix="/api")
    app.include_router(courses.router, prefix="/api")
    app.include_router(students.router, prefix="/api")
    app.include_router(maintenance.router, prefix="/api")

    return app
