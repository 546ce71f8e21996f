"""LearnHub API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import timedelta
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from learnhub.config import get_settings
from learnhub.core.context import get_request_id
from learnhub.core.database import init_async_cassandra, shutdown_async_cassandra
from learnhub.core.errors import DomainError
from learnhub.core.logging import configure_structlog, get_logger
from learnhub.core.middleware import RequestContextMiddleware
from learnhub.courses.repository import (
    CassandraCourseRepository,
    CourseRepository,
    InMemoryCourseRepository,
)
from learnhub.courses.service import CourseCatalog
from learnhub.enrollments.repository import (
    CassandraEnrollmentRepository,
    EnrollmentRepository,
    InMemoryEnrollmentRepository,
)
from learnhub.enrollments.router import router as enrollments_router
from learnhub.enrollments.service import EnrollmentLedger
from learnhub.health.router import router as health_router
from learnhub.progress.repository import (
    CassandraProgressRepository,
    InMemoryProgressRepository,
    ProgressRepository,
)
from learnhub.progress.router import router as progress_router
from learnhub.progress.service import ProgressTracker
from learnhub.purchases.repository import (
    CassandraPurchaseRepository,
    InMemoryPurchaseRepository,
    PurchaseRepository,
)
from learnhub.purchases.router import router as purchases_router
from learnhub.purchases.service import PurchaseCoordinator


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


# Domain error code -> HTTP status
DOMAIN_ERROR_STATUS = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "conflict": status.HTTP_409_CONFLICT,
    "invalid_state": status.HTTP_409_CONFLICT,
    "validation_error": status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def wire_services(
    app: FastAPI,
    courses: CourseRepository,
    enrollments: EnrollmentRepository,
    progress: ProgressRepository,
    purchases: PurchaseRepository,
) -> None:
    """Build the services over the given repositories and publish them.

    Route dependencies read the services from ``request.app.state``.
    """
    settings = get_settings()

    catalog = CourseCatalog(courses)
    ledger = EnrollmentLedger(enrollments, catalog)
    tracker = ProgressTracker(progress, catalog)
    coordinator = PurchaseCoordinator(
        purchases,
        catalog,
        ledger,
        default_payment_method=settings.payment_default_method,
        currency=settings.payment_currency,
        claim_timeout=timedelta(seconds=settings.payment_claim_timeout_seconds),
    )

    app.state.course_repository = courses
    app.state.course_catalog = catalog
    app.state.enrollment_ledger = ledger
    app.state.progress_tracker = tracker
    app.state.purchase_coordinator = coordinator


def error_response(
    request: Request,
    status_code: int,
    message: str,
    code: str | None = None,
    **extra: Any,
) -> ORJSONResponse:
    """Build the JSON error envelope shared by every handler."""
    content: dict[str, Any] = {
        "error": True,
        "message": message,
        "status_code": status_code,
        "request_id": getattr(request.state, "request_id", None) or get_request_id(),
    }
    if code is not None:
        content["code"] = code
    headers = extra.pop("headers", None)
    content.update(extra)
    return ORJSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain, HTTP, validation and unexpected errors to the envelope."""

    @app.exception_handler(DomainError)
    async def domain_exception_handler(request: Request, exc: DomainError) -> ORJSONResponse:
        status_code = DOMAIN_ERROR_STATUS.get(exc.code, status.HTTP_400_BAD_REQUEST)
        logger.info(
            "domain_error",
            code=exc.code,
            error_message=exc.message,
            status_code=status_code,
            path=request.url.path,
        )
        return error_response(request, status_code, exc.message, exc.code)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
        )
        # Never echo server-side details
        message = (
            str(exc.detail)
            if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
            else "Internal server error"
        )
        return error_response(
            request, exc.status_code, message, headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        errors = exc.errors()
        logger.warning("validation_error", errors=errors, path=request.url.path)
        return error_response(
            request,
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "Validation error",
            "validation_error",
            details=[
                {
                    "field": ".".join(str(loc) for loc in err.get("loc", [])),
                    "message": err.get("msg", "Invalid value"),
                }
                for err in errors
            ],
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            path=request.url.path,
            method=request.method,
        )
        return error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An unexpected error occurred. Please try again later.",
        )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    if settings.is_testing:
        wire_services(
            app,
            courses=InMemoryCourseRepository(),
            enrollments=InMemoryEnrollmentRepository(),
            progress=InMemoryProgressRepository(),
            purchases=InMemoryPurchaseRepository(),
        )
        logger.info("in_memory_services_initialized")
    else:
        # Initialize Cassandra (async)
        try:
            session = await init_async_cassandra()
            logger.info("cassandra_initialized")

            keyspace = settings.cassandra_keyspace
            wire_services(
                app,
                courses=CassandraCourseRepository(session, keyspace),
                enrollments=CassandraEnrollmentRepository(session, keyspace),
                progress=CassandraProgressRepository(session, keyspace),
                purchases=CassandraPurchaseRepository(session, keyspace),
            )
            logger.info("services_initialized")
        except Exception as e:
            logger.warning(
                "database_init_skipped",
                error=str(e),
                message="Running without database connection",
            )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    if not settings.is_testing:
        await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Course enrollment, progress and purchase API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
        slow_request_ms=settings.log_slow_request_ms,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    register_exception_handlers(app)

    # Include routers
    app.include_router(health_router)
    app.include_router(progress_router)
    app.include_router(enrollments_router)
    app.include_router(purchases_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "LearnHub API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()


