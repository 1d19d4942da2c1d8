"""CourseHub API - Main Application."""

import traceback
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from coursehub.activity.repository import ActivityRepository
from coursehub.activity.router import router as activity_router
from coursehub.activity.service import ActivityService
from coursehub.auth.repository import OtpRepository, UserRepository
from coursehub.auth.router import admin_router as admin_users_router
from coursehub.auth.router import router as auth_router
from coursehub.auth.router import users_router
from coursehub.auth.service import AuthService
from coursehub.config import get_settings
from coursehub.core.context import get_request_id
from coursehub.core.database import init_async_cassandra, shutdown_async_cassandra
from coursehub.core.errors import ApiError
from coursehub.core.logging import configure_structlog, get_logger
from coursehub.core.middleware import RequestContextMiddleware
from coursehub.core.redis import init_redis, shutdown_redis
from coursehub.courses.repository import (
    CourseRepository,
    LessonRepository,
    ModuleRepository,
)
from coursehub.courses.router import router as courses_router
from coursehub.courses.service import CourseService, LessonService, ModuleService
from coursehub.dashboard.router import router as dashboard_router
from coursehub.dashboard.service import DashboardService
from coursehub.email.service import EmailService
from coursehub.enrollments.repository import EnrollmentRepository
from coursehub.enrollments.router import router as enrollments_router
from coursehub.enrollments.service import EnrollmentService
from coursehub.health.router import router as health_router
from coursehub.instructors.repository import ApplicationRepository
from coursehub.instructors.router import router as instructors_router
from coursehub.instructors.service import InstructorService
from coursehub.payments.repository import PaymentRepository
from coursehub.payments.router import router as payments_router
from coursehub.payments.service import PaymentService
from coursehub.reviews.repository import ReviewRepository
from coursehub.reviews.router import router as reviews_router
from coursehub.reviews.service import ReviewService


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


# Application state for dependency injection
class AppState:
    """Application state container."""

    cassandra_session: Any = None
    email_service: EmailService | None = None
    activity_service: ActivityService | None = None
    auth_service: AuthService | None = None
    instructor_service: InstructorService | None = None
    course_service: CourseService | None = None
    module_service: ModuleService | None = None
    lesson_service: LessonService | None = None
    enrollment_service: EnrollmentService | None = None
    payment_service: PaymentService | None = None
    review_service: ReviewService | None = None
    dashboard_service: DashboardService | None = None


app_state = AppState()


def _service_getter(name: str):
    """Build a getter that fails loudly until the lifespan wired the service."""

    def getter():
        service = getattr(app_state, name)
        if service is None:
            msg = f"{name} not initialized"
            raise RuntimeError(msg)
        return service

    getter.__name__ = f"get_{name}"
    return getter


def build_services(session: Any, keyspace: str, redis_client: Any = None) -> None:
    """Create repositories and services over a live Cassandra session."""
    users = UserRepository(session, keyspace)
    otps = OtpRepository(session, keyspace)
    applications = ApplicationRepository(session, keyspace)
    courses = CourseRepository(session, keyspace)
    modules = ModuleRepository(session, keyspace)
    lessons = LessonRepository(session, keyspace)
    enrollments = EnrollmentRepository(session, keyspace)
    payments = PaymentRepository(session, keyspace)
    reviews = ReviewRepository(session, keyspace)

    activity = ActivityService(ActivityRepository(session, keyspace))
    email = app_state.email_service

    app_state.activity_service = activity
    app_state.auth_service = AuthService(
        users=users,
        otps=otps,
        applications=applications,
        activity=activity,
        settings=settings,
        email_service=email,
        redis=redis_client,
    )
    app_state.instructor_service = InstructorService(
        applications=applications,
        users=users,
        activity=activity,
        email_service=email,
    )
    app_state.course_service = CourseService(
        courses=courses,
        modules=modules,
        lessons=lessons,
        activity=activity,
        reviews=reviews,
    )
    app_state.module_service = ModuleService(app_state.course_service, modules, lessons)
    app_state.lesson_service = LessonService(
        app_state.course_service, app_state.module_service, lessons
    )
    app_state.enrollment_service = EnrollmentService(
        enrollments=enrollments,
        courses=courses,
        modules=modules,
        lessons=lessons,
        activity=activity,
    )
    app_state.payment_service = PaymentService(
        payments=payments,
        courses=courses,
        users=users,
        enrollment_service=app_state.enrollment_service,
        activity=activity,
        settings=settings,
        email_service=email,
    )
    app_state.review_service = ReviewService(
        reviews=reviews,
        enrollments=enrollments,
        courses=courses,
        activity=activity,
        redis=redis_client,
        settings=settings,
    )
    app_state.dashboard_service = DashboardService(
        users=users,
        courses=courses,
        enrollments=enrollments,
        payments=payments,
        reviews=reviews,
        applications=applications,
        activity=activity,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Initialize Redis (non-critical - app works without it)
    redis_client = None
    try:
        redis_client = await init_redis()
        logger.info("redis_initialized")
    except Exception as e:
        logger.warning(
            "redis_init_skipped",
            error=str(e),
            message="Running without Redis - OTP cooldowns and stats cache disabled",
        )

    # Email is independent of the database
    if settings.email_configured:
        app_state.email_service = EmailService(
            credentials_path=settings.email_credentials_path,
            sender_address=settings.email_sender_address,
            sender_name=settings.email_sender_name,
        )
        logger.info("email_service_initialized", sender=settings.email_sender_address)
    else:
        logger.info("email_service_disabled")

    try:
        app_state.cassandra_session = await init_async_cassandra()
        build_services(app_state.cassandra_session, settings.cassandra_keyspace, redis_client)
        logger.info("services_initialized")

        await app_state.auth_service.ensure_admin()
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await shutdown_redis()
    await shutdown_async_cassandra()


def _error_body(
    request: Request, status_code: int, message: str, exc: BaseException | None = None
) -> dict[str, Any]:
    """Standard error envelope; ``stack`` is only exposed outside production."""
    body: dict[str, Any] = {
        "error": message,
        "statusCode": status_code,
        "timestamp": datetime.now(UTC).isoformat(),
        "request_id": getattr(request.state, "request_id", None) or get_request_id(),
    }
    if exc is not None and not settings.is_production:
        body["stack"] = "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        )
    return body


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    # debug stays False so Starlette never renders its own tracebacks;
    # the handlers below decide what reaches the caller.
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Course marketplace API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
        openapi_url=None if settings.is_production else "/openapi.json",
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError) -> ORJSONResponse:
        """Operational errors carry their own status and safe message."""
        logger.info(
            "api_error",
            status_code=exc.status_code,
            code=exc.code,
            error=exc.message,
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.status_code, exc.message, exc),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )
        message = (
            str(exc.detail)
            if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
            else "Internal server error"
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.status_code, message),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Schema violations are reported as 400 with per-field details."""
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )
        body = _error_body(request, status.HTTP_400_BAD_REQUEST, "Validation error")
        body["details"] = [
            {
                "field": ".".join(str(loc) for loc in err.get("loc", [])),
                "message": err.get("msg", "Invalid value"),
            }
            for err in exc.errors()
        ]
        return ORJSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler; internals are logged, never returned."""
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(
                request,
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "An unexpected error occurred. Please try again later.",
                exc,
            ),
        )

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(admin_users_router)
    app.include_router(instructors_router)
    app.include_router(courses_router)
    app.include_router(enrollments_router)
    app.include_router(payments_router)
    app.include_router(reviews_router)
    app.include_router(activity_router)
    app.include_router(dashboard_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        return {
            "message": "CourseHub API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


# Configure router dependencies before creating app
from coursehub.activity.dependencies import set_activity_service_getter  # noqa: E402
from coursehub.auth.router import set_auth_service_getter  # noqa: E402
from coursehub.courses.dependencies import (  # noqa: E402
    set_course_service_getter,
    set_lesson_service_getter,
    set_module_service_getter,
)
from coursehub.dashboard.dependencies import set_dashboard_service_getter  # noqa: E402
from coursehub.enrollments.dependencies import (  # noqa: E402
    set_enrollment_service_getter,
)
from coursehub.instructors.dependencies import (  # noqa: E402
    set_instructor_service_getter,
)
from coursehub.payments.dependencies import set_payment_service_getter  # noqa: E402
from coursehub.reviews.dependencies import set_review_service_getter  # noqa: E402


set_activity_service_getter(_service_getter("activity_service"))
set_auth_service_getter(_service_getter("auth_service"))
set_instructor_service_getter(_service_getter("instructor_service"))
set_course_service_getter(_service_getter("course_service"))
set_module_service_getter(_service_getter("module_service"))
set_lesson_service_getter(_service_getter("lesson_service"))
set_enrollment_service_getter(_service_getter("enrollment_service"))
set_payment_service_getter(_service_getter("payment_service"))
set_review_service_getter(_service_getter("review_service"))
set_dashboard_service_getter(_service_getter("dashboard_service"))


app = create_app()
