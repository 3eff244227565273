"""LearnHub API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from learnhub.communities.router import router as communities_router
from learnhub.communities.service import CommunityService
from learnhub.config import get_settings
from learnhub.core.context import get_request_id
from learnhub.core.database import init_async_cassandra
from learnhub.core.locks import AggregateLocks
from learnhub.core.logging import configure_structlog, get_logger
from learnhub.core.middleware import RequestContextMiddleware
from learnhub.core.rate_limit import RateLimiter, RateWindow
from learnhub.core.redis import close_redis_client, create_redis_client
from learnhub.courses.router import router as courses_router
from learnhub.courses.service import CourseService
from learnhub.dashboard.router import router as dashboard_router
from learnhub.dashboard.service import DashboardService
from learnhub.enrollments.router import router as enrollments_router
from learnhub.enrollments.service import EnrollmentService
from learnhub.events.router import router as events_router
from learnhub.events.service import EventService
from learnhub.health import router as health_router
from learnhub.posts.router import router as posts_router
from learnhub.posts.service import PostService
from learnhub.search.router import router as search_router
from learnhub.search.service import SearchService
from learnhub.video.router import router as video_router


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build shared infrastructure and services, tear them down on exit."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    locks = AggregateLocks()
    app.state.locks = locks

    # Redis is optional; without it rate limiting allows everything
    app.state.redis = None
    try:
        app.state.redis = await create_redis_client(settings)
        logger.info("redis_initialized")
    except Exception as e:
        logger.warning(
            "redis_init_skipped",
            error=str(e),
            message="Running without Redis - rate limiting disabled",
        )
    rate_limiter = RateLimiter(app.state.redis)
    app.state.rate_limiter = rate_limiter

    app.state.cassandra = None
    try:
        connection = await init_async_cassandra(settings)
        app.state.cassandra = connection
        session = connection.session
        keyspace = settings.cassandra_keyspace

        course_service = CourseService(session=session, keyspace=keyspace, locks=locks)
        enrollment_service = EnrollmentService(
            session=session,
            keyspace=keyspace,
            locks=locks,
            course_service=course_service,
        )
        app.state.course_service = course_service
        app.state.enrollment_service = enrollment_service
        app.state.dashboard_service = DashboardService(course_service, enrollment_service)
        logger.info("course_services_initialized")

        community_service = CommunityService(session=session, keyspace=keyspace, locks=locks)
        app.state.community_service = community_service
        post_service = PostService(
            session=session,
            keyspace=keyspace,
            locks=locks,
            rate_limiter=rate_limiter,
            post_windows=[
                RateWindow(settings.rate_limit_posts_per_minute, 60),
                RateWindow(settings.rate_limit_posts_per_hour, 3600),
            ],
            comment_windows=[RateWindow(settings.rate_limit_comments_per_minute, 60)],
        )
        app.state.post_service = post_service
        app.state.search_service = SearchService(
            course_service, community_service, post_service
        )
        app.state.event_service = EventService(
            session=session, keyspace=keyspace, locks=locks
        )
        logger.info(
            "community_services_initialized", rate_limiting=rate_limiter.enabled
        )
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await close_redis_client(app.state.redis)
    if app.state.cassandra is not None:
        app.state.cassandra.close()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # SECURITY: debug=False keeps Starlette from rendering stack traces
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="LearnHub - courses, progress tracking and communities",
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
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    # Global exception handlers (security: never expose stack traces)
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        request_id = _get_request_id_safe(request)
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": str(exc.detail)
                if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
                else "Internal server error",
                "status_code": exc.status_code,
                "request_id": request_id,
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        request_id = _get_request_id_safe(request)
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "message": "Validation error",
                "status_code": status.HTTP_422_UNPROCESSABLE_ENTITY,
                "request_id": request_id,
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all: log everything, return nothing internal."""
        request_id = _get_request_id_safe(request)
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "message": "An unexpected error occurred. Please try again later.",
                "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
                "request_id": request_id,
            },
        )

    app.include_router(health_router)
    app.include_router(courses_router)
    app.include_router(enrollments_router)
    app.include_router(communities_router)
    app.include_router(posts_router)
    app.include_router(events_router)
    app.include_router(video_router)
    app.include_router(dashboard_router)
    app.include_router(search_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        return {
            "message": "LearnHub API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
