"""Blog Comments API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from blog_comments.comments.counters import CounterSynchronizer
from blog_comments.comments.moderation import ModerationWorkflow
from blog_comments.comments.rate_limit import (
    InMemoryRateLimitBackend,
    RateLimitBackend,
    RateLimiter,
    RedisRateLimitBackend,
)
from blog_comments.comments.router import router as comments_router
from blog_comments.comments.service import CommentService
from blog_comments.comments.store import CassandraCommentStore
from blog_comments.config import Settings, get_settings
from blog_comments.core.context import get_request_id
from blog_comments.core.database import init_async_cassandra, shutdown_async_cassandra
from blog_comments.core.logging import configure_structlog, get_logger
from blog_comments.core.middleware import RequestContextMiddleware
from blog_comments.core.redis import init_redis, shutdown_redis
from blog_comments.health import router as health_router
from blog_comments.posts import PostService


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


# Application state for dependency injection
class AppState:
    """Application state container."""

    cassandra_session: Any = None
    post_service: PostService | None = None
    comment_service: CommentService | None = None
    moderation_workflow: ModerationWorkflow | None = None


app_state = AppState()


def build_rate_limit_backend(settings: Settings, redis_client: Any) -> RateLimitBackend:
    """Pick the limiter backend; the shared one needs a live Redis."""
    if settings.comment_rate_limit_backend == "redis":
        if redis_client is not None:
            return RedisRateLimitBackend(redis_client)
        logger.warning(
            "rate_limiter_fallback",
            configured="redis",
            using="memory",
            message="Redis unavailable - limits apply per process",
        )
    return InMemoryRateLimitBackend()


def wire_comment_services(
    session: Any, settings: Settings, redis_client: Any = None
) -> tuple[CommentService, ModerationWorkflow]:
    """Build the comment service graph on top of one Cassandra session."""
    keyspace = settings.cassandra_keyspace

    post_service = PostService(session=session, keyspace=keyspace)
    store = CassandraCommentStore(session=session, keyspace=keyspace)
    counters = CounterSynchronizer(store, post_service)
    rate_limiter = RateLimiter(
        build_rate_limit_backend(settings, redis_client),
        limit=settings.comment_rate_limit_max,
        window_seconds=settings.comment_rate_limit_window_seconds,
    )

    comment_service = CommentService(
        store=store,
        post_service=post_service,
        rate_limiter=rate_limiter,
        counters=counters,
        settings=settings,
    )
    moderation = ModerationWorkflow(store, counters, flags_unique=settings.comment_flags_unique)
    return comment_service, moderation


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

    # Redis only backs the shared rate limiter
    redis_client = None
    if settings.comment_rate_limit_backend == "redis":
        try:
            redis_client = await init_redis()
            logger.info("redis_initialized")
        except Exception as e:
            logger.warning(
                "redis_init_skipped",
                error=str(e),
                message="Running without Redis - rate limits are per process",
            )

    # Initialize Cassandra (async)
    try:
        app_state.cassandra_session = await init_async_cassandra()
        logger.info("cassandra_initialized")

        comment_service, moderation = wire_comment_services(
            app_state.cassandra_session, settings, redis_client
        )
        app_state.post_service = comment_service.post_service
        app_state.comment_service = comment_service
        app_state.moderation_workflow = moderation
        # Also set on app.state for dependency injection via request.app.state
        app.state.comment_service = comment_service
        app.state.moderation_workflow = moderation
        logger.info(
            "comment_service_initialized",
            spam_policy=settings.comment_spam_policy,
            auto_approve=settings.comment_auto_approve,
            rate_limit_backend=type(comment_service.rate_limiter.backend).__name__,
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
    await shutdown_redis()
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # Stack traces never reach responses; the handlers below log them instead
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Blog comment intake and moderation API",
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

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        """Get request_id from request state or context."""
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
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
        """Handle request validation errors."""
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
                "status_code": 422,
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
        """Catch-all handler for unhandled exceptions (persistence failures included)."""
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
                "status_code": 500,
                "request_id": request_id,
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(comments_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "Blog Comments API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
