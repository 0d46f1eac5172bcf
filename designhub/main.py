from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from designhub.core.config import get_settings
from designhub.core.context import build_context
from designhub.core.errors import (
    DesignHubError,
    handle_designhub_error,
    handle_request_validation_error,
    handle_unexpected_error,
)
from designhub.core.limiter import limiter
from designhub.core.middleware import RequestIdMiddleware, RequestLogMiddleware
from designhub.designs.router import router as designs_router
from designhub.exports.router import cache_router, router as exports_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.context = await build_context(get_settings())
    try:
        yield
    finally:
        await app.state.context.aclose()


def create_app() -> FastAPI:
    settings = get_settings()

    _app = FastAPI(
        title="DesignHub API",
        description="Design document store and ShapeDiver export download service",
        version="0.1.0",
        lifespan=lifespan,
    )

    # ---------------------------------------------------------------------------
    # Rate limiter state — SlowAPI reads limiter from app.state
    # ---------------------------------------------------------------------------
    _app.state.limiter = limiter
    _app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # ---------------------------------------------------------------------------
    # Error bodies: {"error": ..., "message": ...}
    # ---------------------------------------------------------------------------
    _app.add_exception_handler(DesignHubError, handle_designhub_error)
    _app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    _app.add_exception_handler(Exception, handle_unexpected_error)

    # ---------------------------------------------------------------------------
    # Middleware (registered outermost → innermost; executed innermost → outermost)
    # ---------------------------------------------------------------------------
    _app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _app.add_middleware(SlowAPIMiddleware)
    _app.add_middleware(RequestLogMiddleware)
    _app.add_middleware(RequestIdMiddleware)

    # ---------------------------------------------------------------------------
    # Sentry — initialised here so it captures startup errors too
    # ---------------------------------------------------------------------------
    from designhub.core.sentry import init_sentry

    init_sentry(
        dsn=settings.sentry_dsn,
        environment="development" if settings.debug else "production",
    )

    # ---------------------------------------------------------------------------
    # Logging — configure structlog before any routers log anything
    # ---------------------------------------------------------------------------
    from designhub.core.logging import configure_structlog

    configure_structlog(debug=settings.debug)

    # ---------------------------------------------------------------------------
    # Routes
    # ---------------------------------------------------------------------------

    @_app.get("/health")
    async def health_check(request: Request) -> dict[str, str]:
        ctx = request.app.state.context
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "database": "Connected" if ctx.store_available else "Disconnected",
        }

    _app.include_router(designs_router)
    _app.include_router(exports_router)
    _app.include_router(cache_router)

    return _app


app = create_app()
