"""
api/main.py -- FastAPI application factory for Taskboard.

Run with:      uvicorn asgi:app --reload

create_app(settings) builds a fully wired application. Everything the request
path needs -- the user store, the tracker store, the TokenService and the
three resource services -- is constructed in the lifespan from that Settings
object and hung on app.state. Nothing reads a signing key or a database URL
from a module global, so tests build as many isolated apps as they like.

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for the frontend origins
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Lifespan handles startup (stores, token service, services) and shutdown
(dispose engines) symmetrically.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api import limiter as rate_limits
from api.models import ErrorDetail, ErrorResponse, HealthResponse, format_validation_errors
from api.routes.auth import router as auth_router
from api.routes.projects import router as projects_router
from api.routes.tasks import router as tasks_router
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import Settings, get_settings
from core.errors import AuthenticationError, TaskboardError
from tracker.service import CommentService, ProjectService, TaskService
from tracker.store import TrackerStore

API_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("taskboard.api")


def _error(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create stores and services on startup; dispose them on shutdown.

    Both stores point at the same database URL. The services get their
    stores passed in; routes reach them through app.state.
    """
    settings: Settings = app.state.settings
    logger.info("Taskboard API starting up")
    app.state.user_store = UserStore(settings.database_url)
    app.state.tracker = TrackerStore(settings.database_url)
    app.state.tokens = TokenService(settings.secret_key, settings.token_expire_seconds)
    app.state.projects = ProjectService(app.state.tracker)
    app.state.tasks = TaskService(app.state.tracker, app.state.user_store)
    app.state.comments = CommentService(app.state.tracker)
    logger.info("Stores initialized (%d users registered)", app.state.user_store.count_users())

    yield

    app.state.tracker.close()
    app.state.user_store.close()
    logger.info("Taskboard API shutdown complete")


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the Taskboard ASGI application for the given settings.

    settings defaults to the process-wide get_settings() singleton.
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="Taskboard API",
        description="Projects, tasks and comments with role-based access control.",
        version=API_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # -----------------------------------------------------------------------
    # Middleware stack. Register in the order the request should meet them:
    # TrustedHost -> CORS -> SlowAPI.
    # -----------------------------------------------------------------------

    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.allowed_hosts)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=3600,
    )
    app.add_middleware(SlowAPIMiddleware)

    # SlowAPI looks for app.state.limiter by convention.
    rate_limits.configure(settings.rate_limit_enabled, settings.login_rate_limit)
    app.state.limiter = rate_limits.limiter

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s %d %.1fms %s",
            request.method,
            request.url.path,
            response.status_code,
            ms,
            request.client.host if request.client else "unknown",
        )
        return response

    app.include_router(auth_router, prefix="/api", tags=["Auth"])
    app.include_router(projects_router, prefix="/api", tags=["Projects"])
    app.include_router(tasks_router, prefix="/api", tags=["Tasks"])

    _register_exception_handlers(app)

    @app.get("/api/health", tags=["Health"])
    def health(request: Request) -> HealthResponse:
        """Liveness plus a database round trip. No auth, no rate limit."""
        try:
            database = "ok" if request.app.state.tracker.ping() else "error"
        except SQLAlchemyError:
            logger.exception("Health check database ping failed")
            database = "error"
        return HealthResponse(
            status="ok" if database == "ok" else "degraded",
            version=API_VERSION,
            components={"app": "ok", "database": database},
        )

    return app


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(TaskboardError)
    async def taskboard_error_handler(request: Request, exc: TaskboardError) -> JSONResponse:
        """Render a domain error with the status and code carried on its class."""
        response = _error(exc.status_code, exc.code, exc.message, exc.detail)
        if isinstance(exc, AuthenticationError):
            response.headers["WWW-Authenticate"] = "Bearer"
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Return 400 naming every failing field of the body, query or path."""
        fields = format_validation_errors(exc.errors())
        return _error(400, "validation_error", f"Request validation failed: {fields}")

    @app.exception_handler(RateLimitExceeded)
    def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        """Return 429 with Retry-After when a rate limit is exceeded.

        Plain def: SlowAPIMiddleware calls this directly for sync routes and
        uses the return value as the response.
        """
        retry_after = int(getattr(exc, "retry_after", 60))
        response = _error(429, "rate_limited", "Too many requests.", str(exc.detail))
        response.headers["Retry-After"] = str(retry_after)
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Wrap framework-raised HTTP errors (unknown route, wrong method) in the envelope."""
        return _error(exc.status_code, f"http_{exc.status_code}", str(exc.detail))

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unexpected server errors.

        The traceback goes to the log only; the client receives a generic message.
        """
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return _error(500, "internal_error", "An unexpected error occurred.")
