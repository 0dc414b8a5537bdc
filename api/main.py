"""
api/main.py -- FastAPI application entry point for Warden.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Lifespan opens the stores and wires AuthService into app.state on startup,
and disposes of the engines on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.openapi.docs import get_redoc_html, get_swagger_ui_html
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError

from api.limiter import limiter
from api.models import ApiInfoResponse, ErrorDetail, ErrorResponse, HealthResponse
from api.routes.assets import router as assets_router
from api.routes.auth import router as auth_router
from auth.dependencies import require_admin
from auth.exceptions import AuthError, ValidationFailed
from auth.models import User
from auth.service import AuthService
from auth.store import UserStore
from core.config import get_settings
from inventory.store import AssetStore

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("warden.api")

_settings = get_settings()


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open stores on startup and dispose of them on shutdown.

    Both stores share DATABASE_URL; each owns its own engine and tables.
    """
    logger.info("Warden API starting up")
    app.state.user_store = UserStore(_settings.database_url)
    app.state.asset_store = AssetStore(_settings.database_url)
    app.state.auth_service = AuthService(app.state.user_store, token_name=_settings.token_name)
    logger.info("Stores initialized")

    yield

    app.state.asset_store.close()
    app.state.user_store.close()
    logger.info("Warden API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title=_settings.app_name,
    description="User registration, login and bearer-token sessions, plus asset records.",
    version=_settings.app_version,
    lifespan=lifespan,
    # Built-in /docs, /redoc and /openapi.json are replaced by allow-listed
    # equivalents below.
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Register in the order you want the request to encounter them:
# TrustedHost -> CORS -> SlowAPI.
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=_settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


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


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api", tags=["Auth"])
app.include_router(assets_router, prefix="/api", tags=["Assets"])


# ---------------------------------------------------------------------------
# Operator-only API documentation
#
# Gated on the ADMIN_EMAILS allow-list rather than any hard-coded address.
# ---------------------------------------------------------------------------


@app.get("/docs", include_in_schema=False)
async def docs(user: User = Depends(require_admin)):
    """Swagger UI -- allow-listed operators only."""
    return get_swagger_ui_html(openapi_url="/openapi.json", title=_settings.app_name)


@app.get("/redoc", include_in_schema=False)
async def redoc(user: User = Depends(require_admin)):
    """ReDoc UI -- allow-listed operators only."""
    return get_redoc_html(openapi_url="/openapi.json", title=_settings.app_name)


@app.get("/openapi.json", include_in_schema=False)
async def openapi_schema(user: User = Depends(require_admin)) -> JSONResponse:
    """OpenAPI document -- allow-listed operators only."""
    return JSONResponse(app.openapi())


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error_response(status_code: int, error: ErrorDetail) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error).model_dump(exclude_none=True),
    )


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Map authentication service errors to their HTTP status.

    PersistenceFailed only ever carries its generic message; the service has
    already logged the underlying fault with its traceback.
    """
    fields = exc.fields if isinstance(exc, ValidationFailed) else None
    response = _error_response(
        exc.status_code,
        ErrorDetail(code=exc.code, message=exc.message, fields=fields),
    )
    if exc.status_code == 401:
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error_response(
        429,
        ErrorDetail(code="rate_limited", message="Too many requests.", detail=str(exc)),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with per-field messages when the request fails validation.

    Errors are keyed by the last element of the pydantic location, so a bad
    body field "email" is reported under "email".
    """
    fields: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        key = loc[-1] if loc else "body"
        message = str(err.get("msg", "Invalid value."))
        if message.startswith("Value error, "):
            message = message[len("Value error, ") :]
        fields.setdefault(key, []).append(message)
    return _error_response(
        422,
        ErrorDetail(code="validation_error", message="The given data was invalid.", fields=fields),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    Route handlers raise HTTPException with a structured dict detail; use it
    directly as the error field rather than stringifying it.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
    return _error_response(
        exc.status_code,
        ErrorDetail(code=f"http_{exc.status_code}", message=str(exc.detail)),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(
        500,
        ErrorDetail(code="internal_error", message="An unexpected error occurred."),
    )


# ---------------------------------------------------------------------------
# Public service endpoints
#
# No rate limit: load balancers and monitors must not be throttled.
# ---------------------------------------------------------------------------


@app.get("/api/", tags=["Meta"], name="api.home")
async def home(request: Request) -> ApiInfoResponse:
    """Describe the API and link to its documentation."""
    return ApiInfoResponse(
        title=f"Welcome to {_settings.app_name}",
        description="A simple API for managing users, their sessions and asset records.",
        version=_settings.app_version,
        documentation_url=str(request.url_for("docs")),
        links={"self": str(request.url_for("api.home"))},
    )


@app.get("/api/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness plus a database reachability check."""
    try:
        database = "ok" if request.app.state.user_store.ping() else "error"
    except SQLAlchemyError:
        logger.exception("Health check could not reach the database")
        database = "error"
    return HealthResponse(
        version=_settings.app_version,
        components={"app": "ok", "database": database},
    )
