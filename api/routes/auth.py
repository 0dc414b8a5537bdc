"""
api/routes/auth.py -- Account and session REST endpoints.

Routes:
  POST     /register     -- create account + first session token (201)
  POST     /login        -- verify credentials, issue a new session token
  GET|POST /logout       -- revoke the presented token (requires auth)
  POST     /logout-all   -- revoke every token of the caller (requires auth)
  GET      /user         -- current user (requires auth)
  GET      /sessions     -- caller's active sessions (requires auth)

Every handler is a thin mapping between HTTP models and AuthService calls.
AuthService raises the domain errors; the AuthError handler in api/main.py
turns them into status codes.

Security:
  POST /login and POST /register are rate-limited per IP.
  Login fails with one message for unknown email and wrong password.
  Cache-Control: no-store on every response that carries a raw token.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from api.limiter import limiter
from api.models import (
    AuthResponse,
    LoginRequest,
    LogoutAllResponse,
    MessageResponse,
    RegisterRequest,
    SessionResponse,
    UserResponse,
)
from auth.dependencies import get_auth_service, get_current_user, require_token
from auth.models import User
from core.config import get_settings

# Auth policy:
# - POST     /register:    public
# - POST     /login:       public
# - GET|POST /logout:      bearer token (require_token, resolved by the service)
# - POST     /logout-all:  bearer token
# - GET      /user:        bearer token (get_current_user)
# - GET      /sessions:    bearer token
router = APIRouter()

_settings = get_settings()


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@limiter.limit(_settings.register_rate_limit)
@router.post("/register", response_model=AuthResponse, status_code=201)
def register(request: Request, response: Response, body: RegisterRequest) -> AuthResponse:
    """Create an account and return it together with its first bearer token.

    The token is shown once. Only its HMAC hash is stored.
    """
    service = get_auth_service(request)
    user, token = service.register(body.name, body.email, body.password)
    response.headers["Cache-Control"] = "no-store"
    return AuthResponse(
        message="User registered successfully",
        user=UserResponse.from_user(user),
        token=token,
    )


@limiter.limit(_settings.login_rate_limit)
@router.post("/login", response_model=AuthResponse)
def login(request: Request, response: Response, body: LoginRequest) -> AuthResponse:
    """Authenticate with email and password and open a new session.

    Earlier sessions stay valid; each device holds its own token.
    """
    service = get_auth_service(request)
    user, token = service.login(body.email, body.password)
    response.headers["Cache-Control"] = "no-store"
    return AuthResponse(
        message="Login successful",
        user=UserResponse.from_user(user),
        token=token,
    )


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.api_route("/logout", methods=["GET", "POST"], response_model=MessageResponse)
def logout(request: Request, token: str = Depends(require_token)) -> MessageResponse:
    """Revoke the token used for this request. Other devices stay logged in."""
    get_auth_service(request).logout(token)
    return MessageResponse(message="Logged out successfully")


@router.post("/logout-all", response_model=LogoutAllResponse)
def logout_all(request: Request, token: str = Depends(require_token)) -> LogoutAllResponse:
    """Revoke every session of the caller, including this one."""
    revoked = get_auth_service(request).logout_all(token)
    return LogoutAllResponse(message="Logged out from all devices", revoked=revoked)


@router.get("/user", response_model=UserResponse)
def user(current_user: User = Depends(get_current_user)) -> UserResponse:
    """Return the user that owns the presented token."""
    return UserResponse.from_user(current_user)


@router.get("/sessions", response_model=list[SessionResponse])
def list_sessions(request: Request, token: str = Depends(require_token)) -> list[SessionResponse]:
    """List the caller's active sessions. Raw token values are never returned."""
    return [SessionResponse.from_token(t) for t in get_auth_service(request).sessions(token)]
