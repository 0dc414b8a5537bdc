"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Bearer tokens arrive in the "Authorization: Bearer <token>" header and are
extracted by HTTPBearer, which also declares the bearer security scheme in
the OpenAPI document. These helpers hand the token to AuthService explicitly;
the service itself never looks at the request.

require_token() returns the raw token (logout routes need the token itself).
get_current_user() resolves it to a User.
require_admin() additionally checks the configured admin email allow-list.

HTTPBearer runs with auto_error=False so a missing or malformed header reaches
require_token(), which raises Unauthenticated. The AuthError handler in
api/main.py turns that into a 401 with the standard error envelope.

Layer rule: no imports from api/ or inventory/.
  auth/dependencies.py may import from fastapi because this module is part
  of the FastAPI dependency injection system.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from auth.exceptions import Unauthenticated
from auth.models import User
from auth.service import AuthService
from core.config import get_settings

# Bearer token extractor
bearer_scheme = HTTPBearer(auto_error=False, description="Token returned by /api/register or /api/login.")


def get_auth_service(request: Request) -> AuthService:
    """Return the AuthService wired into app.state by the lifespan."""
    return request.app.state.auth_service


def require_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """Return the bearer token from the request, or raise Unauthenticated."""
    token = credentials.credentials.strip() if credentials else ""
    if not token:
        raise Unauthenticated()
    return token


def get_current_user(request: Request, token: str = Depends(require_token)) -> User:
    """Require authentication. Raises Unauthenticated (HTTP 401) on any failure.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    return get_auth_service(request).current_user(token)


def require_admin(user: User = Depends(get_current_user)) -> User:
    """Require an allow-listed operator. 401 if unauthenticated, 403 otherwise.

    The allow-list comes from ADMIN_EMAILS; there is no role model.
    """
    if user.email not in get_settings().admin_emails:
        raise HTTPException(
            status_code=403,
            detail={"code": "forbidden", "message": "Operator access required."},
        )
    return user
