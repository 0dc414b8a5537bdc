"""
API request and response models for Warden REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
inventory/models.py, which own the internal domain representation. Route
handlers map between the two.

User responses never carry the password hash; token responses carry the raw
token only at issuance.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from auth.models import SessionToken, User
from auth.service import EMAIL_PATTERN, MAX_FIELD_LENGTH, MIN_PASSWORD_LENGTH
from inventory.models import Asset

# ---------------------------------------------------------------------------
# Errors and service metadata
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None
    fields: Optional[dict[str, list[str]]] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]


class ApiInfoResponse(BaseModel):
    """Response for GET /api/ -- a short self-description of the service."""

    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    version: str
    documentation_url: str
    links: dict[str, str]


# ---------------------------------------------------------------------------
# Auth -- request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/register.

    password_confirmation is checked here so the service only ever receives
    an already-confirmed password.
    """

    name: str = Field(min_length=1, max_length=MAX_FIELD_LENGTH)
    email: str = Field(max_length=MAX_FIELD_LENGTH, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=MIN_PASSWORD_LENGTH, max_length=MAX_FIELD_LENGTH)
    password_confirmation: str = Field(max_length=MAX_FIELD_LENGTH)

    # Passwords are taken verbatim; only name and email are trimmed.
    @field_validator("name", "email", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("password_confirmation")
    @classmethod
    def passwords_match(cls, value: str, info: ValidationInfo) -> str:
        # password is absent from info.data when it already failed validation.
        if "password" in info.data and value != info.data["password"]:
            raise ValueError("The password field confirmation does not match.")
        return value


class LoginRequest(BaseModel):
    """Request body for POST /api/login."""

    email: str = Field(min_length=1, max_length=MAX_FIELD_LENGTH)
    password: str = Field(min_length=1, max_length=MAX_FIELD_LENGTH)


# ---------------------------------------------------------------------------
# Auth -- response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Externally visible user record. No password hash, ever."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    email_verified_at: Optional[str] = None
    created_at: str
    updated_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            email_verified_at=user.email_verified_at,
            created_at=user.created_at or "",
            updated_at=user.updated_at or "",
        )


class AuthResponse(BaseModel):
    """Response for register and login: the user plus a freshly issued token."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    user: UserResponse
    token: str


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str


class LogoutAllResponse(MessageResponse):
    revoked: int


class SessionResponse(BaseModel):
    """One active device session. The token itself is never shown again."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    created_at: str
    last_used_at: Optional[str] = None

    @classmethod
    def from_token(cls, token: SessionToken) -> "SessionResponse":
        return cls(
            id=token.id,
            name=token.name,
            created_at=token.created_at or "",
            last_used_at=token.last_used_at,
        )


# ---------------------------------------------------------------------------
# Inventory -- asset request/response models
# ---------------------------------------------------------------------------


class AssetCreate(BaseModel):
    """Request body for POST /api/assets."""

    model_config = ConfigDict(str_strip_whitespace=True)

    file_id: str = Field(min_length=1, max_length=255)
    url: str = Field(min_length=1, max_length=255)
    name: Optional[str] = Field(default=None, max_length=255)
    path: Optional[str] = Field(default=None, max_length=255)
    type: str = Field(default="file", min_length=1, max_length=50)
    size: int = Field(default=100, ge=0, description="Size in KB.")
    hosted_at: Optional[str] = Field(default=None, max_length=32)


class AssetResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    file_id: str
    name: Optional[str]
    path: Optional[str]
    url: str
    type: str
    size: int
    hosted_at: Optional[str]
    created_at: str
    updated_at: str

    @classmethod
    def from_asset(cls, asset: Asset) -> "AssetResponse":
        return cls(
            id=asset.id,
            file_id=asset.file_id,
            name=asset.name,
            path=asset.path,
            url=asset.url,
            type=asset.type,
            size=asset.size,
            hosted_at=asset.hosted_at,
            created_at=asset.created_at,
            updated_at=asset.updated_at,
        )
