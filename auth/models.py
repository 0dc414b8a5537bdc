"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, no persistence logic). Stores and
the service do the work; these only own the domain shape.

Layer rule: no imports from api/ or inventory/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """An identity that can hold session tokens.

    email is stored normalized (stripped, lower-cased) so uniqueness among
    active users is case-insensitive. deleted_at marks a soft delete; a
    soft-deleted user can no longer log in and their tokens stop resolving.
    """

    name: str
    email: str
    id: int | None = None
    hashed_password: str | None = None
    email_verified_at: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    deleted_at: str | None = None

    @property
    def is_active(self) -> bool:
        return self.deleted_at is None


@dataclass
class SessionToken:
    """One authenticated device/client session.

    token_hash is HMAC-SHA256(SECRET_KEY, raw_token). The raw token is
    returned ONCE at issuance and never persisted. revoked_at is None while
    the session is active; once set the token is dead for good.
    """

    user_id: int
    name: str
    token_hash: str
    id: int | None = None
    created_at: str | None = None
    last_used_at: str | None = None
    revoked_at: str | None = None

    @property
    def is_active(self) -> bool:
        return self.revoked_at is None
