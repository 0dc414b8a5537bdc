"""
auth/service.py -- The authentication service: accounts, credentials, sessions.

AuthService is the one place that issues, resolves and revokes bearer tokens.
Every operation that needs to know "who is calling" takes the raw token as an
explicit argument; the service never reads request state.

Token lifecycle:
  Active  -- created by register() or login(); resolves to its owner.
  Revoked -- set by logout() or logout_all(); terminal, never resolves again.

Multiple active tokens per user are normal (one per device). Issuing a token
is an INSERT, so concurrent logins each get their own row.

Error policy:
  Domain failures raise the exceptions in auth/exceptions.py. Any other
  SQLAlchemy error is logged with its traceback here and re-raised as
  PersistenceFailed, which carries no internal detail.

Layer rule: no imports from api/ or inventory/.
"""

from __future__ import annotations

import logging
import re

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.exceptions import InvalidCredentials, PersistenceFailed, Unauthenticated, ValidationFailed
from auth.models import SessionToken, User
from auth.store import UserStore, normalize_email
from auth.tokens import burn_password_check, generate_token, hash_password, hash_token, verify_password
from core.config import get_settings

logger = logging.getLogger("warden.auth")

# local@domain.tld with no whitespace; deliverability is not our concern.
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
_EMAIL_RE = re.compile(EMAIL_PATTERN)

MAX_FIELD_LENGTH = 255
MIN_PASSWORD_LENGTH = 8


class AuthService:
    """Credential verification and session-token bookkeeping over a UserStore."""

    def __init__(self, store: UserStore, token_name: str | None = None) -> None:
        self.store = store
        self.token_name = token_name or get_settings().token_name

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def register(self, name: str, email: str, password: str) -> tuple[User, str]:
        """Create an account and its first session. Returns (user, raw_token).

        The password has already been confirmed by the caller. User and token
        are written in one transaction: both exist afterwards or neither does.
        """
        name = (name or "").strip()
        email = normalize_email(email or "")
        password = password or ""

        errors = _validate_registration(name, email, password)
        if errors:
            raise ValidationFailed(errors)

        try:
            if self.store.email_taken(email):
                raise ValidationFailed({"email": ["The email has already been taken."]})

            raw_token = generate_token()
            user = User(name=name, email=email, hashed_password=hash_password(password))
            token = SessionToken(user_id=0, name=self.token_name, token_hash=hash_token(raw_token))
            try:
                user_id, _token_id = self.store.create_user_with_token(user, token)
            except IntegrityError:
                # A concurrent registration may have claimed the email between
                # the check above and the insert.
                if self.store.email_taken(email):
                    raise ValidationFailed({"email": ["The email has already been taken."]}) from None
                raise
            created = self.store.get_by_id(user_id)
        except SQLAlchemyError as exc:
            logger.exception("Registration failed for a new account")
            raise PersistenceFailed() from exc

        logger.info("Registered user_id=%s", user_id)
        return created, raw_token

    def login(self, email: str, password: str) -> tuple[User, str]:
        """Verify credentials and open a new session. Returns (user, raw_token).

        Existing sessions are left alone. Unknown email and wrong password
        fail identically, and bcrypt runs in both cases so timing does not
        tell them apart.
        """
        email = normalize_email(email or "")
        password = password or ""
        try:
            user = self.store.get_by_email(email) if email else None
            if user is None or not user.hashed_password:
                burn_password_check(password)
                logger.warning("Failed login attempt (unknown account)")
                raise InvalidCredentials()
            if not verify_password(password, user.hashed_password):
                logger.warning("Failed login attempt for user_id=%s", user.id)
                raise InvalidCredentials()
            raw_token = self._issue_token(user)
        except SQLAlchemyError as exc:
            logger.exception("Login failed on storage access")
            raise PersistenceFailed() from exc

        logger.info("Login user_id=%s", user.id)
        return user, raw_token

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def current_user(self, raw_token: str | None) -> User:
        """Resolve a token to its owner and stamp the token's last_used_at."""
        try:
            token, user = self._resolve(raw_token)
            self.store.touch_token(token.id)
        except SQLAlchemyError as exc:
            logger.exception("Token resolution failed on storage access")
            raise PersistenceFailed() from exc
        return user

    def logout(self, raw_token: str | None) -> None:
        """Revoke exactly the presented token. The row stays for auditing."""
        try:
            token, user = self._resolve(raw_token)
            if not self.store.revoke_token(token.id):
                # Lost a race with another revocation of the same token.
                raise Unauthenticated()
        except SQLAlchemyError as exc:
            logger.exception("Logout failed on storage access")
            raise PersistenceFailed() from exc
        logger.info("Logout user_id=%s token_id=%s", user.id, token.id)

    def logout_all(self, raw_token: str | None) -> int:
        """Revoke every active token of the caller, the presented one included.

        Returns the number of tokens revoked.
        """
        try:
            token, user = self._resolve(raw_token)
            revoked = self.store.revoke_user_tokens(user.id)
        except SQLAlchemyError as exc:
            logger.exception("Logout from all devices failed on storage access")
            raise PersistenceFailed() from exc
        logger.info("Logout all devices user_id=%s revoked=%d", user.id, revoked)
        return revoked

    def sessions(self, raw_token: str | None) -> list[SessionToken]:
        """Return the caller's active sessions, newest first."""
        try:
            _token, user = self._resolve(raw_token)
            return self.store.list_tokens(user.id, active_only=True)
        except SQLAlchemyError as exc:
            logger.exception("Session listing failed on storage access")
            raise PersistenceFailed() from exc

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _issue_token(self, user: User) -> str:
        raw_token = generate_token()
        self.store.create_token(SessionToken(user_id=user.id, name=self.token_name, token_hash=hash_token(raw_token)))
        return raw_token

    def _resolve(self, raw_token: str | None) -> tuple[SessionToken, User]:
        """Return the active token and its active owner, else raise Unauthenticated."""
        if not raw_token:
            raise Unauthenticated()
        token = self.store.get_token_by_hash(hash_token(raw_token))
        if token is None or not token.is_active:
            raise Unauthenticated()
        user = self.store.get_by_id(token.user_id)
        if user is None or not user.is_active:
            raise Unauthenticated()
        return token, user


def _validate_registration(name: str, email: str, password: str) -> dict[str, list[str]]:
    """Collect per-field constraint violations for a registration attempt."""
    errors: dict[str, list[str]] = {}
    if not name:
        errors.setdefault("name", []).append("The name field is required.")
    elif len(name) > MAX_FIELD_LENGTH:
        errors.setdefault("name", []).append(f"The name may not be greater than {MAX_FIELD_LENGTH} characters.")

    if not email:
        errors.setdefault("email", []).append("The email field is required.")
    else:
        if len(email) > MAX_FIELD_LENGTH:
            errors.setdefault("email", []).append(f"The email may not be greater than {MAX_FIELD_LENGTH} characters.")
        if not _EMAIL_RE.match(email):
            errors.setdefault("email", []).append("The email must be a valid email address.")

    if len(password) < MIN_PASSWORD_LENGTH:
        errors.setdefault("password", []).append(f"The password must be at least {MIN_PASSWORD_LENGTH} characters.")
    return errors
