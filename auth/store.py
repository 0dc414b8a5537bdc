"""
auth/store.py -- SQLAlchemy Core persistence layer for auth entities.

Pattern: Repository + Data Mapper (same as inventory/store.py).
UserStore is the repository; _row_to_user / _row_to_token are the mappers.
The service and route code never touch SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.
  Only token hashes are stored. A DB dump never contains a usable token.

Uniqueness:
  Email uniqueness applies to active users only, so it is a partial unique
  index (WHERE deleted_at IS NULL). SQLite and PostgreSQL both support
  partial indexes; the dialect-specific where clauses are set below. Emails
  are normalized before every write and lookup, which makes the index
  case-insensitive in practice.

Transactions:
  create_user_with_token() runs both inserts in one engine.begin() block.
  Either both rows commit or the transaction rolls back and neither exists.

Layer rule: no imports from api/ or inventory/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Index, Integer, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine

from auth.models import SessionToken, User
from core.config import get_settings

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False),
    Column("hashed_password", Text, nullable=False),
    Column("email_verified_at", String(32)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Column("deleted_at", String(32)),  # soft delete marker
)

Index(
    "uq_users_email_active",
    _users.c.email,
    unique=True,
    sqlite_where=_users.c.deleted_at.is_(None),
    postgresql_where=_users.c.deleted_at.is_(None),
)

_tokens = Table(
    "personal_access_tokens",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("token_hash", String(64), nullable=False, unique=True),  # HMAC-SHA256 hex
    Column("last_used_at", String(32)),
    Column("created_at", String(32), nullable=False),
    Column("revoked_at", String(32)),  # NULL while active
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_email(email: str) -> str:
    """Canonical form used for every email write and lookup."""
    return email.strip().lower()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User and SessionToken entities.

    Usage:
        store = UserStore()
        user_id, token_id = store.create_user_with_token(user, token)
        user = store.get_by_email("ann@x.com")
        store.revoke_token(token_id)
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            # Route handlers run in a thread pool; one connection may be used
            # from more than one thread.
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    def email_taken(self, email: str) -> bool:
        """Return True if an active (non-soft-deleted) user holds this email."""
        stmt = (
            select(func.count())
            .select_from(_users)
            .where((_users.c.email == normalize_email(email)) & (_users.c.deleted_at.is_(None)))
        )
        with self.engine.connect() as conn:
            result = conn.execute(stmt).scalar()
        return (result or 0) > 0

    def get_by_email(self, email: str) -> User | None:
        """Look up an active user by email (case-insensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _users.select().where((_users.c.email == normalize_email(email)) & (_users.c.deleted_at.is_(None)))
            ).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key, soft-deleted rows included."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def count_users(self, include_deleted: bool = False) -> int:
        stmt = select(func.count()).select_from(_users)
        if not include_deleted:
            stmt = stmt.where(_users.c.deleted_at.is_(None))
        with self.engine.connect() as conn:
            return conn.execute(stmt).scalar() or 0

    def create_user_with_token(self, user: User, token: SessionToken) -> tuple[int, int]:
        """Insert a user and its first session token as one atomic unit.

        token.user_id is ignored; the new user's ID is used instead.
        Returns (user_id, token_id).

        Raises sqlalchemy.exc.IntegrityError if the email is already held by
        an active user (or the token hash collides). On any error the
        transaction rolls back and neither row is persisted.
        """
        now = _now_iso()
        with self.engine.begin() as conn:
            result = conn.execute(
                _users.insert().values(
                    name=user.name,
                    email=normalize_email(user.email),
                    hashed_password=user.hashed_password,
                    email_verified_at=user.email_verified_at,
                    created_at=now,
                    updated_at=now,
                )
            )
            user_id = result.inserted_primary_key[0]
            result = conn.execute(
                _tokens.insert().values(
                    user_id=user_id,
                    name=token.name,
                    token_hash=token.token_hash,
                    created_at=now,
                )
            )
            token_id = result.inserted_primary_key[0]
        return user_id, token_id

    def soft_delete_user(self, user_id: int) -> bool:
        """Mark a user deleted. Returns True if an active user was updated.

        Tokens are left in place; they stop resolving because their owner is
        no longer active.
        """
        now = _now_iso()
        with self.engine.begin() as conn:
            result = conn.execute(
                _users.update()
                .where((_users.c.id == user_id) & (_users.c.deleted_at.is_(None)))
                .values(deleted_at=now, updated_at=now)
            )
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Token queries
    # ------------------------------------------------------------------

    def create_token(self, token: SessionToken) -> int:
        """Insert a new session token and return its ID. Issuing never updates rows."""
        with self.engine.begin() as conn:
            result = conn.execute(
                _tokens.insert().values(
                    user_id=token.user_id,
                    name=token.name,
                    token_hash=token.token_hash,
                    created_at=_now_iso(),
                )
            )
            return result.inserted_primary_key[0]

    def get_token_by_hash(self, token_hash: str) -> SessionToken | None:
        """Look up a token by its HMAC hash, revoked or not. Indexed via UNIQUE."""
        with self.engine.connect() as conn:
            row = conn.execute(_tokens.select().where(_tokens.c.token_hash == token_hash)).fetchone()
        return _row_to_token(row) if row is not None else None

    def list_tokens(self, user_id: int, active_only: bool = True) -> list[SessionToken]:
        """Return a user's tokens, newest first."""
        stmt = _tokens.select().where(_tokens.c.user_id == user_id)
        if active_only:
            stmt = stmt.where(_tokens.c.revoked_at.is_(None))
        with self.engine.connect() as conn:
            rows = conn.execute(stmt.order_by(_tokens.c.id.desc())).fetchall()
        return [_row_to_token(r) for r in rows]

    def touch_token(self, token_id: int) -> None:
        """Stamp last_used_at on a token after a successful resolution."""
        with self.engine.begin() as conn:
            conn.execute(_tokens.update().where(_tokens.c.id == token_id).values(last_used_at=_now_iso()))

    def revoke_token(self, token_id: int) -> bool:
        """Revoke one token. Returns False if it was unknown or already revoked.

        The revoked_at IS NULL guard keeps the first revocation timestamp; a
        second call is a no-op.
        """
        with self.engine.begin() as conn:
            result = conn.execute(
                _tokens.update()
                .where((_tokens.c.id == token_id) & (_tokens.c.revoked_at.is_(None)))
                .values(revoked_at=_now_iso())
            )
        return result.rowcount > 0

    def revoke_user_tokens(self, user_id: int) -> int:
        """Revoke every active token owned by user_id. Returns the number revoked."""
        with self.engine.begin() as conn:
            result = conn.execute(
                _tokens.update()
                .where((_tokens.c.user_id == user_id) & (_tokens.c.revoked_at.is_(None)))
                .values(revoked_at=_now_iso())
            )
        return result.rowcount

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            return conn.execute(select(1)).scalar() == 1

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        hashed_password=row.hashed_password,
        email_verified_at=row.email_verified_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
        deleted_at=row.deleted_at,
    )


def _row_to_token(row) -> SessionToken:
    return SessionToken(
        id=row.id,
        user_id=row.user_id,
        name=row.name,
        token_hash=row.token_hash,
        created_at=row.created_at,
        last_used_at=row.last_used_at,
        revoked_at=row.revoked_at,
    )
