"""
inventory/store.py -- SQLAlchemy-backed persistence layer for asset records.

Uses SQLAlchemy Core (not ORM) so the dataclass in inventory/models.py stays
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change.

Pattern: Repository + Data Mapper. AssetStore is the repository;
_row_to_asset is the mapper. Route handlers never touch SQL directly.

Assets are soft-deleted: delete sets deleted_at and every read filters it out.

Usage:
    store = AssetStore("sqlite:///:memory:")
    asset_id = store.create_asset(Asset(file_id="f-1", url="https://cdn/x.png"))
    assets = store.list_assets()
    store.soft_delete_asset(asset_id)
    store.close()
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import BigInteger, Column, Integer, MetaData, String, Table, create_engine, event
from sqlalchemy.engine import Engine

from core.config import get_settings
from inventory.models import Asset

logger = logging.getLogger("warden.inventory")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_assets = Table(
    "assets",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("file_id", String(255), nullable=False),
    Column("name", String(255)),
    Column("path", String(255)),
    Column("url", String(255), nullable=False),
    Column("type", String(50), nullable=False, server_default="file"),
    Column("size", BigInteger, nullable=False, server_default="100"),  # KB
    Column("hosted_at", String(32)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Column("deleted_at", String(32)),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AssetStore:
    def __init__(self, db_url: Optional[str] = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    def create_asset(self, asset: Asset) -> int:
        """Insert a new asset and return its assigned database ID."""
        now = _now_iso()
        with self.engine.begin() as conn:
            result = conn.execute(
                _assets.insert().values(
                    file_id=asset.file_id,
                    name=asset.name,
                    path=asset.path,
                    url=asset.url,
                    type=asset.type,
                    size=asset.size,
                    hosted_at=asset.hosted_at,
                    created_at=now,
                    updated_at=now,
                )
            )
            asset_id = result.inserted_primary_key[0]
        logger.info("Asset %s created (file_id=%s)", asset_id, asset.file_id)
        return asset_id

    def get_asset(self, asset_id: int) -> Optional[Asset]:
        """Fetch a single active asset by ID. Returns None if missing or deleted."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _assets.select().where((_assets.c.id == asset_id) & (_assets.c.deleted_at.is_(None)))
            ).fetchone()
        return _row_to_asset(row) if row is not None else None

    def list_assets(self) -> list[Asset]:
        """Return all active assets, newest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _assets.select().where(_assets.c.deleted_at.is_(None)).order_by(_assets.c.id.desc())
            ).fetchall()
        return [_row_to_asset(r) for r in rows]

    def soft_delete_asset(self, asset_id: int) -> bool:
        """Mark an asset deleted. Returns False if it was missing or already deleted."""
        now = _now_iso()
        with self.engine.begin() as conn:
            result = conn.execute(
                _assets.update()
                .where((_assets.c.id == asset_id) & (_assets.c.deleted_at.is_(None)))
                .values(deleted_at=now, updated_at=now)
            )
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern -- DB row -> domain dataclass)
# ---------------------------------------------------------------------------


def _row_to_asset(row) -> Asset:
    return Asset(
        id=row.id,
        file_id=row.file_id,
        name=row.name,
        path=row.path,
        url=row.url,
        type=row.type,
        size=row.size,
        hosted_at=row.hosted_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
        deleted_at=row.deleted_at,
    )
