"""
tests/conftest.py -- Shared test fixtures for Warden tests.

This module provides:
  - user_store / asset_store: fresh in-memory stores for unit tests
  - service: AuthService over the in-memory user_store
  - _make_test_stores(): named shared-memory DBs for the HTTP client
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient against the real app with isolated stores

Design: the HTTP fixture uses named shared-memory SQLite URIs (not plain
:memory:) because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread.

Environment must be set before any project import so get_settings()
auto-generates SECRET_KEY, accepts the TestClient host and disables rate
limits.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before any auth/core/api import (get_settings() is cached).
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')
os.environ.setdefault("ADMIN_EMAILS", '["ops@example.com"]')

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.service import AuthService
from auth.store import UserStore
from inventory.store import AssetStore

# ---------------------------------------------------------------------------
# Unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def asset_store() -> Generator[AssetStore, None, None]:
    store = AssetStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def service(user_store: UserStore) -> AuthService:
    return AuthService(user_store, token_name="auth-token")


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, AssetStore]:
    """Create isolated named shared-memory SQLite stores for one test module.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    url = f"sqlite:///file:test_warden_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=url), AssetStore(db_url=url)


def _patch_lifespan(user_store: UserStore, asset_store: AssetStore):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.asset_store = asset_store
        app.state.auth_service = AuthService(user_store, token_name="auth-token")
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request) -> Generator[TestClient, None, None]:
    """Yield a TestClient whose app uses stores private to the calling module."""
    user_store, asset_store = _make_test_stores(request.module.__name__.rsplit(".", 1)[-1])
    app.router.lifespan_context = _patch_lifespan(user_store, asset_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client

    asset_store.close()
    user_store.close()


def register(client: TestClient, email: str, password: str = "secret123", name: str = "Ann") -> tuple[dict, str]:
    """Register through the API and return (user_json, token)."""
    resp = client.post(
        "/api/register",
        json={"name": name, "email": email, "password": password, "password_confirmation": password},
    )
    assert resp.status_code == 201, resp.text
    data = resp.json()
    return data["user"], data["token"]


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
