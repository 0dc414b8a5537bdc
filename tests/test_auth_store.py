"""Unit tests for auth/store.py -- UserStore persistence.

Covers:
- emails are normalized on write and matched case-insensitively
- the partial unique index blocks duplicates among active users only
- create_user_with_token() is all-or-nothing
- token revocation guards (single and per-user)
"""

import pytest
from sqlalchemy.exc import IntegrityError

from auth.models import SessionToken, User
from auth.store import UserStore, normalize_email


def _user(email: str = "ann@x.com") -> User:
    return User(name="Ann", email=email, hashed_password="$2b$12$notarealhash")


def _token(token_hash: str, user_id: int = 0) -> SessionToken:
    return SessionToken(user_id=user_id, name="auth-token", token_hash=token_hash)


class TestUsers:
    def test_normalize_email(self) -> None:
        assert normalize_email("  Ann@X.Com ") == "ann@x.com"

    def test_create_and_lookup_case_insensitive(self, user_store: UserStore) -> None:
        user_id, _ = user_store.create_user_with_token(_user("Ann@X.com"), _token("h1"))

        found = user_store.get_by_email("ANN@x.COM")

        assert found is not None
        assert found.id == user_id
        assert found.email == "ann@x.com"
        assert found.created_at and found.updated_at
        assert found.is_active

    def test_duplicate_active_email_violates_index(self, user_store: UserStore) -> None:
        user_store.create_user_with_token(_user(), _token("h1"))

        with pytest.raises(IntegrityError):
            user_store.create_user_with_token(_user("ANN@x.com"), _token("h2"))

    def test_soft_deleted_email_is_free_again(self, user_store: UserStore) -> None:
        user_id, _ = user_store.create_user_with_token(_user(), _token("h1"))
        assert user_store.soft_delete_user(user_id) is True

        assert user_store.email_taken("ann@x.com") is False
        assert user_store.get_by_email("ann@x.com") is None
        # Soft-deleted rows are still readable by id.
        assert user_store.get_by_id(user_id).deleted_at is not None

        user_store.create_user_with_token(_user(), _token("h2"))
        assert user_store.count_users() == 1
        assert user_store.count_users(include_deleted=True) == 2

    def test_soft_delete_twice_returns_false(self, user_store: UserStore) -> None:
        user_id, _ = user_store.create_user_with_token(_user(), _token("h1"))
        user_store.soft_delete_user(user_id)
        assert user_store.soft_delete_user(user_id) is False

    def test_failed_token_insert_rolls_back_user(self, user_store: UserStore) -> None:
        user_store.create_user_with_token(_user("ann@x.com"), _token("same"))

        with pytest.raises(IntegrityError):
            user_store.create_user_with_token(_user("bob@x.com"), _token("same"))

        assert user_store.get_by_email("bob@x.com") is None
        assert user_store.count_users(include_deleted=True) == 1


class TestTokens:
    def test_create_token_links_to_user(self, user_store: UserStore) -> None:
        user_id, first_id = user_store.create_user_with_token(_user(), _token("h1"))
        second_id = user_store.create_token(_token("h2", user_id=user_id))

        tokens = user_store.list_tokens(user_id)

        assert [t.id for t in tokens] == [second_id, first_id]
        assert all(t.user_id == user_id for t in tokens)

    def test_get_token_by_hash(self, user_store: UserStore) -> None:
        user_id, token_id = user_store.create_user_with_token(_user(), _token("h1"))

        token = user_store.get_token_by_hash("h1")

        assert token.id == token_id
        assert token.user_id == user_id
        assert token.is_active
        assert user_store.get_token_by_hash("missing") is None

    def test_revoke_token_only_once(self, user_store: UserStore) -> None:
        _, token_id = user_store.create_user_with_token(_user(), _token("h1"))

        assert user_store.revoke_token(token_id) is True
        assert user_store.revoke_token(token_id) is False
        assert user_store.get_token_by_hash("h1").is_active is False

    def test_revoke_user_tokens_counts_active_only(self, user_store: UserStore) -> None:
        user_id, first_id = user_store.create_user_with_token(_user(), _token("h1"))
        user_store.create_token(_token("h2", user_id=user_id))
        user_store.create_token(_token("h3", user_id=user_id))
        user_store.revoke_token(first_id)

        assert user_store.revoke_user_tokens(user_id) == 2
        assert user_store.list_tokens(user_id) == []
        assert len(user_store.list_tokens(user_id, active_only=False)) == 3

    def test_touch_token_sets_last_used(self, user_store: UserStore) -> None:
        _, token_id = user_store.create_user_with_token(_user(), _token("h1"))

        user_store.touch_token(token_id)

        assert user_store.get_token_by_hash("h1").last_used_at is not None

    def test_ping(self, user_store: UserStore) -> None:
        assert user_store.ping() is True
