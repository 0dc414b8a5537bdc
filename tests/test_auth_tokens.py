"""Unit tests for auth/tokens.py -- password hashing and bearer token helpers."""

import pytest

from auth.tokens import generate_token, hash_password, hash_token, verify_password


class TestPasswords:
    def test_hash_is_salted_and_verifies(self) -> None:
        first = hash_password("secret123")
        second = hash_password("secret123")

        assert first != second
        assert verify_password("secret123", first)
        assert verify_password("secret123", second)

    def test_wrong_password_does_not_verify(self) -> None:
        assert not verify_password("wrong", hash_password("secret123"))

    def test_malformed_hash_does_not_verify(self) -> None:
        assert verify_password("secret123", "not-a-bcrypt-hash") is False

    @pytest.mark.parametrize("password", ["p" * 100, "é" * 40, "p" * 255])
    def test_passwords_past_72_bytes_hash_and_verify(self, password: str) -> None:
        hashed = hash_password(password)

        assert verify_password(password, hashed)
        assert not verify_password(password[:-1], hashed)

    def test_every_character_counts(self) -> None:
        hashed = hash_password("p" * 72 + "a")
        assert not verify_password("p" * 72 + "b", hashed)


class TestTokens:
    def test_generate_token_format_and_uniqueness(self) -> None:
        tokens = {generate_token() for _ in range(50)}

        assert len(tokens) == 50
        for token in tokens:
            assert token.startswith("wd_")
            assert len(token) == 3 + 64

    def test_hash_token_is_deterministic_hmac(self) -> None:
        token = generate_token()

        assert hash_token(token) == hash_token(token)
        assert hash_token(token) != token
        assert len(hash_token(token)) == 64
