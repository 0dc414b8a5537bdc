"""
auth/tokens.py -- Password hashing and opaque bearer-token utilities.

Security design decisions:
  Passwords: bcrypt over a base64 SHA-256 digest of the password. Its cost
       factor makes brute-force on low-entropy secrets expensive, and checkpw
       compares in constant time.
       The _DUMMY_HASH constant enables timing equalization in the login path
       so response time does not reveal whether an email is registered.

  Bearer tokens: secrets.token_hex(32) gives 256 bits of entropy, so a token
       cannot be guessed. We store HMAC-SHA256(SECRET_KEY, raw_token) so lookup
       is an indexed equality match; bcrypt's slowness buys nothing here. The
       raw token is handed to the client once and never persisted.

  SECRET_KEY: sourced from core.config.get_settings(), which validates it at
       startup (see core/config.py).

Layer rule: no imports from api/ or inventory/. Import from core/ is allowed.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets

import bcrypt

from core.config import get_settings

_settings = get_settings()

_TOKEN_PREFIX = "wd_"

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def _prehash(plain: str) -> bytes:
    """Digest the password to 44 ASCII bytes before bcrypt sees it.

    bcrypt rejects input over 72 bytes, and 255 multi-byte characters can run
    far past that. base64(SHA-256) keeps every character significant and never
    contains a NUL byte.
    """
    return base64.b64encode(hashlib.sha256(plain.encode("utf-8")).digest())


def hash_password(plain: str) -> str:
    """Return a bcrypt hash (fresh salt) of the given plaintext password."""
    return bcrypt.hashpw(_prehash(plain), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A malformed stored hash is treated as a mismatch rather than an error.
    """
    try:
        return bcrypt.checkpw(_prehash(plain), hashed.encode("utf-8"))
    except ValueError:
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones. Unknown emails are checked against this hash.
_DUMMY_HASH: str = hash_password("warden_timing_dummy")


def burn_password_check(plain: str) -> None:
    """Run one bcrypt comparison whose result is discarded (timing equalization)."""
    verify_password(plain, _DUMMY_HASH)


# ---------------------------------------------------------------------------
# Bearer tokens
# ---------------------------------------------------------------------------


def generate_token() -> str:
    """Generate a new raw bearer token in the format: wd_<64 hex chars>."""
    return f"{_TOKEN_PREFIX}{secrets.token_hex(32)}"


def hash_token(raw_token: str) -> str:
    """Return HMAC-SHA256(SECRET_KEY, raw_token) as a hex string.

    An attacker holding a DB dump cannot replay stored hashes as tokens and
    cannot test guesses offline without also knowing SECRET_KEY.
    """
    return hmac.new(
        _settings.secret_key.encode(),
        raw_token.encode(),
        hashlib.sha256,
    ).hexdigest()
