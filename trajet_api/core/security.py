"""Security helpers (hashing, random secrets and bearer tokens)."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import hashlib
import secrets

import jwt
from argon2 import PasswordHasher, exceptions as argon_exc

from .config import get_settings

_ph = PasswordHasher()
_JWT_ALGORITHM = "HS256"
RESET_TOKEN_BYTES = 20


# -------------------------------------- passwords --------------------------------------
def hash_password(password: str) -> str:
    """Create a salted Argon2 hash."""
    return _ph.hash(password)


def verify_password(password: str, stored_hash: str | None) -> bool:
    if not stored_hash:
        return False
    try:
        return _ph.verify(stored_hash, password)
    except (argon_exc.VerifyMismatchError, argon_exc.VerificationError, argon_exc.InvalidHashError):
        return False


def password_needs_rehash(stored_hash: str) -> bool:
    try:
        return _ph.check_needs_rehash(stored_hash)
    except argon_exc.InvalidHashError:
        return True


# -------------------------------------- random secrets --------------------------------------
def generate_verification_code(length: int) -> str:
    """Fixed-length decimal code, every digit drawn independently."""
    return "".join(secrets.choice("0123456789") for _ in range(max(1, length)))


def generate_reset_token() -> str:
    return secrets.token_hex(RESET_TOKEN_BYTES)


def hash_token(raw_token: str) -> str:
    """One-way digest stored in place of a reset token."""
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def codes_match(expected: str | None, supplied: str | None) -> bool:
    if not expected or not supplied:
        return False
    return secrets.compare_digest(expected.encode("utf-8"), supplied.encode("utf-8"))


# -------------------------------------- bearer tokens --------------------------------------
def issue_access_token(principal_id: str, kind: str, *, expires_in: int | None = None) -> str:
    """Sign a JWT carrying the principal id and kind, with an ``exp`` claim."""
    settings = get_settings()
    ttl = expires_in if expires_in is not None else settings.jwt_expiration_seconds
    payload = {
        "id": principal_id,
        "kind": kind,
        "exp": datetime.now(timezone.utc) + timedelta(seconds=ttl),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=_JWT_ALGORITHM)


def decode_access_token(token: str | None) -> dict | None:
    """Return the claims of a valid token, or None when expired, forged or malformed."""
    if not token:
        return None
    try:
        claims = jwt.decode(token, get_settings().jwt_secret, algorithms=[_JWT_ALGORITHM])
    except jwt.InvalidTokenError:
        return None
    if not claims.get("id"):
        return None
    return claims
