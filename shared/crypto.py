"""
Cryptographic helpers - password hashing and challenge hashing.

Uses argon2 for passwords (via argon2-cffi) and SHA-256 for verification
codes and tokens, which are stored hashed so the plaintext never reaches the
database.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

_password_hasher = PasswordHasher()


def hash_password(plain_password: str) -> str:
    """Hash *plain_password* with argon2id.

    Returns:
        Argon2 hash string (includes algorithm parameters and salt).
    """
    return _password_hasher.hash(plain_password)


def verify_password(plain_password: str, password_hash: Optional[str]) -> bool:
    """Verify *plain_password* against an argon2 *password_hash*.

    Returns:
        ``True`` if the password matches, ``False`` for a wrong password, a
        malformed hash, or an account without a password.
    """
    if not password_hash:
        return False
    try:
        return _password_hasher.verify(password_hash, plain_password)
    except (VerificationError, InvalidHashError):
        return False


def hash_token(token: str) -> str:
    """Return the hex-encoded SHA-256 digest of *token*."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def token_matches(candidate: str, stored_hash: Optional[str]) -> bool:
    """Constant-time comparison of a plaintext candidate against a stored hash."""
    if not stored_hash:
        return False
    return hmac.compare_digest(hash_token(candidate), stored_hash)
