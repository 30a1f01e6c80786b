"""
Random code, token and handle generators - pure functions.

All generators use the ``secrets`` module.
"""

from __future__ import annotations

import re
import secrets

OTP_MIN = 100000
OTP_MAX = 999999

_HANDLE_UNSAFE = re.compile(r"[^a-zA-Z0-9._-]+")


def generate_otp_code() -> str:
    """Generate a uniformly random 6-digit OTP in the range 100000–999999."""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


def generate_verification_token(num_bytes: int = 32) -> str:
    """Generate a hex verification token from *num_bytes* random bytes.

    The result is ``2 * num_bytes`` lowercase hex characters.
    """
    return secrets.token_hex(num_bytes)


def generate_issue_code() -> str:
    """Generate a 6-digit public issue reference."""
    return generate_otp_code()


def handle_from_email(email: str) -> str:
    """Derive a handle candidate from the local part of *email*.

    Characters outside ``[a-zA-Z0-9._-]`` are dropped; an empty result falls
    back to ``"user"``.
    """
    local_part = email.split("@", 1)[0]
    return _HANDLE_UNSAFE.sub("", local_part) or "user"


def handle_candidates(base: str, max_sequential: int = 50):
    """Yield handle candidates for *base*: ``base``, ``base1``, ``base2`` …

    After *max_sequential* numbered attempts a random hex suffix is used so the
    sequence never runs out.
    """
    yield base
    for n in range(1, max_sequential + 1):
        yield f"{base}{n}"
    while True:
        yield f"{base}-{secrets.token_hex(3)}"
