"""
TokenService - stateless session JWTs.

RS256 when a key pair is configured, HS256 with JWT_SECRET otherwise. Tokens
carry sub/account_id/email/role and expire after session_ttl_seconds. There
are no refresh tokens: clients log in again once a session expires.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from config import JWTSettings
from errors import InvalidSessionError, SessionExpiredError
from shared.datetime_utils import Clock, utcnow

_REQUIRED_CLAIMS = ["sub", "exp", "iat", "iss", "aud"]


@dataclass(frozen=True)
class SessionClaims:
    account_id: str
    email: str
    role: str
    issued_at: datetime
    expires_at: datetime


class TokenService:
    def __init__(self, settings: JWTSettings, clock: Clock = utcnow) -> None:
        if not settings.is_configured:
            raise RuntimeError(
                "JWT_SECRET must be set when RS256 keys are not provided"
            )
        self._settings = settings
        self._clock = clock
        if settings.use_rs256:
            # Keys provided via env may carry literal \n sequences
            self._signing_key = settings.jwt_private_key.replace("\\n", "\n")
            self._verify_key = settings.jwt_public_key.replace("\\n", "\n")
            self._algorithm = "RS256"
        else:
            self._signing_key = settings.jwt_secret
            self._verify_key = settings.jwt_secret
            self._algorithm = "HS256"

    def issue(self, account_id: str, email: str, role: str) -> str:
        now = self._clock()
        claims = {
            "iss": self._settings.jwt_issuer,
            "aud": self._settings.jwt_audience,
            "sub": str(account_id),
            "account_id": str(account_id),
            "email": email,
            "role": role,
            "iat": int(now.timestamp()),
            "exp": int(
                (now + timedelta(seconds=self._settings.session_ttl_seconds)).timestamp()
            ),
        }
        return jwt.encode(claims, self._signing_key, algorithm=self._algorithm)

    def authenticate(self, token: str) -> SessionClaims:
        """Decode and validate *token*.

        Raises:
            SessionExpiredError: the token is past its expiry.
            InvalidSessionError: bad signature, shape or claims.
        """
        if not token:
            raise InvalidSessionError("Authentication required")
        try:
            claims = jwt.decode(
                token,
                self._verify_key,
                algorithms=[self._algorithm],
                audience=self._settings.jwt_audience,
                issuer=self._settings.jwt_issuer,
                options={
                    "require": _REQUIRED_CLAIMS,
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.PyJWTError as e:
            raise InvalidSessionError("Invalid token") from e

        # Expiry is checked against the injected clock rather than wall time
        expires_at = datetime.fromtimestamp(claims["exp"], tz=timezone.utc)
        if self._clock() >= expires_at:
            raise SessionExpiredError("Token expired")

        if not claims.get("role") or not claims.get("email"):
            raise InvalidSessionError("Invalid token")

        return SessionClaims(
            account_id=str(claims.get("account_id") or claims["sub"]),
            email=claims["email"],
            role=claims["role"],
            issued_at=datetime.fromtimestamp(claims["iat"], tz=timezone.utc),
            expires_at=expires_at,
        )
