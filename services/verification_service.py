"""
VerificationService - email challenge issuance and checking.

A challenge carries two channels sent in the same email: a 6-digit OTP
(10 minutes) and a link token (24 hours). Both are stored as SHA-256 hashes;
the plaintext only exists in the IssuedChallenge handed back to the caller.

OTP attempts are rate limited: once max_attempts wrong codes were entered,
further checks are refused until cooldown_seconds have passed since the last
attempt, after which the counter starts over. Attempt counting is a plain
read-modify-write, so concurrent wrong guesses may be under-counted.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional

from config import AuthSettings
from errors import (
    AlreadyVerifiedError,
    ExpiredCodeError,
    InvalidCodeError,
    MissingCredentialError,
    NotFoundError,
    RateLimitedError,
    TooSoonError,
)
from repositories.account_repository import AccountRepository
from schemas.models.account import AccountDoc, VerificationChallenge
from shared.crypto import hash_token, token_matches
from shared.datetime_utils import Clock, ensure_utc, utcnow
from shared.generators import generate_otp_code, generate_verification_token
from shared.logging import get_logger

log = get_logger(__name__)


class VerificationOutcome(str, Enum):
    VERIFIED = "verified"
    ALREADY_VERIFIED = "already_verified"


@dataclass(frozen=True)
class IssuedChallenge:
    """Plaintext codes for delivery; never persisted."""

    otp: str
    token: str
    otp_expires_at: datetime
    token_expires_at: datetime


class VerificationService:
    def __init__(
        self,
        accounts: AccountRepository,
        settings: AuthSettings,
        clock: Clock = utcnow,
    ) -> None:
        self._accounts = accounts
        self._settings = settings
        self._clock = clock

    def build_challenge(
        self, now: Optional[datetime] = None
    ) -> tuple[IssuedChallenge, VerificationChallenge]:
        """Generate a fresh OTP and token pair.

        Returns the plaintext pair for delivery and the hashed challenge for
        storage.
        """
        now = now or self._clock()
        otp = generate_otp_code()
        token = generate_verification_token()
        otp_expires_at = now + timedelta(seconds=self._settings.otp_ttl_seconds)
        token_expires_at = now + timedelta(
            seconds=self._settings.verification_token_ttl_seconds
        )
        issued = IssuedChallenge(
            otp=otp,
            token=token,
            otp_expires_at=otp_expires_at,
            token_expires_at=token_expires_at,
        )
        stored = VerificationChallenge(
            otp_hash=hash_token(otp),
            otp_expires_at=otp_expires_at,
            token_hash=hash_token(token),
            token_expires_at=token_expires_at,
        )
        return issued, stored

    async def issue_challenge(self, account_id: Any) -> IssuedChallenge:
        """Replace the account's challenge with a fresh one."""
        account = await self._load(account_id)
        if account.verified:
            raise AlreadyVerifiedError("Email is already verified")
        return await self._store_new_challenge(account)

    async def resend_challenge(self, account_id: Any) -> IssuedChallenge:
        """Issue a new challenge, invalidating the previous OTP and token.

        Only allowed when the current OTP is missing, expired, or inside the
        last otp_resend_window_seconds of its life.
        """
        account = await self._load(account_id)
        if account.verified:
            raise AlreadyVerifiedError("Email is already verified")

        now = self._clock()
        challenge = account.challenge
        if challenge is not None:
            remaining = (ensure_utc(challenge.otp_expires_at) - now).total_seconds()
            window = self._settings.otp_resend_window_seconds
            if remaining > window:
                retry_after = int(remaining - window)
                log.info(
                    "verification_resend_too_soon",
                    account_id=str(account.id),
                    retry_after=retry_after,
                )
                raise TooSoonError(
                    "Please wait before requesting a new code",
                    retry_after=retry_after,
                )
        return await self._store_new_challenge(account)

    async def verify(
        self,
        account_id: Any,
        otp: Optional[str] = None,
        token: Optional[str] = None,
    ) -> VerificationOutcome:
        """Check an OTP or link token and verify the account on success.

        The OTP is checked when both are given.

        Raises:
            MissingCredentialError: neither otp nor token given.
            RateLimitedError: too many wrong OTPs within the cooldown.
            InvalidCodeError: wrong code or token.
            ExpiredCodeError: right code or token, but past its expiry.
        """
        otp = (otp or "").strip()
        token = (token or "").strip()
        if not otp and not token:
            raise MissingCredentialError("Provide an OTP or a verification token")

        account = await self._load(account_id)
        if account.verified:
            return VerificationOutcome.ALREADY_VERIFIED

        challenge = account.challenge
        if challenge is None:
            raise InvalidCodeError("No pending verification; request a new code")

        now = self._clock()
        if otp:
            await self._check_otp(account, challenge, otp, now)
        else:
            self._check_token(challenge, token, now)
        return await self._complete(account)

    # ── Internals ────────────────────────────────────────────────────────────

    async def _load(self, account_id: Any) -> AccountDoc:
        account = await self._accounts.find_by_id(account_id)
        if account is None:
            raise NotFoundError("Account not found")
        return account

    async def _store_new_challenge(self, account: AccountDoc) -> IssuedChallenge:
        issued, stored = self.build_challenge()
        stored_ok = await self._accounts.update_verification(
            account.id,
            {"challenge": stored.model_dump()},
            require_unverified=True,
        )
        if not stored_ok:
            raise AlreadyVerifiedError("Email is already verified")
        log.info("verification_challenge_issued", account_id=str(account.id))
        return issued

    async def _check_otp(
        self,
        account: AccountDoc,
        challenge: VerificationChallenge,
        otp: str,
        now: datetime,
    ) -> None:
        max_attempts = self._settings.otp_max_attempts
        cooldown = timedelta(seconds=self._settings.otp_cooldown_seconds)
        attempts = challenge.attempts
        last_attempt_at = ensure_utc(challenge.last_attempt_at)

        if last_attempt_at is not None:
            if now - last_attempt_at < cooldown:
                if attempts >= max_attempts:
                    retry_after = int((last_attempt_at + cooldown - now).total_seconds())
                    log.warning(
                        "verification_rate_limited",
                        account_id=str(account.id),
                        attempts=attempts,
                    )
                    raise RateLimitedError(
                        "Too many attempts. Please try again later.",
                        retry_after=max(retry_after, 1),
                    )
            else:
                attempts = 0

        if not token_matches(otp, challenge.otp_hash):
            attempts += 1
            await self._accounts.update_verification(
                account.id,
                {
                    "challenge.attempts": attempts,
                    "challenge.last_attempt_at": now,
                },
            )
            log.info(
                "verification_invalid_code",
                account_id=str(account.id),
                attempts=attempts,
            )
            raise InvalidCodeError(
                "Invalid verification code",
                attempts_remaining=max(max_attempts - attempts, 0),
            )

        if now > ensure_utc(challenge.otp_expires_at):
            raise ExpiredCodeError("Verification code has expired")

    def _check_token(
        self, challenge: VerificationChallenge, token: str, now: datetime
    ) -> None:
        if not token_matches(token, challenge.token_hash):
            raise InvalidCodeError("Invalid verification token")
        if now > ensure_utc(challenge.token_expires_at):
            raise ExpiredCodeError("Verification link has expired")

    async def _complete(self, account: AccountDoc) -> VerificationOutcome:
        flipped = await self._accounts.update_verification(
            account.id,
            {"verified": True},
            unset_challenge=True,
            require_unverified=True,
        )
        if not flipped:
            # Another request verified it first
            return VerificationOutcome.ALREADY_VERIFIED
        log.info("email_verified", account_id=str(account.id))
        return VerificationOutcome.VERIFIED
