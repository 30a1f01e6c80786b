"""
Unit tests for VerificationService.

Time is driven by FakeClock; the defaults give a 10 minute OTP, a 24 hour
link token, 5 attempts and a 60 second cooldown.
"""

import pytest

from errors import (
    AlreadyVerifiedError,
    ExpiredCodeError,
    InvalidCodeError,
    MissingCredentialError,
    NotFoundError,
    RateLimitedError,
    TooSoonError,
)
from services.verification_service import VerificationOutcome


# ── Helpers ───────────────────────────────────────────────────────────────────


async def _pending_account(account_repo, verification_service, make_user):
    account = await account_repo.create(make_user())
    issued = await verification_service.issue_challenge(account.id)
    return account, issued


def _wrong(otp: str) -> str:
    return "100000" if otp != "100000" else "100001"


# ── Challenge issuance ────────────────────────────────────────────────────────


class TestBuildChallenge:
    def test_stores_hashes_not_plaintext(self, verification_service, clock):
        issued, stored = verification_service.build_challenge()
        assert stored.otp_hash != issued.otp
        assert stored.token_hash != issued.token
        assert len(issued.otp) == 6
        assert len(issued.token) == 64

    def test_expiry_windows(self, verification_service, clock):
        issued, stored = verification_service.build_challenge()
        assert (issued.otp_expires_at - clock.now).total_seconds() == 600
        assert (issued.token_expires_at - clock.now).total_seconds() == 86400
        assert stored.attempts == 0


class TestIssueChallenge:
    async def test_persists_challenge(
        self, account_repo, verification_service, make_user
    ):
        account, _ = await _pending_account(account_repo, verification_service, make_user)
        reloaded = await account_repo.find_by_id(account.id)
        assert reloaded.challenge is not None

    async def test_refuses_verified_account(
        self, account_repo, verification_service, make_user
    ):
        account = await account_repo.create(make_user(verified=True))
        with pytest.raises(AlreadyVerifiedError):
            await verification_service.issue_challenge(account.id)

    async def test_unknown_account(self, verification_service):
        with pytest.raises(NotFoundError):
            await verification_service.issue_challenge("64b7f0c2a1b2c3d4e5f60718")


# ── Verify by OTP ─────────────────────────────────────────────────────────────


class TestVerifyOtp:
    async def test_correct_otp_verifies_and_clears_challenge(
        self, account_repo, verification_service, make_user
    ):
        account, issued = await _pending_account(
            account_repo, verification_service, make_user
        )
        outcome = await verification_service.verify(account.id, otp=issued.otp)
        assert outcome is VerificationOutcome.VERIFIED
        reloaded = await account_repo.find_by_id(account.id)
        assert reloaded.verified
        assert reloaded.challenge is None

    async def test_second_verify_is_already_verified(
        self, account_repo, verification_service, make_user
    ):
        account, issued = await _pending_account(
            account_repo, verification_service, make_user
        )
        await verification_service.verify(account.id, otp=issued.otp)
        outcome = await verification_service.verify(account.id, otp=issued.otp)
        assert outcome is VerificationOutcome.ALREADY_VERIFIED

    async def test_missing_credential(self, verification_service):
        with pytest.raises(MissingCredentialError):
            await verification_service.verify("anything", otp="  ", token=None)

    async def test_wrong_otp_counts_attempts(
        self, account_repo, verification_service, make_user
    ):
        account, issued = await _pending_account(
            account_repo, verification_service, make_user
        )
        with pytest.raises(InvalidCodeError) as exc:
            await verification_service.verify(account.id, otp=_wrong(issued.otp))
        assert exc.value.context["attempts_remaining"] == 4
        reloaded = await account_repo.find_by_id(account.id)
        assert reloaded.challenge.attempts == 1
        assert not reloaded.verified

    async def test_expired_otp(
        self, account_repo, verification_service, make_user, clock
    ):
        account, issued = await _pending_account(
            account_repo, verification_service, make_user
        )
        clock.advance(minutes=10, seconds=1)
        with pytest.raises(ExpiredCodeError):
            await verification_service.verify(account.id, otp=issued.otp)

    async def test_otp_valid_at_last_second(
        self, account_repo, verification_service, make_user, clock
    ):
        account, issued = await _pending_account(
            account_repo, verification_service, make_user
        )
        clock.advance(minutes=9, seconds=59)
        outcome = await verification_service.verify(account.id, otp=issued.otp)
        assert outcome is VerificationOutcome.VERIFIED

    async def test_no_pending_challenge(
        self, account_repo, verification_service, make_user
    ):
        account = await account_repo.create(make_user())
        with pytest.raises(InvalidCodeError):
            await verification_service.verify(account.id, otp="123456")

    async def test_otp_checked_when_both_given(
        self, account_repo, verification_service, make_user
    ):
        account, issued = await _pending_account(
            account_repo, verification_service, make_user
        )
        with pytest.raises(InvalidCodeError):
            await verification_service.verify(
                account.id, otp=_wrong(issued.otp), token=issued.token
            )


class TestAttemptLimit:
    async def test_locked_after_max_attempts(
        self, account_repo, verification_service, make_user, clock
    ):
        account, issued = await _pending_account(
            account_repo, verification_service, make_user
        )
        for _ in range(5):
            with pytest.raises(InvalidCodeError):
                await verification_service.verify(account.id, otp=_wrong(issued.otp))
            clock.advance(seconds=1)

        # Even the correct code is refused inside the cooldown
        with pytest.raises(RateLimitedError) as exc:
            await verification_service.verify(account.id, otp=issued.otp)
        assert exc.value.context["retry_after"] >= 1

    async def test_counter_resets_after_cooldown(
        self, account_repo, verification_service, make_user, clock
    ):
        account, issued = await _pending_account(
            account_repo, verification_service, make_user
        )
        for _ in range(5):
            with pytest.raises(InvalidCodeError):
                await verification_service.verify(account.id, otp=_wrong(issued.otp))

        clock.advance(seconds=61)
        outcome = await verification_service.verify(account.id, otp=issued.otp)
        assert outcome is VerificationOutcome.VERIFIED

    async def test_wrong_code_after_cooldown_starts_over(
        self, account_repo, verification_service, make_user, clock
    ):
        account, issued = await _pending_account(
            account_repo, verification_service, make_user
        )
        for _ in range(3):
            with pytest.raises(InvalidCodeError):
                await verification_service.verify(account.id, otp=_wrong(issued.otp))

        clock.advance(seconds=61)
        with pytest.raises(InvalidCodeError) as exc:
            await verification_service.verify(account.id, otp=_wrong(issued.otp))
        assert exc.value.context["attempts_remaining"] == 4


# ── Verify by token ───────────────────────────────────────────────────────────


class TestVerifyToken:
    async def test_token_verifies_after_otp_expired(
        self, account_repo, verification_service, make_user, clock
    ):
        account, issued = await _pending_account(
            account_repo, verification_service, make_user
        )
        clock.advance(hours=2)
        outcome = await verification_service.verify(account.id, token=issued.token)
        assert outcome is VerificationOutcome.VERIFIED

    async def test_expired_token(
        self, account_repo, verification_service, make_user, clock
    ):
        account, issued = await _pending_account(
            account_repo, verification_service, make_user
        )
        clock.advance(hours=24, seconds=1)
        with pytest.raises(ExpiredCodeError):
            await verification_service.verify(account.id, token=issued.token)

    async def test_wrong_token(self, account_repo, verification_service, make_user):
        account, _ = await _pending_account(account_repo, verification_service, make_user)
        with pytest.raises(InvalidCodeError):
            await verification_service.verify(account.id, token="f" * 64)


# ── Resend ────────────────────────────────────────────────────────────────────


class TestResend:
    async def test_too_soon_halfway_through(
        self, account_repo, verification_service, make_user, clock
    ):
        account, _ = await _pending_account(account_repo, verification_service, make_user)
        clock.advance(minutes=5)
        with pytest.raises(TooSoonError) as exc:
            await verification_service.resend_challenge(account.id)
        assert exc.value.context["retry_after"] == 240

    async def test_allowed_in_last_minute(
        self, account_repo, verification_service, make_user, clock
    ):
        account, first = await _pending_account(
            account_repo, verification_service, make_user
        )
        clock.advance(minutes=9, seconds=31)
        second = await verification_service.resend_challenge(account.id)
        assert second.otp_expires_at > first.otp_expires_at
        assert (second.otp_expires_at - clock.now).total_seconds() == 600

    async def test_resend_invalidates_previous_codes(
        self, account_repo, verification_service, make_user, clock
    ):
        account, first = await _pending_account(
            account_repo, verification_service, make_user
        )
        clock.advance(minutes=11)
        second = await verification_service.resend_challenge(account.id)
        if first.otp != second.otp:
            with pytest.raises(InvalidCodeError):
                await verification_service.verify(account.id, otp=first.otp)
        with pytest.raises(InvalidCodeError):
            await verification_service.verify(account.id, token=first.token)
        outcome = await verification_service.verify(account.id, otp=second.otp)
        assert outcome is VerificationOutcome.VERIFIED

    async def test_allowed_without_challenge(
        self, account_repo, verification_service, make_user
    ):
        account = await account_repo.create(make_user())
        issued = await verification_service.resend_challenge(account.id)
        assert len(issued.otp) == 6

    async def test_verified_account_refused(
        self, account_repo, verification_service, make_user
    ):
        account = await account_repo.create(make_user(verified=True))
        with pytest.raises(AlreadyVerifiedError):
            await verification_service.resend_challenge(account.id)
