"""Service result → response DTO conversions shared by the auth routers."""

from __future__ import annotations

from schemas.dto.responses.auth import (
    AccountProfileResponse,
    LoginResponse,
    ResendResponse,
    SignupResponse,
    VerifiedAccount,
    VerifyEmailResponse,
)
from services.auth_service import LoginResult, ResendResult, SignupResult, VerifyResult
from services.verification_service import VerificationOutcome


def signup_response(result: SignupResult, message: str) -> SignupResponse:
    return SignupResponse(
        message=message,
        account=AccountProfileResponse.from_account(result.account),
        requires_verification=True,
        verification_sent=result.verification_sent,
        otp=result.otp,
        verification_link=result.verification_link,
    )


def login_response(result: LoginResult) -> LoginResponse:
    return LoginResponse(
        token=result.token,
        account=AccountProfileResponse.from_account(result.account),
    )


def verify_response(result: VerifyResult) -> VerifyEmailResponse:
    if result.outcome == VerificationOutcome.ALREADY_VERIFIED:
        message = "Email already verified"
    else:
        message = "Email verified successfully"
    return VerifyEmailResponse(
        message=message,
        account=VerifiedAccount(
            id=str(result.account.id), email=result.account.email, verified=True
        ),
    )


def resend_response(result: ResendResult) -> ResendResponse:
    return ResendResponse(
        message="Verification OTP sent successfully. Please check your email.",
        verification_sent=result.verification_sent,
        otp=result.otp,
        verification_link=result.verification_link,
    )
