"""
Organization account endpoints.

POST /api/organization/signup
POST /api/organization/login               - by email or organizationId
POST /api/organization/verify-email
POST /api/organization/resend-verification
GET  /api/organization/profile             - current organization (bearer)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from dependencies import get_auth_service, get_current_claims
from routes.presenters import (
    login_response,
    resend_response,
    signup_response,
    verify_response,
)
from schemas.dto.requests.auth import (
    OrganizationLoginRequest,
    OrganizationSignupRequest,
    ResendVerificationRequest,
    VerifyEmailRequest,
)
from schemas.dto.responses.auth import (
    AccountProfileResponse,
    LoginResponse,
    ResendResponse,
    SignupResponse,
    VerifyEmailResponse,
)
from schemas.dto.responses.common import ERROR_RESPONSES
from schemas.models.account import AccountKind
from services.auth_service import AuthService
from services.token_service import SessionClaims

router = APIRouter(
    prefix="/api/organization", tags=["organization"], responses=ERROR_RESPONSES
)


@router.post(
    "/signup",
    status_code=201,
    response_model=SignupResponse,
    response_model_exclude_none=True,
)
async def signup(
    body: OrganizationSignupRequest, auth: AuthService = Depends(get_auth_service)
) -> SignupResponse:
    result = await auth.signup_organization(body)
    return signup_response(
        result,
        "Organization registered successfully. Please verify your email with "
        "the OTP sent to your email.",
    )


@router.post("/login", response_model=LoginResponse, response_model_exclude_none=True)
async def login(
    body: OrganizationLoginRequest, auth: AuthService = Depends(get_auth_service)
) -> LoginResponse:
    result = await auth.login_organization(
        body.password, email=body.email, organization_id=body.organization_id
    )
    return login_response(result)


@router.post("/verify-email", response_model=VerifyEmailResponse)
async def verify_email(
    body: VerifyEmailRequest, auth: AuthService = Depends(get_auth_service)
) -> VerifyEmailResponse:
    result = await auth.verify_email(
        AccountKind.ORGANIZATION, body.email, otp=body.otp, token=body.token
    )
    return verify_response(result)


@router.post(
    "/resend-verification",
    response_model=ResendResponse,
    response_model_exclude_none=True,
)
async def resend_verification(
    body: ResendVerificationRequest, auth: AuthService = Depends(get_auth_service)
) -> ResendResponse:
    result = await auth.resend_verification(AccountKind.ORGANIZATION, body.email)
    return resend_response(result)


@router.get(
    "/profile", response_model=AccountProfileResponse, response_model_exclude_none=True
)
async def profile(
    claims: SessionClaims = Depends(get_current_claims),
    auth: AuthService = Depends(get_auth_service),
) -> AccountProfileResponse:
    account = await auth.get_profile(claims, kind=AccountKind.ORGANIZATION)
    return AccountProfileResponse.from_account(account)
