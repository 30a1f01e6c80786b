"""
User and admin authentication endpoints.

POST /api/auth/signup, /signup-user   - user signup
POST /api/auth/signup-admin           - admin signup
POST /api/auth/login, /login-user     - user login
POST /api/auth/login-admin            - admin login
POST /api/auth/login-org              - organization login
POST /api/auth/verify-email           - verify with OTP or link token
POST /api/auth/resend-verification    - send a fresh OTP
GET  /api/auth/profile                - current account (bearer)
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
    LoginRequest,
    OrganizationLoginRequest,
    ResendVerificationRequest,
    UserSignupRequest,
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
from schemas.models.account import AccountKind, Role
from services.auth_service import AuthService
from services.token_service import SessionClaims

router = APIRouter(prefix="/api/auth", tags=["auth"], responses=ERROR_RESPONSES)

_SIGNUP_MESSAGE = (
    "{} created successfully. Please verify your email with the OTP sent to "
    "your email."
)


@router.post(
    "/signup",
    status_code=201,
    response_model=SignupResponse,
    response_model_exclude_none=True,
)
@router.post(
    "/signup-user",
    status_code=201,
    response_model=SignupResponse,
    response_model_exclude_none=True,
)
async def signup_user(
    body: UserSignupRequest, auth: AuthService = Depends(get_auth_service)
) -> SignupResponse:
    result = await auth.signup_user(body, role=Role.USER)
    return signup_response(result, _SIGNUP_MESSAGE.format("User"))


@router.post(
    "/signup-admin",
    status_code=201,
    response_model=SignupResponse,
    response_model_exclude_none=True,
)
async def signup_admin(
    body: UserSignupRequest, auth: AuthService = Depends(get_auth_service)
) -> SignupResponse:
    result = await auth.signup_user(body, role=Role.ADMIN)
    return signup_response(result, _SIGNUP_MESSAGE.format("Admin"))


@router.post("/login", response_model=LoginResponse, response_model_exclude_none=True)
@router.post(
    "/login-user", response_model=LoginResponse, response_model_exclude_none=True
)
async def login_user(
    body: LoginRequest, auth: AuthService = Depends(get_auth_service)
) -> LoginResponse:
    return login_response(await auth.login(body.email, body.password, Role.USER))


@router.post(
    "/login-admin", response_model=LoginResponse, response_model_exclude_none=True
)
async def login_admin(
    body: LoginRequest, auth: AuthService = Depends(get_auth_service)
) -> LoginResponse:
    return login_response(await auth.login(body.email, body.password, Role.ADMIN))


@router.post(
    "/login-org", response_model=LoginResponse, response_model_exclude_none=True
)
async def login_org(
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
        AccountKind.USER, body.email, otp=body.otp, token=body.token
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
    return resend_response(await auth.resend_verification(AccountKind.USER, body.email))


@router.get(
    "/profile", response_model=AccountProfileResponse, response_model_exclude_none=True
)
async def profile(
    claims: SessionClaims = Depends(get_current_claims),
    auth: AuthService = Depends(get_auth_service),
) -> AccountProfileResponse:
    return AccountProfileResponse.from_account(await auth.get_profile(claims))
