"""
Response DTOs for authentication endpoints.

AccountProfileResponse - public view of an account (no password, no challenge)
SignupResponse         - POST signup endpoints (201)
LoginResponse          - POST login endpoints (200)
VerifiedAccount        - account block inside VerifyEmailResponse
VerifyEmailResponse    - POST verify-email (200)
ResendResponse         - POST resend-verification (200)
ProviderStatus         - entry in GET /api/auth/providers/status
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict

from schemas.models.account import AccountDoc, OrganizationProfile


class AccountProfileResponse(BaseModel):
    """Public account shape returned by login, signup, profile and OAuth."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    kind: str
    role: str
    email: str
    verified: bool
    providers: list[str]
    profile_picture: Optional[str] = None

    # user fields
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    issue_count: Optional[int] = None
    points: Optional[int] = None

    # organization fields
    organization_id: Optional[str] = None
    organization_name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[int] = None
    transport_types: Optional[list[str]] = None
    issues_solved: Optional[int] = None

    @classmethod
    def from_account(cls, account: AccountDoc) -> "AccountProfileResponse":
        base = dict(
            id=str(account.id),
            kind=account.kind,
            role=account.role,
            email=account.email,
            verified=account.verified,
            providers=list(account.providers),
            profile_picture=account.profile_picture,
        )
        profile = account.profile
        if isinstance(profile, OrganizationProfile):
            return cls(
                **base,
                organization_id=account.handle,
                organization_name=profile.organization_name,
                address=profile.address,
                phone=profile.phone,
                transport_types=list(profile.transport_types),
                issues_solved=profile.issues_solved,
            )
        return cls(
            **base,
            username=account.handle,
            first_name=profile.first_name,
            last_name=profile.last_name,
            issue_count=profile.issue_count,
            points=profile.points,
        )


class SignupResponse(BaseModel):
    """Response body for signup (201).

    otp and verification_link are only present outside production.
    """

    model_config = ConfigDict(populate_by_name=True)

    message: str
    account: AccountProfileResponse
    requires_verification: bool = True
    verification_sent: bool
    otp: Optional[str] = None
    verification_link: Optional[str] = None


class LoginResponse(BaseModel):
    """Response body for login (200)."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = "Login successful"
    token: str
    account: AccountProfileResponse


class VerifiedAccount(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    email: str
    verified: bool


class VerifyEmailResponse(BaseModel):
    """Response body for verify-email (200)."""

    model_config = ConfigDict(populate_by_name=True)

    message: str
    account: VerifiedAccount


class ResendResponse(BaseModel):
    """Response body for resend-verification (200)."""

    model_config = ConfigDict(populate_by_name=True)

    message: str
    verification_sent: bool
    otp: Optional[str] = None
    verification_link: Optional[str] = None


class ProviderStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    enabled: bool
    callback_url: str
