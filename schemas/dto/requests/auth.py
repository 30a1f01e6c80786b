"""
Request DTOs for authentication endpoints.

UserSignupRequest          - POST /api/auth/signup, /signup-user, /signup-admin
OrganizationSignupRequest  - POST /api/organization/signup
LoginRequest               - POST /api/auth/login, /login-user, /login-admin
OrganizationLoginRequest   - POST /api/auth/login-org, /api/organization/login
VerifyEmailRequest         - POST */verify-email
ResendVerificationRequest  - POST */resend-verification

Field names accept the camelCase spelling the mobile client sends
(``firstName``, ``organizationId`` …) as well as snake_case.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class UserSignupRequest(BaseModel):
    """Request body for user and admin signup."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    first_name: str = Field(
        min_length=1, validation_alias=AliasChoices("first_name", "firstName")
    )
    last_name: str = Field(
        min_length=1, validation_alias=AliasChoices("last_name", "lastName")
    )
    username: str = Field(min_length=1)
    email: str = Field(min_length=1)
    # Not stripped: whitespace is significant in passwords
    password: str = Field(min_length=1)


class OrganizationSignupRequest(BaseModel):
    """Request body for POST /api/organization/signup."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    organization_name: str = Field(
        min_length=1,
        validation_alias=AliasChoices("organization_name", "organizationName"),
    )
    address: str = Field(min_length=1)
    organization_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("organization_id", "organizationId"),
    )
    email: str = Field(min_length=1)
    phone: Any
    transport_types: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("transport_types", "transportTypes"),
    )
    password: str = Field(min_length=1)


class LoginRequest(BaseModel):
    """Request body for user and admin login."""

    model_config = ConfigDict(populate_by_name=True)

    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class OrganizationLoginRequest(BaseModel):
    """Request body for organization login.

    Either ``email`` or ``organization_id`` identifies the account; email wins
    when both are present.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    organization_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("organization_id", "organizationId"),
    )
    password: str = Field(min_length=1)


class VerifyEmailRequest(BaseModel):
    """Request body for email verification.

    Exactly one of ``otp`` (6-digit code) or ``token`` (link token) is expected;
    the OTP is checked when both are sent.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: str = Field(min_length=1)
    otp: Optional[str] = None
    token: Optional[str] = None


class ResendVerificationRequest(BaseModel):
    """Request body for resending the verification code."""

    model_config = ConfigDict(populate_by_name=True)

    email: str = Field(min_length=1)
