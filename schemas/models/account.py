"""
Account document model.

Maps to the `accounts` MongoDB collection. Users, admins and organizations
share one document shape: verification and session mechanics live on the
account, kind-specific fields live in the `profile` payload, discriminated by
`kind`.

Invariants checked on every load and build:
- `providers` is non-empty, deduplicated, in canonical order
- `local` is in `providers` exactly when `password_hash` is set
- `role` belongs to `kind` and `profile.kind == kind`
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Iterable, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from schemas.models.base import MongoBaseModel


class AccountKind(str, Enum):
    USER = "user"
    ORGANIZATION = "organization"


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"
    ORGANIZATION = "organization"


class AuthProvider(str, Enum):
    LOCAL = "local"
    GOOGLE = "google"
    GITHUB = "github"


PROVIDER_ORDER: tuple[AuthProvider, ...] = (
    AuthProvider.LOCAL,
    AuthProvider.GOOGLE,
    AuthProvider.GITHUB,
)
OAUTH_PROVIDERS: tuple[AuthProvider, ...] = (AuthProvider.GOOGLE, AuthProvider.GITHUB)
PROVIDER_ID_FIELDS: dict[str, str] = {
    AuthProvider.GOOGLE.value: "google_id",
    AuthProvider.GITHUB.value: "github_id",
}

ROLE_KIND: dict[str, str] = {
    Role.USER.value: AccountKind.USER.value,
    Role.ADMIN.value: AccountKind.USER.value,
    Role.ORGANIZATION.value: AccountKind.ORGANIZATION.value,
}

# Counters that increment_counter() may touch, per kind
COUNTER_FIELDS: dict[str, frozenset[str]] = {
    AccountKind.USER.value: frozenset({"issue_count", "points"}),
    AccountKind.ORGANIZATION.value: frozenset({"issues_solved"}),
}


def normalize_providers(values: Iterable[str]) -> list[str]:
    """Deduplicate *values* and return them in canonical provider order."""
    present = {AuthProvider(v).value for v in values}
    return [p.value for p in PROVIDER_ORDER if p.value in present]


class VerificationChallenge(BaseModel):
    """The active email challenge: an OTP and a link token, stored hashed."""

    otp_hash: str
    otp_expires_at: datetime
    token_hash: str
    token_expires_at: datetime
    attempts: int = Field(default=0, ge=0)
    last_attempt_at: Optional[datetime] = None


class UserProfile(BaseModel):
    kind: Literal["user"] = "user"
    first_name: str = ""
    last_name: str = ""
    issue_count: int = 0
    points: int = 0


class OrganizationProfile(BaseModel):
    kind: Literal["organization"] = "organization"
    organization_name: str
    address: str
    phone: Optional[int] = None
    transport_types: list[str] = []
    issues_solved: int = 0


AccountProfile = Annotated[
    Union[UserProfile, OrganizationProfile], Field(discriminator="kind")
]


class AccountDoc(MongoBaseModel):
    """Document model for the `accounts` collection."""

    model_config = ConfigDict(use_enum_values=True)

    kind: AccountKind
    role: Role
    email: str
    handle: str
    handle_key: str
    password_hash: Optional[str] = None
    providers: list[AuthProvider]
    google_id: Optional[str] = None
    github_id: Optional[str] = None
    verified: bool = False
    challenge: Optional[VerificationChallenge] = None
    profile_picture: Optional[str] = None
    profile: AccountProfile
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    @field_validator("providers", mode="before")
    @classmethod
    def _dedupe_providers(cls, v):
        if isinstance(v, str):
            v = v.split(",")
        return normalize_providers(v)

    @model_validator(mode="after")
    def _check_invariants(self) -> "AccountDoc":
        if not self.providers:
            raise ValueError("an account needs at least one auth provider")
        has_local = AuthProvider.LOCAL.value in self.providers
        if has_local != bool(self.password_hash):
            raise ValueError("'local' provider must be present iff a password is set")
        if ROLE_KIND[self.role] != self.kind:
            raise ValueError(f"role {self.role!r} does not belong to kind {self.kind!r}")
        if self.profile.kind != self.kind:
            raise ValueError("profile kind does not match account kind")
        return self

    def provider_id(self, provider: str) -> Optional[str]:
        return getattr(self, PROVIDER_ID_FIELDS[AuthProvider(provider).value])

    @property
    def display_name(self) -> str:
        if isinstance(self.profile, OrganizationProfile):
            return self.profile.organization_name
        return self.profile.first_name or self.handle

    def to_mongo(self) -> dict:
        data = super().to_mongo()
        # Unlinked provider ids are left out so the sparse unique indexes skip them
        for field in PROVIDER_ID_FIELDS.values():
            if data.get(field) is None:
                data.pop(field, None)
        if data["profile"].get("phone", 0) is None:
            data["profile"].pop("phone")
        return data
