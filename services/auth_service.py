"""
AuthService - signup, login, email verification and OAuth sign-in.

Framework-agnostic: routes hand in validated DTOs and get back plain result
objects. Users, admins and organizations go through the same code paths; the
account kind and role select lookups and profile payloads.

Every signup produces an unverified account holding a fresh challenge.
Login is refused for unverified accounts with EmailNotVerifiedError, which
carries requires_verification so clients can route to the OTP screen.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

from config import AppSettings
from errors import (
    EmailDeliveryError,
    EmailNotVerifiedError,
    ForbiddenError,
    InvalidCredentialsError,
    MissingCredentialError,
    NotFoundError,
    ValidationError,
)
from infrastructure.email.protocol import EmailProvider
from infrastructure.oauth_clients import OAuthProfile
from repositories.account_repository import AccountRepository
from schemas.dto.requests.auth import OrganizationSignupRequest, UserSignupRequest
from schemas.dto.responses.auth import ProviderStatus
from schemas.models.account import (
    ROLE_KIND,
    AccountDoc,
    AccountKind,
    AuthProvider,
    OrganizationProfile,
    Role,
    UserProfile,
)
from services.identity_service import IdentityService
from services.token_service import SessionClaims, TokenService
from services.verification_service import (
    IssuedChallenge,
    VerificationOutcome,
    VerificationService,
)
from shared.crypto import hash_password, verify_password
from shared.logging import get_logger
from shared.validators import (
    invalid_transport_types,
    normalize_email,
    normalize_handle,
    normalize_phone,
    validate_email,
    validate_password,
)

log = get_logger(__name__)


@dataclass(frozen=True)
class SignupResult:
    account: AccountDoc
    verification_sent: bool
    # Only set outside production
    otp: Optional[str] = None
    verification_link: Optional[str] = None


@dataclass(frozen=True)
class LoginResult:
    account: AccountDoc
    token: str


@dataclass(frozen=True)
class VerifyResult:
    account: AccountDoc
    outcome: VerificationOutcome


@dataclass(frozen=True)
class ResendResult:
    verification_sent: bool
    otp: Optional[str] = None
    verification_link: Optional[str] = None


class AuthService:
    def __init__(
        self,
        accounts: AccountRepository,
        verification: VerificationService,
        identity: IdentityService,
        tokens: TokenService,
        email_provider: EmailProvider,
        settings: AppSettings,
    ) -> None:
        self._accounts = accounts
        self._verification = verification
        self._identity = identity
        self._tokens = tokens
        self._email = email_provider
        self._settings = settings

    # ── Signup ───────────────────────────────────────────────────────────────

    async def signup_user(
        self, req: UserSignupRequest, role: Role = Role.USER
    ) -> SignupResult:
        """Register a user or admin account.

        Raises:
            ForbiddenError: admin signup is disabled.
            ValidationError: bad email or password.
            DuplicateAccountError: email or username already taken.
            EmailDeliveryError: the code could not be sent (production only).
        """
        if role == Role.ADMIN and not self._settings.auth.admin_signup_enabled:
            raise ForbiddenError("Admin signup is disabled")
        if ROLE_KIND[Role(role).value] != AccountKind.USER.value:
            raise ValueError(f"signup_user cannot create role {role!r}")

        email = self._check_email(req.email)
        self._check_password(req.password)

        draft = dict(
            kind=AccountKind.USER,
            role=role,
            email=email,
            handle=req.username,
            profile=UserProfile(first_name=req.first_name, last_name=req.last_name),
        )
        return await self._signup(draft, req.password, display_name=req.first_name)

    async def signup_organization(self, req: OrganizationSignupRequest) -> SignupResult:
        """Register an organization account.

        Raises:
            ValidationError: bad email, password, phone or transport types.
            DuplicateAccountError: email, organization id or phone taken.
            EmailDeliveryError: the code could not be sent (production only).
        """
        email = self._check_email(req.email)
        self._check_password(req.password)

        phone = normalize_phone(req.phone)
        if phone is None:
            raise ValidationError(
                "Phone number must contain at least 10 digits", field="phone"
            )
        invalid = invalid_transport_types(req.transport_types)
        if invalid:
            raise ValidationError(
                "Invalid transport types: " + ", ".join(invalid),
                field="transport_types",
            )

        draft = dict(
            kind=AccountKind.ORGANIZATION,
            role=Role.ORGANIZATION,
            email=email,
            handle=req.organization_id,
            profile=OrganizationProfile(
                organization_name=req.organization_name,
                address=req.address,
                phone=phone,
                transport_types=list(dict.fromkeys(req.transport_types)),
            ),
        )
        return await self._signup(
            draft, req.password, display_name=req.organization_name
        )

    # ── Login ────────────────────────────────────────────────────────────────

    async def login(self, email: str, password: str, role: Role) -> LoginResult:
        """Password login for users and admins.

        The account must hold exactly *role*; a user cannot log in through the
        admin endpoint and vice versa.
        """
        account = await self._accounts.find_by_email(
            AccountKind.USER.value, email
        )
        if account is None or account.role != Role(role).value:
            log.info("login_failed", reason="no_account", role=Role(role).value)
            raise InvalidCredentialsError("Invalid credentials")
        return await self._finish_login(account, password)

    async def login_organization(
        self,
        password: str,
        *,
        email: Optional[str] = None,
        organization_id: Optional[str] = None,
    ) -> LoginResult:
        """Password login for organizations, by email (preferred) or organization id."""
        kind = AccountKind.ORGANIZATION.value
        if email:
            account = await self._accounts.find_by_email(kind, email)
        elif organization_id:
            account = await self._accounts.find_by_handle(kind, organization_id)
        else:
            raise ValidationError("Email or Organization ID is required")
        if account is None:
            log.info("login_failed", reason="no_account", role=kind)
            raise InvalidCredentialsError("Invalid email or password")
        return await self._finish_login(account, password)

    # ── Verification ─────────────────────────────────────────────────────────

    async def verify_email(
        self,
        kind: AccountKind,
        email: str,
        otp: Optional[str] = None,
        token: Optional[str] = None,
    ) -> VerifyResult:
        if not (otp and otp.strip()) and not (token and token.strip()):
            raise MissingCredentialError("Either OTP or token is required")
        account = await self._require_account(kind, email)
        outcome = await self._verification.verify(account.id, otp=otp, token=token)
        refreshed = await self._accounts.find_by_id(account.id)
        return VerifyResult(account=refreshed or account, outcome=outcome)

    async def resend_verification(
        self, kind: AccountKind, email: str
    ) -> ResendResult:
        account = await self._require_account(kind, email)
        issued = await self._verification.resend_challenge(account.id)
        sent = await self._deliver(account, issued)
        return ResendResult(
            verification_sent=sent, **self._dev_extras(account.email, issued)
        )

    # ── OAuth, sessions and profile ─────────────────────────────────────────

    async def oauth_callback(self, provider: str, profile: OAuthProfile) -> LoginResult:
        account = await self._identity.resolve_oauth_identity(provider, profile)
        await self._accounts.touch_login(account.id)
        token = self._tokens.issue(str(account.id), account.email, account.role)
        log.info(
            "oauth_login_success", account_id=str(account.id), provider=provider
        )
        return LoginResult(account=account, token=token)

    def authenticate(self, token: str) -> SessionClaims:
        return self._tokens.authenticate(token)

    async def get_profile(
        self, claims: SessionClaims, kind: Optional[AccountKind] = None
    ) -> AccountDoc:
        account = await self._accounts.find_by_id(claims.account_id)
        if account is None:
            raise NotFoundError("Account not found")
        if kind is not None and account.kind != AccountKind(kind).value:
            raise ForbiddenError("This endpoint is not available for this account")
        return account

    async def unlink_provider(self, claims: SessionClaims, provider: str) -> AccountDoc:
        return await self._identity.unlink_provider(claims.account_id, provider)

    def provider_status(self) -> dict[str, ProviderStatus]:
        oauth = self._settings.oauth
        backend = self._settings.backend_url
        return {
            AuthProvider.GOOGLE.value: ProviderStatus(
                enabled=oauth.google_enabled,
                callback_url=oauth.google_oauth_redirect_uri
                or f"{backend}/api/auth/google/callback",
            ),
            AuthProvider.GITHUB.value: ProviderStatus(
                enabled=oauth.github_enabled,
                callback_url=oauth.github_oauth_redirect_uri
                or f"{backend}/api/auth/github/callback",
            ),
        }

    # ── Internals ────────────────────────────────────────────────────────────

    async def _signup(
        self, draft: dict, password: str, *, display_name: str
    ) -> SignupResult:
        issued, challenge = self._verification.build_challenge()
        account = AccountDoc(
            **draft,
            handle_key=normalize_handle(draft["handle"]),
            password_hash=hash_password(password),
            providers=[AuthProvider.LOCAL],
            verified=False,
            challenge=challenge,
        )
        account = await self._accounts.create(account)
        log.info(
            "signup_success",
            account_id=str(account.id),
            kind=account.kind,
            role=account.role,
        )
        sent = await self._deliver(account, issued, display_name=display_name)
        return SignupResult(
            account=account,
            verification_sent=sent,
            **self._dev_extras(account.email, issued),
        )

    async def _finish_login(self, account: AccountDoc, password: str) -> LoginResult:
        if not account.password_hash:
            log.info("login_failed", reason="no_password", account_id=str(account.id))
            raise InvalidCredentialsError("Invalid credentials")
        if not verify_password(password, account.password_hash):
            log.info(
                "login_failed", reason="wrong_password", account_id=str(account.id)
            )
            raise InvalidCredentialsError("Invalid credentials")
        if not account.verified:
            raise EmailNotVerifiedError(account.email)

        await self._accounts.touch_login(account.id)
        token = self._tokens.issue(str(account.id), account.email, account.role)
        log.info("login_success", account_id=str(account.id), role=account.role)
        return LoginResult(account=account, token=token)

    async def _require_account(self, kind: AccountKind, email: str) -> AccountDoc:
        if not email or not email.strip():
            raise ValidationError("Email is required", field="email")
        account = await self._accounts.find_by_email(AccountKind(kind).value, email)
        if account is None:
            raise NotFoundError("Account not found")
        return account

    async def _deliver(
        self,
        account: AccountDoc,
        issued: IssuedChallenge,
        display_name: Optional[str] = None,
    ) -> bool:
        """Send the OTP email.

        A failed send is fatal in production; elsewhere the code is returned
        in the response body instead, so the failure is only logged.
        """
        try:
            await self._email.send_otp_email(
                account.email,
                issued.otp,
                display_name or account.display_name,
                verification_link=self.verification_link(account.email, issued.token),
            )
        except EmailDeliveryError:
            log.warning("verification_email_failed", account_id=str(account.id))
            if self._settings.is_production:
                raise
            return False
        return True

    def verification_link(self, email: str, token: str) -> str:
        query = urlencode({"token": token, "email": email})
        return f"{self._settings.frontend_url}/verify-email?{query}"

    def _dev_extras(self, email: str, issued: IssuedChallenge) -> dict:
        if self._settings.is_production:
            return {}
        return {
            "otp": issued.otp,
            "verification_link": self.verification_link(email, issued.token),
        }

    def _check_email(self, email: str) -> str:
        email = normalize_email(email)
        if not validate_email(email):
            raise ValidationError("Please enter a valid email address", field="email")
        return email

    def _check_password(self, password: str) -> None:
        auth = self._settings.auth
        ok, missing = validate_password(
            password, auth.password_min_length, auth.password_max_length
        )
        if not ok:
            raise ValidationError(
                f"Password must be {auth.password_min_length}-"
                f"{auth.password_max_length} characters long",
                field="password",
                details=missing,
            )
