"""
Unit tests for AuthService.

Repositories run on mongomock; email goes through RecordingEmailProvider so
the issued OTP can be read back the way a user would read their inbox.
"""

from urllib.parse import parse_qs, urlparse

import pytest

from config import AuthSettings, EmailSettings
from errors import (
    DuplicateAccountError,
    EmailDeliveryError,
    EmailNotVerifiedError,
    ForbiddenError,
    InvalidCredentialsError,
    MissingCredentialError,
    NotFoundError,
    TooSoonError,
    ValidationError,
)
from factories import RecordingEmailProvider, make_settings
from infrastructure.oauth_clients import OAuthProfile
from schemas.dto.requests.auth import OrganizationSignupRequest, UserSignupRequest
from schemas.models.account import AccountKind, OrganizationProfile, Role
from services.auth_service import AuthService
from services.identity_service import IdentityService
from services.token_service import TokenService
from services.verification_service import VerificationOutcome, VerificationService


# ── Helpers ───────────────────────────────────────────────────────────────────


def _user_req(**overrides) -> UserSignupRequest:
    body = {
        "firstName": "Alice",
        "lastName": "Smith",
        "username": "alice",
        "email": "Alice@Example.com",
        "password": "correct-horse",
    }
    body.update(overrides)
    return UserSignupRequest.model_validate(body)


def _org_req(**overrides) -> OrganizationSignupRequest:
    body = {
        "organizationName": "Cleanup Crew",
        "address": "1 Green St",
        "organizationId": "ORG-1",
        "email": "ops@cleanup.org",
        "phone": "555-123-4567",
        "transportTypes": ["Bus", "Bike", "Bus"],
        "password": "org-password",
    }
    body.update(overrides)
    return OrganizationSignupRequest.model_validate(body)


def _build(account_repo, clock, settings, email_provider) -> AuthService:
    verification = VerificationService(account_repo, settings.auth, clock)
    return AuthService(
        account_repo,
        verification,
        IdentityService(account_repo),
        TokenService(settings.jwt, clock),
        email_provider,
        settings,
    )


def _production_settings():
    return make_settings(
        env="production",
        session_secret="session-secret",
        email=EmailSettings(email_provider="zeptomail", zepto_api_token="token"),
    )


# ── Signup ────────────────────────────────────────────────────────────────────


class TestSignupUser:
    async def test_creates_unverified_user_and_sends_code(
        self, auth_service, email_provider
    ):
        result = await auth_service.signup_user(_user_req())
        assert result.account.email == "alice@example.com"
        assert result.account.role == "user"
        assert result.account.verified is False
        assert result.account.providers == ["local"]
        assert result.verification_sent is True
        assert len(email_provider.sent) == 1
        assert email_provider.sent[0]["otp"] == result.otp
        assert email_provider.sent[0]["display_name"] == "Alice"

    async def test_dev_extras_include_link(self, auth_service):
        result = await auth_service.signup_user(_user_req())
        link = urlparse(result.verification_link)
        assert link.path == "/verify-email"
        query = parse_qs(link.query)
        assert query["email"] == ["alice@example.com"]
        assert len(query["token"][0]) == 64

    async def test_admin_signup(self, auth_service):
        result = await auth_service.signup_user(_user_req(), role=Role.ADMIN)
        assert result.account.role == "admin"
        assert result.account.kind == "user"

    async def test_admin_signup_disabled(
        self, account_repo, clock, email_provider
    ):
        settings = make_settings(auth=AuthSettings(admin_signup_enabled=False))
        service = _build(account_repo, clock, settings, email_provider)
        with pytest.raises(ForbiddenError):
            await service.signup_user(_user_req(), role=Role.ADMIN)

    async def test_invalid_email(self, auth_service):
        with pytest.raises(ValidationError) as exc:
            await auth_service.signup_user(_user_req(email="nope"))
        assert exc.value.field == "email"

    async def test_short_password(self, auth_service):
        with pytest.raises(ValidationError) as exc:
            await auth_service.signup_user(_user_req(password="short"))
        assert exc.value.field == "password"
        assert exc.value.details == ["At least 8 characters"]

    async def test_duplicate_email(self, auth_service):
        await auth_service.signup_user(_user_req())
        with pytest.raises(DuplicateAccountError) as exc:
            await auth_service.signup_user(_user_req(username="alice2"))
        assert exc.value.field == "email"

    async def test_duplicate_username(self, auth_service):
        await auth_service.signup_user(_user_req())
        with pytest.raises(DuplicateAccountError) as exc:
            await auth_service.signup_user(_user_req(email="other@example.com"))
        assert exc.value.field == "username"

    async def test_email_failure_tolerated_in_development(
        self, account_repo, clock, app_settings
    ):
        service = _build(
            account_repo, clock, app_settings, RecordingEmailProvider(fail=True)
        )
        result = await service.signup_user(_user_req())
        assert result.verification_sent is False
        assert result.otp is not None

    async def test_email_failure_raises_in_production(self, account_repo, clock):
        service = _build(
            account_repo, clock, _production_settings(), RecordingEmailProvider(fail=True)
        )
        with pytest.raises(EmailDeliveryError):
            await service.signup_user(_user_req())
        # The account stays; the user can ask for a resend
        assert await account_repo.find_by_email("user", "alice@example.com") is not None

    async def test_no_codes_in_production_result(self, account_repo, clock):
        email = RecordingEmailProvider()
        service = _build(account_repo, clock, _production_settings(), email)
        result = await service.signup_user(_user_req())
        assert result.otp is None
        assert result.verification_link is None
        assert email.sent[0]["verification_link"].startswith(
            "https://app.greencity.test/verify-email?"
        )


class TestSignupOrganization:
    async def test_creates_organization(self, auth_service, email_provider):
        result = await auth_service.signup_organization(_org_req())
        account = result.account
        assert account.kind == "organization"
        assert account.handle == "ORG-1"
        assert account.profile.phone == 5551234567
        assert account.profile.transport_types == ["Bus", "Bike"]
        assert account.verified is False
        assert email_provider.sent[0]["display_name"] == "Cleanup Crew"

    async def test_bad_phone(self, auth_service):
        with pytest.raises(ValidationError) as exc:
            await auth_service.signup_organization(_org_req(phone="12345"))
        assert exc.value.field == "phone"

    async def test_bad_transport_type(self, auth_service):
        with pytest.raises(ValidationError) as exc:
            await auth_service.signup_organization(_org_req(transportTypes=["Rocket"]))
        assert exc.value.field == "transport_types"

    async def test_duplicate_phone(self, auth_service):
        await auth_service.signup_organization(_org_req())
        with pytest.raises(DuplicateAccountError) as exc:
            await auth_service.signup_organization(
                _org_req(organizationId="ORG-2", email="b@cleanup.org")
            )
        assert exc.value.field == "phone"


# ── Verification ──────────────────────────────────────────────────────────────


class TestVerifyEmail:
    async def test_verify_with_emailed_otp(self, auth_service, email_provider):
        await auth_service.signup_user(_user_req())
        otp = email_provider.sent[0]["otp"]
        result = await auth_service.verify_email(
            AccountKind.USER, "alice@example.com", otp=otp
        )
        assert result.outcome is VerificationOutcome.VERIFIED
        assert result.account.verified is True

    async def test_verify_with_link_token(self, auth_service):
        signup = await auth_service.signup_user(_user_req())
        token = parse_qs(urlparse(signup.verification_link).query)["token"][0]
        result = await auth_service.verify_email(
            AccountKind.USER, "alice@example.com", token=token
        )
        assert result.outcome is VerificationOutcome.VERIFIED

    async def test_missing_credential_before_lookup(self, auth_service):
        with pytest.raises(MissingCredentialError):
            await auth_service.verify_email(AccountKind.USER, "ghost@example.com")

    async def test_unknown_account(self, auth_service):
        with pytest.raises(NotFoundError):
            await auth_service.verify_email(
                AccountKind.USER, "ghost@example.com", otp="123456"
            )

    async def test_kind_scoped(self, auth_service, email_provider):
        await auth_service.signup_user(_user_req())
        with pytest.raises(NotFoundError):
            await auth_service.verify_email(
                AccountKind.ORGANIZATION,
                "alice@example.com",
                otp=email_provider.sent[0]["otp"],
            )


class TestResendVerification:
    async def test_resend_sends_new_code(self, auth_service, email_provider, clock):
        await auth_service.signup_user(_user_req())
        clock.advance(minutes=9, seconds=31)
        result = await auth_service.resend_verification(
            AccountKind.USER, "alice@example.com"
        )
        assert result.verification_sent is True
        assert len(email_provider.sent) == 2
        assert result.otp == email_provider.sent[1]["otp"]

    async def test_resend_too_soon(self, auth_service, clock):
        await auth_service.signup_user(_user_req())
        clock.advance(minutes=5)
        with pytest.raises(TooSoonError):
            await auth_service.resend_verification(AccountKind.USER, "alice@example.com")


# ── Login ─────────────────────────────────────────────────────────────────────


async def _verified_user(auth_service, email_provider, role=Role.USER, **req):
    await auth_service.signup_user(_user_req(**req), role=role)
    email = email_provider.sent[-1]["email"]
    await auth_service.verify_email(
        AccountKind.USER, email, otp=email_provider.sent[-1]["otp"]
    )


class TestLogin:
    async def test_login_returns_session(
        self, auth_service, email_provider, token_service
    ):
        await _verified_user(auth_service, email_provider)
        result = await auth_service.login("ALICE@example.com", "correct-horse", Role.USER)
        claims = token_service.authenticate(result.token)
        assert claims.account_id == str(result.account.id)
        assert claims.role == "user"

    async def test_unverified_refused(self, auth_service):
        await auth_service.signup_user(_user_req())
        with pytest.raises(EmailNotVerifiedError) as exc:
            await auth_service.login("alice@example.com", "correct-horse", Role.USER)
        assert exc.value.to_dict()["requires_verification"] is True

    async def test_wrong_password_checked_before_verification(self, auth_service):
        await auth_service.signup_user(_user_req())
        with pytest.raises(InvalidCredentialsError):
            await auth_service.login("alice@example.com", "wrong-password", Role.USER)

    async def test_unknown_email(self, auth_service):
        with pytest.raises(InvalidCredentialsError):
            await auth_service.login("ghost@example.com", "whatever1", Role.USER)

    async def test_role_must_match(self, auth_service, email_provider):
        await _verified_user(auth_service, email_provider)
        with pytest.raises(InvalidCredentialsError):
            await auth_service.login("alice@example.com", "correct-horse", Role.ADMIN)

    async def test_admin_login(self, auth_service, email_provider):
        await _verified_user(auth_service, email_provider, role=Role.ADMIN)
        result = await auth_service.login("alice@example.com", "correct-horse", Role.ADMIN)
        assert result.account.role == "admin"

    async def test_oauth_only_account_has_no_password(self, auth_service):
        await auth_service.oauth_callback(
            "google",
            OAuthProfile(provider="google", provider_id="g-1", email="bob@example.com"),
        )
        with pytest.raises(InvalidCredentialsError):
            await auth_service.login("bob@example.com", "anything1", Role.USER)


class TestLoginOrganization:
    async def _verified_org(self, auth_service, email_provider):
        await auth_service.signup_organization(_org_req())
        await auth_service.verify_email(
            AccountKind.ORGANIZATION,
            "ops@cleanup.org",
            otp=email_provider.sent[-1]["otp"],
        )

    async def test_by_email(self, auth_service, email_provider):
        await self._verified_org(auth_service, email_provider)
        result = await auth_service.login_organization(
            "org-password", email="ops@cleanup.org"
        )
        assert result.account.handle == "ORG-1"

    async def test_by_organization_id(self, auth_service, email_provider):
        await self._verified_org(auth_service, email_provider)
        result = await auth_service.login_organization(
            "org-password", organization_id="org-1"
        )
        assert result.account.role == "organization"

    async def test_email_wins_over_organization_id(
        self, auth_service, email_provider, account_repo, make_org
    ):
        await self._verified_org(auth_service, email_provider)
        await account_repo.create(
            make_org(
                email="other@cleanup.org",
                handle="ORG-2",
                profile=OrganizationProfile(
                    organization_name="Other Crew",
                    address="2 Green St",
                    phone=5559876543,
                ),
            )
        )
        result = await auth_service.login_organization(
            "org-password", email="ops@cleanup.org", organization_id="ORG-2"
        )
        assert result.account.handle == "ORG-1"

    async def test_identifier_required(self, auth_service):
        with pytest.raises(ValidationError):
            await auth_service.login_organization("org-password")

    async def test_wrong_password(self, auth_service, email_provider):
        await self._verified_org(auth_service, email_provider)
        with pytest.raises(InvalidCredentialsError):
            await auth_service.login_organization("nope-nope", email="ops@cleanup.org")


# ── OAuth and profile ─────────────────────────────────────────────────────────


class TestOAuthAndProfile:
    async def test_oauth_callback_issues_session(self, auth_service, token_service):
        result = await auth_service.oauth_callback(
            "github",
            OAuthProfile(
                provider="github", provider_id="42", email="octo@example.com",
                username="octo",
            ),
        )
        claims = token_service.authenticate(result.token)
        assert claims.email == "octo@example.com"
        assert result.account.verified

    async def test_get_profile(self, auth_service, email_provider):
        await _verified_user(auth_service, email_provider)
        login = await auth_service.login("alice@example.com", "correct-horse", Role.USER)
        claims = auth_service.authenticate(login.token)
        account = await auth_service.get_profile(claims)
        assert account.handle == "alice"

    async def test_get_profile_wrong_kind(self, auth_service, email_provider):
        await _verified_user(auth_service, email_provider)
        login = await auth_service.login("alice@example.com", "correct-horse", Role.USER)
        claims = auth_service.authenticate(login.token)
        with pytest.raises(ForbiddenError):
            await auth_service.get_profile(claims, AccountKind.ORGANIZATION)

    def test_provider_status(self, auth_service):
        status = auth_service.provider_status()
        assert set(status) == {"google", "github"}
        assert status["google"].callback_url == (
            "https://api.greencity.test/api/auth/google/callback"
        )
