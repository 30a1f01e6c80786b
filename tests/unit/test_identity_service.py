"""Unit tests for IdentityService (OAuth sign-in, merge and unlink)."""

import pytest

from errors import (
    EmailUnavailableError,
    LastAuthMethodError,
    NotLinkedError,
    ProviderEmailUnverifiedError,
    ValidationError,
)
from infrastructure.oauth_clients import OAuthProfile
from shared.crypto import verify_password


def _profile(**overrides) -> OAuthProfile:
    fields = dict(
        provider="google",
        provider_id="g-1",
        email="alice@example.com",
        email_verified=True,
        first_name="Alice",
        last_name="Smith",
        username="",
        picture="https://lh3.googleusercontent.com/alice.png",
    )
    fields.update(overrides)
    return OAuthProfile(**fields)


class TestNewIdentity:
    async def test_creates_verified_user(self, identity_service):
        account = await identity_service.resolve_oauth_identity("google", _profile())
        assert account.kind == "user"
        assert account.role == "user"
        assert account.verified
        assert account.providers == ["google"]
        assert account.google_id == "g-1"
        assert account.password_hash is None
        assert account.handle == "alice"
        assert account.profile_picture.endswith("alice.png")

    async def test_github_username_preferred_for_handle(self, identity_service):
        profile = _profile(
            provider="github", provider_id="42", username="octo-alice", picture=None
        )
        account = await identity_service.resolve_oauth_identity("github", profile)
        assert account.handle == "octo-alice"
        assert account.github_id == "42"

    async def test_handle_collision_gets_suffix(
        self, identity_service, account_repo, make_user
    ):
        await account_repo.create(make_user())
        account = await identity_service.resolve_oauth_identity(
            "google", _profile(email="alice@other.org")
        )
        assert account.handle == "alice1"

    async def test_repeat_sign_in_returns_same_account(self, identity_service):
        first = await identity_service.resolve_oauth_identity("google", _profile())
        second = await identity_service.resolve_oauth_identity("google", _profile())
        assert first.id == second.id

    @pytest.mark.parametrize("email", ["", "not-an-email"])
    async def test_email_required(self, identity_service, email):
        with pytest.raises(EmailUnavailableError):
            await identity_service.resolve_oauth_identity("google", _profile(email=email))

    @pytest.mark.parametrize("provider", ["local", "twitter"])
    async def test_unsupported_provider(self, identity_service, provider):
        with pytest.raises(ValidationError):
            await identity_service.resolve_oauth_identity(provider, _profile())


class TestMerge:
    async def test_merges_into_local_account_by_email(
        self, identity_service, account_repo, verification_service, make_user
    ):
        _, challenge = verification_service.build_challenge()
        local = await account_repo.create(make_user(challenge=challenge))

        merged = await identity_service.resolve_oauth_identity(
            "google", _profile(email="ALICE@example.com")
        )
        assert merged.id == local.id
        assert merged.providers == ["local", "google"]
        assert merged.google_id == "g-1"
        assert merged.verified
        assert merged.challenge is None
        assert verify_password("correct-horse", merged.password_hash)

    async def test_keeps_existing_picture(
        self, identity_service, account_repo, make_user
    ):
        await account_repo.create(make_user(profile_picture="https://mine.png"))
        merged = await identity_service.resolve_oauth_identity("google", _profile())
        assert merged.profile_picture == "https://mine.png"

    async def test_provider_id_first_write_wins(
        self, identity_service, account_repo, make_user
    ):
        await account_repo.create(
            make_user(providers=["local", "google"], google_id="g-original")
        )
        merged = await identity_service.resolve_oauth_identity(
            "google", _profile(provider_id="g-new")
        )
        assert merged.google_id == "g-original"

    async def test_found_by_provider_id_after_email_change(
        self, identity_service, account_repo, make_user
    ):
        original = await account_repo.create(
            make_user(providers=["local", "github"], github_id="42", verified=True)
        )
        profile = _profile(provider="github", provider_id="42", email="new@example.com")
        account = await identity_service.resolve_oauth_identity("github", profile)
        assert account.id == original.id
        assert account.email == "alice@example.com"

    async def test_both_providers_on_one_account(self, identity_service):
        await identity_service.resolve_oauth_identity("google", _profile())
        account = await identity_service.resolve_oauth_identity(
            "github", _profile(provider="github", provider_id="42")
        )
        assert account.providers == ["google", "github"]

    async def test_organization_email_not_merged(
        self, identity_service, account_repo, make_org
    ):
        org = await account_repo.create(make_org())
        account = await identity_service.resolve_oauth_identity(
            "google", _profile(email=org.email)
        )
        assert account.kind == "user"
        assert account.id != org.id


class TestUnverifiedProviderEmail:
    async def test_does_not_take_over_local_account(
        self, identity_service, account_repo, make_user
    ):
        local = await account_repo.create(make_user(verified=True))
        profile = _profile(provider="github", provider_id="666", email_verified=False)
        with pytest.raises(ProviderEmailUnverifiedError) as exc:
            await identity_service.resolve_oauth_identity("github", profile)
        assert exc.value.field == "email"

        reloaded = await account_repo.find_by_id(local.id)
        assert reloaded.providers == ["local"]
        assert reloaded.github_id is None

    async def test_new_email_still_creates_account(self, identity_service):
        profile = _profile(provider="github", provider_id="42", email_verified=False)
        account = await identity_service.resolve_oauth_identity("github", profile)
        assert account.github_id == "42"

    async def test_already_linked_account_found_by_provider_id(
        self, identity_service, account_repo, make_user
    ):
        original = await account_repo.create(
            make_user(providers=["local", "github"], github_id="42", verified=True)
        )
        profile = _profile(provider="github", provider_id="42", email_verified=False)
        account = await identity_service.resolve_oauth_identity("github", profile)
        assert account.id == original.id


class TestUnlink:
    async def test_unlink_keeps_other_methods(
        self, identity_service, account_repo, make_user
    ):
        created = await account_repo.create(
            make_user(providers=["local", "google"], google_id="g-1")
        )
        updated = await identity_service.unlink_provider(created.id, "google")
        assert updated.providers == ["local"]
        assert updated.google_id is None

    async def test_not_linked(self, identity_service, account_repo, make_user):
        created = await account_repo.create(make_user())
        with pytest.raises(NotLinkedError):
            await identity_service.unlink_provider(created.id, "github")

    async def test_last_method_refused(self, identity_service):
        account = await identity_service.resolve_oauth_identity("google", _profile())
        with pytest.raises(LastAuthMethodError):
            await identity_service.unlink_provider(account.id, "google")

    async def test_cannot_unlink_local(self, identity_service, account_repo, make_user):
        created = await account_repo.create(make_user())
        with pytest.raises(ValidationError):
            await identity_service.unlink_provider(created.id, "local")
