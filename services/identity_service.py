"""
IdentityService - OAuth identity resolution and provider unlinking.

resolve_oauth_identity() is the single entry point after a provider exchange.
Lookup order: user account by email, then by provider id (the provider-side
email may have changed), otherwise a new verified account. An email the
provider has not verified is never used to find an account, and it cannot be
used to sign up when another account already holds it.

Merging into an existing account never touches its password. The provider id
is first-write-wins, and the account counts as verified afterwards because
the provider attests the email.
"""

from __future__ import annotations

from typing import Any

from errors import (
    DuplicateAccountError,
    EmailUnavailableError,
    LastAuthMethodError,
    NotFoundError,
    NotLinkedError,
    ProviderEmailUnverifiedError,
    ValidationError,
)
from infrastructure.oauth_clients import OAuthProfile
from repositories.account_repository import HANDLE_LABELS, AccountRepository
from schemas.models.account import (
    OAUTH_PROVIDERS,
    PROVIDER_ID_FIELDS,
    AccountDoc,
    AccountKind,
    AuthProvider,
    Role,
    UserProfile,
)
from shared.generators import handle_candidates, handle_from_email
from shared.logging import get_logger
from shared.validators import normalize_email, normalize_handle, validate_email

log = get_logger(__name__)

_USER = AccountKind.USER.value


class IdentityService:
    def __init__(self, accounts: AccountRepository) -> None:
        self._accounts = accounts

    async def resolve_oauth_identity(
        self, provider: str, profile: OAuthProfile
    ) -> AccountDoc:
        provider = _oauth_provider(provider)
        email = normalize_email(profile.email or "")
        if not email or not validate_email(email):
            raise EmailUnavailableError(
                f"Could not get an email address from {provider}"
            )

        account = None
        if profile.email_verified:
            account = await self._accounts.find_by_email(_USER, email)
        if account is None:
            account = await self._accounts.find_by_provider_id(
                provider, profile.provider_id
            )
        if account is None:
            if not profile.email_verified:
                await self._refuse_unverified_claim(provider, email)
            return await self._create_from_profile(provider, profile, email)
        return await self._merge(account, provider, profile)

    async def unlink_provider(self, account_id: Any, provider: str) -> AccountDoc:
        provider = _oauth_provider(provider)
        account = await self._accounts.find_by_id(account_id)
        if account is None:
            raise NotFoundError("Account not found")
        if provider not in account.providers and not account.provider_id(provider):
            raise NotLinkedError(f"{provider} is not linked to this account")

        remaining = [p for p in account.providers if p != provider]
        if not remaining:
            raise LastAuthMethodError(
                "Cannot unlink the only sign-in method; set a password or link "
                "another provider first"
            )

        updated = await self._accounts.unlink_provider(account.id, provider)
        log.info("oauth_provider_unlinked", account_id=str(account.id), provider=provider)
        return updated

    # ── Internals ────────────────────────────────────────────────────────────

    async def _merge(
        self, account: AccountDoc, provider: str, profile: OAuthProfile
    ) -> AccountDoc:
        existing_id = account.provider_id(provider)
        if existing_id and existing_id != profile.provider_id:
            log.warning(
                "oauth_provider_id_mismatch",
                account_id=str(account.id),
                provider=provider,
            )

        updated = await self._accounts.link_provider(
            account.id,
            provider,
            profile.provider_id,
            profile_picture=profile.picture,
        )
        if not updated.verified or updated.challenge is not None:
            await self._accounts.update_verification(
                account.id, {"verified": True}, unset_challenge=True
            )
            updated = await self._accounts.find_by_id(account.id)

        log.info(
            "oauth_account_linked",
            account_id=str(account.id),
            provider=provider,
            newly_linked=provider not in account.providers,
        )
        return updated

    async def _create_from_profile(
        self, provider: str, profile: OAuthProfile, email: str
    ) -> AccountDoc:
        base = handle_from_email(profile.username or email)
        for handle in handle_candidates(base):
            draft = AccountDoc(
                kind=_USER,
                role=Role.USER,
                email=email,
                handle=handle,
                handle_key=normalize_handle(handle),
                providers=[provider],
                verified=True,
                profile_picture=profile.picture,
                profile=UserProfile(
                    first_name=profile.first_name, last_name=profile.last_name
                ),
                **{PROVIDER_ID_FIELDS[provider]: profile.provider_id},
            )
            try:
                account = await self._accounts.create(draft)
            except DuplicateAccountError as e:
                if e.field == HANDLE_LABELS[_USER]:
                    continue
                # Lost a race with a concurrent sign-in for the same identity
                existing = None
                if profile.email_verified:
                    existing = await self._accounts.find_by_email(_USER, email)
                if existing is None:
                    existing = await self._accounts.find_by_provider_id(
                        provider, profile.provider_id
                    )
                if existing is None:
                    if e.field == "email":
                        await self._refuse_unverified_claim(provider, email)
                    raise
                return await self._merge(existing, provider, profile)
            log.info(
                "oauth_account_created",
                account_id=str(account.id),
                provider=provider,
                handle=handle,
            )
            return account
        raise AssertionError("handle_candidates is unbounded")

    async def _refuse_unverified_claim(self, provider: str, email: str) -> None:
        """Block an unverified provider email from taking over an account."""
        if await self._accounts.find_by_email(_USER, email) is None:
            return
        log.warning("oauth_unverified_email_conflict", provider=provider)
        raise ProviderEmailUnverifiedError(
            f"Your {provider} email is not verified; sign in with your password",
            field="email",
        )


def _oauth_provider(provider: str) -> str:
    try:
        value = AuthProvider(provider)
    except ValueError:
        raise ValidationError(f"Unsupported provider: {provider}") from None
    if value not in OAUTH_PROVIDERS:
        raise ValidationError(f"Unsupported provider: {provider}")
    return value.value
