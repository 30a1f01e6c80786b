"""OAuth provider strategies and Authlib client initialisation.

Authlib handles the authorization-code exchange; a strategy per provider turns
the provider's user payload into a normalized OAuthProfile, which is the only
thing the identity service sees.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from authlib.integrations.starlette_client import OAuth

from config import OAuthProviderSettings
from shared.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class OAuthProfile:
    """Normalized identity returned by a provider after the code exchange."""

    provider: str
    provider_id: str
    email: str
    email_verified: bool = False
    first_name: str = ""
    last_name: str = ""
    username: str = ""
    picture: Optional[str] = None


# ── Provider strategies ───────────────────────────────────────────────────────


class OAuthProviderStrategy(ABC):
    """Encapsulates everything that differs between OAuth providers."""

    @property
    @abstractmethod
    def key(self) -> str: ...

    @abstractmethod
    async def fetch_profile(self, client: Any, token: Any) -> OAuthProfile: ...


class GoogleStrategy(OAuthProviderStrategy):
    key = "google"

    async def fetch_profile(self, client: Any, token: Any) -> OAuthProfile:
        userinfo = token.get("userinfo")
        if userinfo is None:
            resp = await client.get(
                "https://openidconnect.googleapis.com/v1/userinfo", token=token
            )
            resp.raise_for_status()
            userinfo = resp.json()
        return extract_profile_from_google(dict(userinfo))


class GitHubStrategy(OAuthProviderStrategy):
    key = "github"

    async def fetch_profile(self, client: Any, token: Any) -> OAuthProfile:
        user_response = await client.get("user", token=token)
        user_response.raise_for_status()
        user = user_response.json()
        # /user only exposes the public email; the primary one needs /user/emails
        emails_response = await client.get("user/emails", token=token)
        emails = emails_response.json() if emails_response.status_code == 200 else []
        if not isinstance(emails, list):
            emails = []
        return extract_profile_from_github(user, emails)


PROVIDER_STRATEGIES: dict[str, OAuthProviderStrategy] = {
    s.key: s() for s in [GoogleStrategy, GitHubStrategy]
}


# ── Authlib init ─────────────────────────────────────────────────────────────


def init_oauth(
    settings: OAuthProviderSettings,
) -> Tuple[Optional[OAuth], Dict[str, Any]]:
    """Initialise Authlib OAuth clients for FastAPI/Starlette.

    Returns (oauth, providers_dict) - both are stored on app.state in
    create_app(). Returns (None, {}) if no providers are configured.
    """
    oauth = OAuth()
    providers: Dict[str, Any] = {}

    if settings.google_enabled:
        providers["google"] = oauth.register(
            name="google",
            client_id=settings.google_oauth_client_id,
            client_secret=settings.google_oauth_client_secret,
            server_metadata_url="https://accounts.google.com/.well-known/openid-configuration",
            client_kwargs={
                "scope": "openid email profile",
                "prompt": "select_account",
            },
        )
        log.info("oauth_provider_initialized", provider="google")

    if settings.github_enabled:
        providers["github"] = oauth.register(
            name="github",
            client_id=settings.github_oauth_client_id,
            client_secret=settings.github_oauth_client_secret,
            access_token_url="https://github.com/login/oauth/access_token",
            authorize_url="https://github.com/login/oauth/authorize",
            api_base_url="https://api.github.com/",
            client_kwargs={"scope": "user:email"},
        )
        log.info("oauth_provider_initialized", provider="github")

    if not providers:
        log.warning("oauth_no_providers_configured")
        return None, {}

    return oauth, providers


def get_oauth_redirect_url(
    provider: str, settings: OAuthProviderSettings, backend_url: str
) -> str:
    """Return the configured callback URL, or the default one on backend_url."""
    configured = getattr(settings, f"{provider}_oauth_redirect_uri", "")
    if configured:
        return configured
    return f"{backend_url}/api/auth/{provider}/callback"


# ── Profile extractors ────────────────────────────────────────────────────────


def extract_profile_from_google(userinfo: Dict[str, Any]) -> OAuthProfile:
    name = userinfo.get("name") or ""
    email = (userinfo.get("email") or "").lower().strip()
    return OAuthProfile(
        provider="google",
        provider_id=str(userinfo.get("sub", "")),
        email=email,
        email_verified=bool(userinfo.get("email_verified", False)),
        first_name=userinfo.get("given_name") or name.split(" ")[0],
        last_name=userinfo.get("family_name") or " ".join(name.split(" ")[1:]),
        username=email.split("@", 1)[0],
        picture=userinfo.get("picture") or None,
    )


def extract_profile_from_github(
    userinfo: Dict[str, Any], email_data: List[Dict[str, Any]]
) -> OAuthProfile:
    primary_email = ""
    email_verified = False
    for entry in email_data:
        if entry.get("primary", False) and entry.get("verified", False):
            primary_email = (entry.get("email") or "").lower().strip()
            email_verified = True
            break
    if not primary_email:
        for entry in email_data:
            if entry.get("verified", False):
                primary_email = (entry.get("email") or "").lower().strip()
                email_verified = True
                break
    if not primary_email and userinfo.get("email"):
        primary_email = userinfo["email"].lower().strip()

    login = userinfo.get("login") or ""
    name = userinfo.get("name") or login
    return OAuthProfile(
        provider="github",
        provider_id=str(userinfo.get("id", "")),
        email=primary_email,
        email_verified=email_verified,
        first_name=name.split(" ")[0] if name else "",
        last_name=" ".join(name.split(" ")[1:]) if " " in name else "",
        username=login,
        picture=userinfo.get("avatar_url") or None,
    )
