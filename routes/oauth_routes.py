"""
OAuth sign-in endpoints.

GET  /api/auth/{provider}            - redirect to the provider's consent page
GET  /api/auth/{provider}/callback   - finish the exchange, redirect to the
                                       frontend with a session token
POST /api/auth/unlink/{provider}     - detach a provider (bearer)
GET  /api/auth/providers/status      - which providers are enabled

Callback failures never render JSON: the browser is sent back to the
frontend login page with an `error` query parameter.
"""

from __future__ import annotations

from urllib.parse import urlencode

import httpx
from authlib.integrations.starlette_client import OAuthError
from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from config import AppSettings
from dependencies import get_auth_service, get_current_claims, get_settings
from errors import AppError
from infrastructure.oauth_clients import PROVIDER_STRATEGIES, get_oauth_redirect_url
from schemas.dto.responses.auth import AccountProfileResponse, ProviderStatus
from services.auth_service import AuthService
from services.token_service import SessionClaims
from shared.logging import get_logger

log = get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["oauth"])


def _login_error_redirect(settings: AppSettings, error_code: str) -> RedirectResponse:
    query = urlencode({"error": error_code})
    return RedirectResponse(f"{settings.frontend_url}/login/user?{query}", status_code=302)


@router.get("/providers/status", response_model=dict[str, ProviderStatus])
async def providers_status(
    auth: AuthService = Depends(get_auth_service),
) -> dict[str, ProviderStatus]:
    return auth.provider_status()


@router.post(
    "/unlink/{provider}",
    response_model=AccountProfileResponse,
    response_model_exclude_none=True,
)
async def unlink_provider(
    provider: str,
    claims: SessionClaims = Depends(get_current_claims),
    auth: AuthService = Depends(get_auth_service),
) -> AccountProfileResponse:
    account = await auth.unlink_provider(claims, provider)
    return AccountProfileResponse.from_account(account)


@router.get("/{provider}")
async def oauth_start(
    provider: str,
    request: Request,
    settings: AppSettings = Depends(get_settings),
):
    client = request.app.state.oauth_providers.get(provider)
    if provider not in PROVIDER_STRATEGIES or client is None:
        return _login_error_redirect(settings, f"{provider}_oauth_disabled")
    redirect_uri = get_oauth_redirect_url(provider, settings.oauth, settings.backend_url)
    return await client.authorize_redirect(request, redirect_uri)


@router.get("/{provider}/callback")
async def oauth_callback(
    provider: str,
    request: Request,
    settings: AppSettings = Depends(get_settings),
    auth: AuthService = Depends(get_auth_service),
) -> RedirectResponse:
    client = request.app.state.oauth_providers.get(provider)
    if provider not in PROVIDER_STRATEGIES or client is None:
        return _login_error_redirect(settings, f"{provider}_oauth_disabled")

    try:
        token = await client.authorize_access_token(request)
        profile = await PROVIDER_STRATEGIES[provider].fetch_profile(client, token)
        result = await auth.oauth_callback(provider, profile)
    except OAuthError as e:
        log.warning("oauth_exchange_failed", provider=provider, error=e.error)
        return _login_error_redirect(settings, f"{provider}_auth_failed")
    except httpx.HTTPError as e:
        # Provider API refused the token, errored or timed out
        log.warning(
            "oauth_profile_fetch_failed",
            provider=provider,
            error=str(e),
            error_type=type(e).__name__,
        )
        return _login_error_redirect(settings, f"{provider}_auth_failed")
    except AppError as e:
        log.warning("oauth_login_failed", provider=provider, code=e.error_code)
        return _login_error_redirect(settings, e.error_code)

    query = urlencode({"token": result.token})
    return RedirectResponse(f"{settings.frontend_url}/auth/callback?{query}", status_code=302)
