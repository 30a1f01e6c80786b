"""
FastAPI dependency providers.

All injectable dependencies are defined here as plain functions used with
FastAPI's Depends() system. Long-lived collaborators (settings, Mongo
database, email/storage providers, token service) live on app.state and are
created in create_app(); repositories and services are cheap and built per
request on top of them.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config import AppSettings
from errors import InvalidSessionError
from infrastructure.email.protocol import EmailProvider
from infrastructure.storage.protocol import StorageProvider
from repositories.account_repository import AccountRepository
from repositories.indexes import (
    ACCOUNTS,
    ISSUES,
    SOLVED_ISSUES,
    TRANSPORT_ENTRIES,
    TRANSPORT_QUERIES,
)
from repositories.issue_repository import IssueRepository
from repositories.transport_repository import TransportRepository
from services.auth_service import AuthService
from services.identity_service import IdentityService
from services.issue_service import IssueService
from services.ranking_service import RankingService
from services.token_service import SessionClaims, TokenService
from services.transport_service import TransportService
from services.verification_service import VerificationService
from shared.datetime_utils import Clock, utcnow

_bearer = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> AppSettings:
    """Return the AppSettings instance stored on app.state."""
    return request.app.state.settings


async def get_db(request: Request):
    """Return the async MongoDB database from app.state."""
    return request.app.state.db


def get_clock(request: Request) -> Clock:
    return getattr(request.app.state, "clock", utcnow)


def get_email_provider(request: Request) -> EmailProvider:
    return request.app.state.email_provider


def get_storage(request: Request) -> StorageProvider:
    return request.app.state.storage


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


# ── Repositories ─────────────────────────────────────────────────────────────


async def get_account_repository(
    db=Depends(get_db), clock: Clock = Depends(get_clock)
) -> AccountRepository:
    return AccountRepository(db[ACCOUNTS], clock)


async def get_issue_repository(db=Depends(get_db)) -> IssueRepository:
    return IssueRepository(db[ISSUES], db[SOLVED_ISSUES])


async def get_transport_repository(db=Depends(get_db)) -> TransportRepository:
    return TransportRepository(db[TRANSPORT_ENTRIES], db[TRANSPORT_QUERIES])


# ── Services ─────────────────────────────────────────────────────────────────


async def get_verification_service(
    accounts: AccountRepository = Depends(get_account_repository),
    settings: AppSettings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
) -> VerificationService:
    return VerificationService(accounts, settings.auth, clock)


async def get_identity_service(
    accounts: AccountRepository = Depends(get_account_repository),
) -> IdentityService:
    return IdentityService(accounts)


async def get_auth_service(
    accounts: AccountRepository = Depends(get_account_repository),
    verification: VerificationService = Depends(get_verification_service),
    identity: IdentityService = Depends(get_identity_service),
    tokens: TokenService = Depends(get_token_service),
    email_provider: EmailProvider = Depends(get_email_provider),
    settings: AppSettings = Depends(get_settings),
) -> AuthService:
    return AuthService(accounts, verification, identity, tokens, email_provider, settings)


async def get_issue_service(
    accounts: AccountRepository = Depends(get_account_repository),
    issues: IssueRepository = Depends(get_issue_repository),
    storage: StorageProvider = Depends(get_storage),
    clock: Clock = Depends(get_clock),
) -> IssueService:
    return IssueService(accounts, issues, storage, clock)


async def get_ranking_service(
    accounts: AccountRepository = Depends(get_account_repository),
) -> RankingService:
    return RankingService(accounts)


async def get_transport_service(
    transports: TransportRepository = Depends(get_transport_repository),
    clock: Clock = Depends(get_clock),
) -> TransportService:
    return TransportService(transports, clock)


# ── Auth ─────────────────────────────────────────────────────────────────────


async def get_current_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    tokens: TokenService = Depends(get_token_service),
) -> SessionClaims:
    """Require a valid `Authorization: Bearer <token>` header."""
    if credentials is None or not credentials.credentials:
        raise InvalidSessionError("Authentication required")
    return tokens.authenticate(credentials.credentials)
