"""
FastAPI application factory.
create_app() is the single entry point for building the app.
"""

from __future__ import annotations

import secrets
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.asynchronous.mongo_client import AsyncMongoClient
from starlette.middleware.sessions import SessionMiddleware

from config import AppSettings
from errors import register_error_handlers
from infrastructure.email.console import ConsoleEmailProvider
from infrastructure.email.protocol import EmailProvider
from infrastructure.email.zeptomail import ZeptoMailProvider
from infrastructure.http_client import HttpClient
from infrastructure.oauth_clients import init_oauth
from infrastructure.storage.cloudinary import CloudinaryStorage
from middleware.request_logging import RequestLoggingMiddleware
from repositories.indexes import ensure_indexes
from routes.auth_routes import router as auth_router
from routes.health_routes import router as health_router
from routes.issue_routes import router as issue_router
from routes.issue_routes import solved_router as issue_solved_router
from routes.oauth_routes import router as oauth_router
from routes.organization_routes import router as organization_router
from routes.ranking_routes import organization_router as organization_rank_router
from routes.ranking_routes import user_router as user_rank_router
from routes.transport_routes import entry_router as transport_entry_router
from routes.transport_routes import query_router as transport_query_router
from services.token_service import TokenService
from shared.logging import get_logger, setup_logging

log = get_logger(__name__)


def include_routers(app: FastAPI) -> None:
    """Mount every router. The auth router goes before the OAuth one so
    /api/auth/profile is not captured by /api/auth/{provider}."""
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(organization_router)
    app.include_router(oauth_router)
    app.include_router(issue_router)
    app.include_router(issue_solved_router)
    app.include_router(user_rank_router)
    app.include_router(organization_rank_router)
    app.include_router(transport_entry_router)
    app.include_router(transport_query_router)


def build_email_provider(settings: AppSettings, http_client: HttpClient) -> EmailProvider:
    if settings.email.email_provider == "zeptomail":
        return ZeptoMailProvider(
            settings.email,
            http_client,
            app_url=settings.frontend_url,
            otp_ttl_minutes=settings.auth.otp_ttl_seconds // 60,
        )
    return ConsoleEmailProvider()


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Create and return a fully configured FastAPI application."""
    if settings is None:
        settings = AppSettings()

    setup_logging(
        settings.logging.log_level, settings.logging.log_format, env=settings.env
    )

    # Initialise Sentry before anything else so it captures startup errors
    if settings.sentry.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry.sentry_dsn,
            send_default_pii=settings.sentry.sentry_send_pii,
            traces_sample_rate=settings.sentry.sentry_traces_sample_rate,
            environment=settings.env,
        )

    # Production refuses to start without these (see AppSettings); development
    # gets throwaway values that invalidate sessions on restart.
    if not settings.jwt.is_configured:
        settings.jwt.jwt_secret = secrets.token_urlsafe(32)
        log.warning("jwt_secret_generated", env=settings.env)
    session_secret = settings.session_secret or secrets.token_urlsafe(32)

    token_service = TokenService(settings.jwt)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # ── Startup ──────────────────────────────────────────────────────────
        mongo_client: AsyncMongoClient = AsyncMongoClient(
            settings.db.mongodb_uri, tz_aware=True
        )
        app.state.mongo_client = mongo_client
        app.state.db = mongo_client[settings.db.db_name]
        app.state.settings = settings
        app.state.token_service = token_service

        email_http = HttpClient(timeout=10.0)
        storage_http = HttpClient(timeout=30.0)
        app.state.email_provider = build_email_provider(settings, email_http)
        app.state.storage = CloudinaryStorage(settings.storage, storage_http)

        oauth, providers = init_oauth(settings.oauth)
        app.state.oauth = oauth
        app.state.oauth_providers = providers

        await ensure_indexes(app.state.db)
        log.info("app_started", env=settings.env, db=settings.db.db_name)

        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        await email_http.aclose()
        await storage_http.aclose()
        await mongo_client.close()

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)
    # Authlib keeps the OAuth state in the session between redirect and callback
    app.add_middleware(
        SessionMiddleware,
        secret_key=session_secret,
        https_only=settings.is_production,
        same_site="lax",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app, expose_errors=not settings.is_production)
    include_routers(app)

    return app
