"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file) once, when
create_app() builds AppSettings. Nothing reads os.environ after that.

Production runs fail fast: a missing JWT signing key or email API token raises
at startup instead of silently falling back to a development default.
"""

from __future__ import annotations

from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "greencity"


class JWTSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    jwt_issuer: str = "greencity"
    jwt_audience: str = "greencity.api"
    session_ttl_seconds: int = 86400

    # RS256 keys (preferred)
    jwt_private_key: str = ""
    jwt_public_key: str = ""

    # HS256 fallback (used when RS256 keys are absent)
    jwt_secret: str = ""

    @property
    def use_rs256(self) -> bool:
        return bool(self.jwt_private_key and self.jwt_public_key)

    @property
    def is_configured(self) -> bool:
        return self.use_rs256 or bool(self.jwt_secret)


class AuthSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    otp_ttl_seconds: int = 600
    verification_token_ttl_seconds: int = 86400
    # Resend is only allowed once the current OTP has this much life left (or less)
    otp_resend_window_seconds: int = 60
    otp_max_attempts: int = 5
    otp_cooldown_seconds: int = 60
    password_min_length: int = 8
    password_max_length: int = 128
    admin_signup_enabled: bool = True


class OAuthProviderSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    google_oauth_client_id: str = ""
    google_oauth_client_secret: str = ""
    google_oauth_redirect_uri: str = ""

    github_oauth_client_id: str = ""
    github_oauth_client_secret: str = ""
    github_oauth_redirect_uri: str = ""

    @property
    def google_enabled(self) -> bool:
        return bool(self.google_oauth_client_id and self.google_oauth_client_secret)

    @property
    def github_enabled(self) -> bool:
        return bool(self.github_oauth_client_id and self.github_oauth_client_secret)


class EmailSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # "zeptomail" sends real mail; "console" only logs the code (development)
    email_provider: str = "console"
    zepto_api_token: str = ""
    zepto_from_email: str = "noreply@greencity.app"
    zepto_from_name: str = "GreenCity"


class StorageSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    cloudinary_cloud_name: str = ""
    cloudinary_api_key: str = ""
    cloudinary_api_secret: str = ""
    cloudinary_folder: str = "greencity_issues"
    max_upload_bytes: int = 5 * 1024 * 1024

    @property
    def is_configured(self) -> bool:
        return bool(
            self.cloudinary_cloud_name
            and self.cloudinary_api_key
            and self.cloudinary_api_secret
        )


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    env: str = "development"
    app_name: str = "GreenCity API"
    frontend_url: str = "http://localhost:5173"
    backend_url: str = "http://localhost:5000"
    session_secret: str = ""

    cors_origins: list[str] = ["*"]

    # OpenAPI docs URL (None disables the docs UI)
    docs_url: Optional[str] = "/docs"

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    jwt: Optional[JWTSettings] = None
    auth: Optional[AuthSettings] = None
    oauth: Optional[OAuthProviderSettings] = None
    email: Optional[EmailSettings] = None
    storage: Optional[StorageSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        if self.db is None:
            self.db = DatabaseSettings()
        if self.jwt is None:
            self.jwt = JWTSettings()
        if self.auth is None:
            self.auth = AuthSettings()
        if self.oauth is None:
            self.oauth = OAuthProviderSettings()
        if self.email is None:
            self.email = EmailSettings()
        if self.storage is None:
            self.storage = StorageSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()

        self.frontend_url = self.frontend_url.rstrip("/")
        self.backend_url = self.backend_url.rstrip("/")
        return self

    @model_validator(mode="after")
    def _require_production_secrets(self) -> "AppSettings":
        if not self.is_production:
            return self

        missing: list[str] = []
        if not self.jwt.is_configured:
            missing.append("JWT_SECRET (or JWT_PRIVATE_KEY/JWT_PUBLIC_KEY)")
        if self.email.email_provider != "zeptomail" or not self.email.zepto_api_token:
            missing.append("EMAIL_PROVIDER=zeptomail with ZEPTO_API_TOKEN")
        if not self.session_secret:
            missing.append("SESSION_SECRET")
        if missing:
            raise ValueError(
                "missing required production settings: " + ", ".join(missing)
            )
        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"
