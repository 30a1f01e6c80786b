"""
Application error hierarchy and FastAPI exception handlers.

AppError is the base for all typed errors. The global exception handler
converts AppError subclasses to consistent JSON responses of the shape
``{"error": message, "code": error_code, ...context}``.

Non-AppError exceptions are logged and rendered as 500s; the raw message is
only exposed outside production.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shared.logging import get_logger

log = get_logger(__name__)


class AppError(Exception):
    """Base application error. All typed errors inherit from this."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        details: Optional[Any] = None,
        **context: Any,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details
        self.context = context

    def to_dict(self) -> dict:
        payload: dict = {"error": self.message, "code": self.error_code}
        if self.field is not None:
            payload["field"] = self.field
        if self.details is not None:
            payload["details"] = self.details
        payload.update(self.context)
        return payload


class ValidationError(AppError):
    status_code = 400
    error_code = "validation_error"


class ConflictError(AppError):
    status_code = 400
    error_code = "conflict"


class AuthenticationError(AppError):
    status_code = 401
    error_code = "authentication_error"


class ForbiddenError(AppError):
    status_code = 403
    error_code = "forbidden"


class NotFoundError(AppError):
    status_code = 404
    error_code = "not_found"


class RateLimitError(AppError):
    status_code = 429
    error_code = "rate_limit_exceeded"


class UpstreamError(AppError):
    status_code = 502
    error_code = "upstream_error"


# ── Credential and verification errors ───────────────────────────────────────


class InvalidCredentialsError(AppError):
    status_code = 400
    error_code = "invalid_credentials"


class EmailNotVerifiedError(ForbiddenError):
    error_code = "email_not_verified"

    def __init__(self, email: str) -> None:
        super().__init__(
            "Email not verified", requires_verification=True, email=email
        )


class MissingCredentialError(ValidationError):
    error_code = "missing_credential"


class AlreadyVerifiedError(ValidationError):
    error_code = "already_verified"


class InvalidCodeError(AppError):
    status_code = 400
    error_code = "invalid_code"


class ExpiredCodeError(AppError):
    status_code = 400
    error_code = "expired"


class RateLimitedError(RateLimitError):
    error_code = "too_many_attempts"


class TooSoonError(RateLimitError):
    error_code = "too_soon"


class InvalidSessionError(AuthenticationError):
    error_code = "invalid_token"


class SessionExpiredError(AuthenticationError):
    error_code = "token_expired"


# ── Identity errors ──────────────────────────────────────────────────────────


class EmailUnavailableError(ValidationError):
    error_code = "email_unavailable"


class NotLinkedError(ValidationError):
    error_code = "not_linked"


class LastAuthMethodError(ValidationError):
    error_code = "last_auth_method"


class ProviderEmailUnverifiedError(ConflictError):
    """The provider did not verify an email that already belongs to an account."""

    error_code = "provider_email_unverified"


class DuplicateAccountError(ConflictError):
    """Raised by the account store when a unique field collides."""

    error_code = "duplicate_key"

    def __init__(self, field: str) -> None:
        super().__init__(f"An account with this {field} already exists", field=field)


# ── Collaborator errors ──────────────────────────────────────────────────────


class EmailDeliveryError(UpstreamError):
    error_code = "email_delivery_failed"


class StorageError(UpstreamError):
    error_code = "storage_upload_failed"


def register_error_handlers(app: FastAPI, *, expose_errors: bool = False) -> None:
    """Register global exception handlers on the FastAPI app.

    expose_errors controls whether unexpected exception messages reach the
    client; create_app() enables it outside production.
    """

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(p) for p in first.get("loc", ())[1:]) or None
        message = first.get("msg", "Invalid request")
        if field:
            message = f"{field}: {message}"
        err = ValidationError(message, field=field)
        return JSONResponse(status_code=err.status_code, content=err.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        log.error(
            "unhandled_exception",
            path=request.url.path,
            error=str(exc),
            error_type=type(exc).__name__,
            exc_info=exc,
        )
        message = str(exc) if expose_errors else "Internal server error"
        return JSONResponse(
            status_code=500,
            content={"error": message, "code": "internal_error"},
        )
