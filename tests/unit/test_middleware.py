"""Unit tests for request logging and log redaction."""

from fastapi import FastAPI
from fastapi.testclient import TestClient

from middleware.request_logging import RequestLoggingMiddleware, generate_request_id
from shared.logging import redact_sensitive_fields


def _app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestLoggingMiddleware)

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    return app


class TestRequestLoggingMiddleware:
    def test_sets_request_id_header(self):
        resp = TestClient(_app()).get("/ping")
        assert resp.status_code == 200
        assert resp.headers["X-Request-ID"].startswith("req_")

    def test_propagates_incoming_request_id(self):
        resp = TestClient(_app()).get("/ping", headers={"X-Request-ID": "abc-123"})
        assert resp.headers["X-Request-ID"] == "abc-123"

    def test_generated_ids_are_unique(self):
        assert generate_request_id() != generate_request_id()


class TestRedaction:
    def test_sensitive_keys_redacted(self):
        event = redact_sensitive_fields(
            None,
            "info",
            {
                "event": "signup",
                "password": "hunter2",
                "otp": "123456",
                "jwt_secret": "s",
                "account_id": "abc",
            },
        )
        assert event["password"] == "***REDACTED***"
        assert event["otp"] == "***REDACTED***"
        assert event["jwt_secret"] == "***REDACTED***"
        assert event["account_id"] == "abc"
        assert event["event"] == "signup"

    def test_dev_code_key_not_redacted(self):
        event = redact_sensitive_fields(None, "info", {"event": "dev_email_otp", "code": "1"})
        assert event["code"] == "1"
