"""ZeptoMail implementation of EmailProvider.

Sends over the ZeptoMail HTTP API through the shared HttpClient; bodies are
rendered from Jinja2 templates under templates/emails.
"""

import os
from typing import Optional

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from config import EmailSettings
from errors import EmailDeliveryError
from infrastructure.email.protocol import EmailReceipt
from infrastructure.http_client import HttpClient
from shared.datetime_utils import utcnow
from shared.logging import get_logger

log = get_logger(__name__)

_ZEPTO_API_URL = "https://api.zeptomail.in/v1.1/email"
_DEFAULT_TEMPLATE_DIR = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(__file__))),
    "templates",
    "emails",
)


class ZeptoMailProvider:
    def __init__(
        self,
        settings: EmailSettings,
        http_client: HttpClient,
        app_url: str = "http://localhost:5173",
        otp_ttl_minutes: int = 10,
        template_dir: str = _DEFAULT_TEMPLATE_DIR,
    ) -> None:
        self._settings = settings
        self._http = http_client
        self._app_url = app_url
        self._otp_ttl_minutes = otp_ttl_minutes
        self._jinja = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html", "xml"]),
        )

    async def _send(
        self,
        to_email: str,
        to_name: Optional[str],
        subject: str,
        html_body: str,
        text_body: Optional[str] = None,
    ) -> EmailReceipt:
        if not self._settings.zepto_api_token:
            log.error("zepto_mail_send_failed", reason="token_not_configured")
            raise EmailDeliveryError("Email provider is not configured")

        payload: dict = {
            "from": {
                "address": self._settings.zepto_from_email,
                "name": self._settings.zepto_from_name,
            },
            "to": [
                {
                    "email_address": {
                        "address": to_email,
                        "name": to_name or to_email,
                    }
                }
            ],
            "subject": subject,
            "htmlbody": html_body,
        }
        if text_body:
            payload["textbody"] = text_body

        token = self._settings.zepto_api_token
        if not token.startswith("Zoho-enczapikey "):
            token = f"Zoho-enczapikey {token}"

        headers = {"Authorization": token, "Content-Type": "application/json"}

        try:
            response = await self._http.post(
                _ZEPTO_API_URL, json=payload, headers=headers
            )
        except httpx.HTTPError as e:
            log.error(
                "email_send_error",
                to_email=to_email,
                subject=subject,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise EmailDeliveryError("Failed to send verification email") from e

        if response.status_code not in (200, 201, 202):
            log.error(
                "email_sent_failed",
                to_email=to_email,
                subject=subject,
                status_code=response.status_code,
                response=response.text[:200],
            )
            raise EmailDeliveryError("Failed to send verification email")

        message_id = None
        try:
            message_id = response.json().get("request_id")
        except ValueError:
            pass
        log.info("email_sent_success", to_email=to_email, subject=subject)
        return EmailReceipt(success=True, message_id=message_id)

    async def send_otp_email(
        self,
        email: str,
        otp_code: str,
        display_name: Optional[str],
        verification_link: Optional[str] = None,
    ) -> EmailReceipt:
        subject = "Verify Your Email - GreenCity"
        year = utcnow().year
        template = self._jinja.get_template("verification.html")
        html_body = template.render(
            otp_code=otp_code,
            user_name=display_name,
            verification_link=verification_link,
            expires_minutes=self._otp_ttl_minutes,
            app_url=self._app_url,
            year=year,
        )
        text_body = (
            f"GreenCity - Email Verification\n\n"
            f"Hello {display_name or 'there'},\n\n"
            f"Your verification code is: {otp_code}\n\n"
            f"This code expires in {self._otp_ttl_minutes} minutes.\n\n"
        )
        if verification_link:
            text_body += f"Or verify with this link: {verification_link}\n\n"
        text_body += (
            "If you didn't create an account, please ignore this email.\n\n"
            f"© {year} GreenCity. All rights reserved."
        )
        return await self._send(email, display_name, subject, html_body, text_body)
