"""Development EmailProvider that only logs the message.

The code is logged under `code` so it stays readable past the redaction
processor; never select this provider in production.
"""

from typing import Optional

from infrastructure.email.protocol import EmailReceipt
from shared.datetime_utils import utcnow
from shared.logging import get_logger

log = get_logger(__name__)


class ConsoleEmailProvider:
    async def send_otp_email(
        self,
        email: str,
        otp_code: str,
        display_name: Optional[str],
        verification_link: Optional[str] = None,
    ) -> EmailReceipt:
        message_id = f"dev-email-{int(utcnow().timestamp() * 1000)}"
        log.info(
            "dev_email_otp",
            to_email=email,
            display_name=display_name,
            code=otp_code,
            verification_link=verification_link,
            message_id=message_id,
        )
        return EmailReceipt(success=True, message_id=message_id)
