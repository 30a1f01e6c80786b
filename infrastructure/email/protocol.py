"""EmailProvider protocol - services depend on this, not the concrete implementation."""

from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass(frozen=True)
class EmailReceipt:
    success: bool
    message_id: Optional[str] = None


class EmailProvider(Protocol):
    async def send_otp_email(
        self,
        email: str,
        otp_code: str,
        display_name: Optional[str],
        verification_link: Optional[str] = None,
    ) -> EmailReceipt:
        """Deliver a verification code.

        Raises:
            EmailDeliveryError: the provider rejected or failed the send.
        """
        ...
