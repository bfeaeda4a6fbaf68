"""
Notification Service Abstract Base Class

Customer-facing messages go out as SMS when a phone number is known and
as email otherwise. Implementations provide the two transports; the
order-ready notice is composed here so every provider sends the same
text.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

SMS = "sms"
EMAIL = "email"


@dataclass
class NotificationResult:
    """Outcome of one send. ``error_message`` is set when ``success`` is False."""
    success: bool
    message_id: Optional[str] = None
    error_message: Optional[str] = None
    provider: str = "unknown"


@dataclass
class ReadyNotice:
    """What was sent for an order-ready notice and how it went."""
    channel: str
    body: str
    result: NotificationResult


def ready_notice_text(truck_name: str, total_amount: float, customer_name: Optional[str] = None) -> str:
    greeting = f"Hi {customer_name}! " if customer_name else ""
    return (
        f"{greeting}Your order from {truck_name} is ready for pickup. "
        f"Total: ${total_amount:.2f}"
    )


class BaseNotificationService(ABC):
    """SMS and email transport for customer messages."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def send_sms(self, to_phone: str, message: str) -> NotificationResult:
        """Send a text message. Transport failures come back as ``success=False``."""

    @abstractmethod
    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        """Send an email. Transport failures come back as ``success=False``."""

    async def send_order_ready(
        self,
        truck_name: str,
        total_amount: float,
        customer_name: Optional[str] = None,
        phone: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Optional[ReadyNotice]:
        """
        Tell a customer their order can be picked up.

        Returns None when there is neither a phone number nor an email.
        """
        body = ready_notice_text(truck_name, total_amount, customer_name)
        if phone:
            return ReadyNotice(SMS, body, await self.send_sms(to_phone=phone, message=body))
        if email:
            result = await self.send_email(
                to_email=email,
                subject=f"Your {truck_name} order is ready",
                body_html=f"<p>{body}</p>",
                body_text=body,
            )
            return ReadyNotice(EMAIL, body, result)
        return None

    @abstractmethod
    async def health_check(self) -> bool:
        pass
