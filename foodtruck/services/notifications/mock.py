"""
Mock Notification Service

Keeps every message it "sends" in ``sent`` instead of delivering it.
Failure rate and latency are configurable for development and tests.
"""

import asyncio
import logging
import random
import uuid
from typing import Optional

from foodtruck.services.notifications.base import (
    EMAIL,
    SMS,
    BaseNotificationService,
    NotificationResult,
)

logger = logging.getLogger(__name__)


class MockNotificationService(BaseNotificationService):
    """
    In-memory notification outbox.

    Attributes:
        failure_rate: Share of sends that fail (0.0-1.0)
        max_latency: Upper bound of the simulated delay, in seconds
        sent: Delivered messages as ``{"channel", "to", "body", "id"}``
    """

    def __init__(self, failure_rate: float = 0.0, max_latency: float = 0.0):
        self.failure_rate = failure_rate
        self.max_latency = max_latency
        self.sent: list[dict] = []
        logger.info(f"MockNotificationService initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _deliver(self, channel: str, to: str, body: str) -> NotificationResult:
        if self.max_latency > 0:
            await asyncio.sleep(random.uniform(0, self.max_latency))

        if random.random() < self.failure_rate:
            logger.warning(f"Mock: {channel} to {to} failed (simulated)")
            return NotificationResult(
                success=False,
                error_message=f"Simulated {channel} failure",
                provider="mock",
            )

        message_id = f"{channel}_mock_{uuid.uuid4().hex[:12]}"
        self.sent.append({"channel": channel, "to": to, "body": body, "id": message_id})
        logger.info(f"Mock: {channel} to {to} queued as {message_id}")
        return NotificationResult(success=True, message_id=message_id, provider="mock")

    async def send_sms(self, to_phone: str, message: str) -> NotificationResult:
        return await self._deliver(SMS, to_phone, message)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        return await self._deliver(EMAIL, to_email, body_text or body_html)

    async def health_check(self) -> bool:
        return True
