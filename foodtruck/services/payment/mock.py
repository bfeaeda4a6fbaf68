"""
Mock Payment Service

Stripe stand-in for development and tests. Every charge and refund it
grants is kept on the instance, and a configurable share of charges is
declined with one of Stripe's decline codes.
"""

import asyncio
import logging
import random
import uuid
from typing import Optional

from foodtruck.services.payment.base import BasePaymentService, PaymentResult, RefundResult

logger = logging.getLogger(__name__)

DECLINES = (
    ("card_declined", "Your card was declined."),
    ("insufficient_funds", "Your card has insufficient funds."),
    ("expired_card", "Your card has expired."),
    ("processing_error", "An error occurred while processing your card."),
)


def _mock_id(prefix: str) -> str:
    return f"{prefix}_mock_{uuid.uuid4().hex[:24]}"


class MockPaymentService(BasePaymentService):
    """
    Attributes:
        failure_rate: Share of charges declined (0.0-1.0)
        min_latency, max_latency: Simulated delay bounds, in seconds
        charges: Granted charges, payment intent id -> amount
        refunds: Granted refunds as (refund id, payment intent id, amount)
    """

    def __init__(self, failure_rate: float = 0.0, min_latency: float = 0.0, max_latency: float = 0.0):
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max(max_latency, min_latency)
        self.charges: dict[str, float] = {}
        self.refunds: list[tuple[str, str, Optional[float]]] = []
        logger.info(f"MockPaymentService initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _pause(self) -> float:
        """Simulated round trip; returns its length in milliseconds."""
        seconds = random.uniform(self.min_latency, self.max_latency)
        if seconds > 0:
            await asyncio.sleep(seconds)
        return seconds * 1000

    async def process_payment(
        self,
        amount: float,
        currency: str = "usd",
        customer_email: Optional[str] = None,
        description: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> PaymentResult:
        if amount <= 0:
            return PaymentResult(success=False, error_message="Amount must be greater than 0", error_code="invalid_amount")

        elapsed = await self._pause()
        if random.random() < self.failure_rate:
            code, text = random.choice(DECLINES)
            logger.debug(f"Mock: ${amount:.2f} declined ({code})")
            return PaymentResult(
                success=False,
                amount=amount,
                currency=currency,
                error_message=text,
                error_code=code,
                response_time_ms=elapsed,
            )

        intent_id = _mock_id("pi")
        self.charges[intent_id] = amount
        logger.info(f"Mock: charged ${amount:.2f} as {intent_id}")
        return PaymentResult(
            success=True,
            payment_intent_id=intent_id,
            amount=amount,
            currency=currency,
            response_time_ms=elapsed,
            metadata={"mock": True, "description": description, **(metadata or {})},
        )

    async def refund_payment(
        self,
        payment_intent_id: str,
        amount: Optional[float] = None,
        reason: Optional[str] = None,
    ) -> RefundResult:
        await self._pause()
        if not payment_intent_id.startswith("pi_"):
            return RefundResult(success=False, status="failed", error_message="Invalid payment intent ID")

        refund_id = _mock_id("re")
        self.refunds.append((refund_id, payment_intent_id, amount))
        logger.info(f"Mock: refunded {payment_intent_id} as {refund_id}")
        return RefundResult(success=True, refund_id=refund_id, amount=amount, status="succeeded")

    async def health_check(self) -> bool:
        return True
