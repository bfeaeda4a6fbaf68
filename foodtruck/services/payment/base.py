"""
Payment Service Abstract Base Class

Orders are charged and refunded through this interface. The Stripe
implementation talks to Stripe; the mock one fabricates Stripe-shaped
ids so the rest of the service cannot tell them apart.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class PaymentResult:
    """
    Outcome of a charge.

    ``error_code`` follows Stripe's decline codes (card_declined, ...)
    so API clients can show a specific reason.
    """
    success: bool
    payment_intent_id: Optional[str] = None
    amount: Optional[float] = None
    currency: str = "usd"
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    response_time_ms: float = 0.0
    metadata: dict = field(default_factory=dict)


@dataclass
class RefundResult:
    """Outcome of a refund; ``status`` is Stripe's (pending, succeeded, failed)."""
    success: bool
    refund_id: Optional[str] = None
    amount: Optional[float] = None
    status: str = "pending"
    error_message: Optional[str] = None


class BasePaymentService(ABC):
    """Charges and refunds order totals, amounts in currency units."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def process_payment(
        self,
        amount: float,
        currency: str = "usd",
        customer_email: Optional[str] = None,
        description: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> PaymentResult:
        """Charge ``amount``. Declines are reported in the result, not raised."""

    @abstractmethod
    async def refund_payment(
        self,
        payment_intent_id: str,
        amount: Optional[float] = None,
        reason: Optional[str] = None,
    ) -> RefundResult:
        """Refund a charge, in full when ``amount`` is None."""

    @abstractmethod
    async def health_check(self) -> bool:
        pass
