"""
Stripe Payment Service Implementation

Charges order totals as PaymentIntents and refunds them. Used when
ENV_MODE=production or ENV_MODE=staging.

Every call passes the service's own key (``api_key=``); the module-wide
``stripe.api_key`` is never set.

Requirements:
    - STRIPE_SECRET_KEY must be set in environment
"""

import logging
import time
from typing import Optional

import stripe
from stripe import (
    APIConnectionError,
    AuthenticationError,
    CardError,
    InvalidRequestError,
    StripeError,
)

from foodtruck.core.config import Settings
from foodtruck.services.payment.base import (
    BasePaymentService,
    PaymentResult,
    RefundResult,
)

logger = logging.getLogger(__name__)

# Refund states Stripe may still settle; both count as issued
REFUND_ISSUED = ("succeeded", "pending")


def to_cents(amount: float) -> int:
    return int(round(amount * 100))


def from_cents(cents: int) -> float:
    return cents / 100.0


def describe_stripe_error(e: StripeError) -> tuple[str, str]:
    """(error_code, customer-facing message) for a failed Stripe call."""
    if isinstance(e, CardError):
        return e.code or "card_declined", e.user_message or "Your card was declined."
    if isinstance(e, InvalidRequestError):
        return "invalid_request", str(e)
    if isinstance(e, AuthenticationError):
        return "authentication_error", "Payment service configuration error"
    if isinstance(e, APIConnectionError):
        return "connection_error", "Payment service temporarily unavailable"
    return "stripe_error", "Payment processing error"


class StripePaymentService(BasePaymentService):
    """
    Stripe PaymentIntents and Refunds.

    Charges of an order carry the idempotency key ``order-<id>-charge``.
    """

    def __init__(self, settings: Settings):
        if not settings.stripe_secret_key:
            raise ValueError(
                "STRIPE_SECRET_KEY is required for production mode. "
                "Set it in your .env file or environment variables."
            )

        self._api_key = settings.stripe_secret_key
        self._currency = settings.stripe_currency

        logger.info("StripePaymentService initialized")

    @property
    def provider_name(self) -> str:
        return "stripe"

    async def process_payment(
        self,
        amount: float,
        currency: str = "usd",
        customer_email: Optional[str] = None,
        description: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> PaymentResult:
        """Create a PaymentIntent for the order total; the card reader confirms it."""
        if amount <= 0:
            return PaymentResult(
                success=False,
                error_message="Amount must be greater than 0",
                error_code="invalid_amount",
            )

        metadata = {"source": "foodtruck", **(metadata or {})}
        options = {"api_key": self._api_key}
        if metadata.get("order_id"):
            options["idempotency_key"] = f"order-{metadata['order_id']}-charge"
        started = time.monotonic()

        try:
            intent = stripe.PaymentIntent.create(
                amount=to_cents(amount),
                currency=currency or self._currency,
                description=description or "Food truck order",
                receipt_email=customer_email,
                metadata=metadata,
                **options,
            )
        except StripeError as e:
            code, message = describe_stripe_error(e)
            log = logger.warning if isinstance(e, CardError) else logger.error
            log(f"Stripe: charge of ${amount:.2f} failed ({code}) - {e}")
            return PaymentResult(
                success=False,
                error_message=message,
                error_code=code,
                response_time_ms=(time.monotonic() - started) * 1000,
            )

        logger.info(f"Stripe: PaymentIntent {intent.id} for ${amount:.2f} - status={intent.status}")
        return PaymentResult(
            success=True,
            payment_intent_id=intent.id,
            amount=from_cents(intent.amount),
            currency=intent.currency,
            response_time_ms=(time.monotonic() - started) * 1000,
            metadata={"status": intent.status, "client_secret": intent.client_secret},
        )

    async def refund_payment(
        self,
        payment_intent_id: str,
        amount: Optional[float] = None,
        reason: Optional[str] = None,
    ) -> RefundResult:
        params = {"payment_intent": payment_intent_id}
        if amount is not None:
            params["amount"] = to_cents(amount)
        if reason:
            params["reason"] = reason

        try:
            refund = stripe.Refund.create(
                api_key=self._api_key,
                idempotency_key=f"{payment_intent_id}-refund",
                **params,
            )
        except StripeError as e:
            code, message = describe_stripe_error(e)
            logger.error(f"Stripe: refund of {payment_intent_id} failed ({code}) - {e}")
            return RefundResult(success=False, status="failed", error_message=message)

        logger.info(f"Stripe: Refund {refund.id} of {payment_intent_id} - status={refund.status}")
        return RefundResult(
            success=refund.status in REFUND_ISSUED,
            refund_id=refund.id,
            amount=from_cents(refund.amount),
            status=refund.status,
            error_message=None if refund.status in REFUND_ISSUED else f"Refund {refund.status}",
        )

    async def health_check(self) -> bool:
        try:
            stripe.Balance.retrieve(api_key=self._api_key)
        except StripeError as e:
            logger.error(f"Stripe: health check failed - {e}")
            return False
        return True
