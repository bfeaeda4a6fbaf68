"""
Payment Service Factory

    - ENV_MODE=development → MockPaymentService (no API calls)
    - ENV_MODE=staging → StripePaymentService (test keys)
    - ENV_MODE=production → StripePaymentService (live keys)
"""

import logging

from foodtruck.core.config import Settings
from foodtruck.services.payment.base import (
    BasePaymentService,
    PaymentResult,
    RefundResult,
)
from foodtruck.services.payment.mock import MockPaymentService
from foodtruck.services.payment.stripe import StripePaymentService

logger = logging.getLogger(__name__)


def create_payment_service(settings: Settings) -> BasePaymentService:
    """
    Build the payment service ``settings`` asks for.

    Raises:
        ValueError: real services requested but no Stripe key configured
    """
    if settings.use_real_services:
        logger.info(f"Payment Service: Using StripePaymentService ({settings.env_mode.value} mode)")
        return StripePaymentService(settings)

    logger.info("Payment Service: Using MockPaymentService (development mode)")
    return MockPaymentService(
        failure_rate=settings.mock_failure_rate,
        min_latency=settings.mock_min_latency,
        max_latency=settings.mock_max_latency,
    )


__all__ = [
    "create_payment_service",
    "BasePaymentService",
    "PaymentResult",
    "RefundResult",
    "MockPaymentService",
    "StripePaymentService",
]
