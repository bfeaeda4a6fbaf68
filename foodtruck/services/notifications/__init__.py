"""
Notification Service Factory

Mock outbox in development, Twilio/SendGrid in staging and production.
"""

import logging

from foodtruck.core.config import Settings
from foodtruck.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
    ReadyNotice,
)
from foodtruck.services.notifications.mock import MockNotificationService
from foodtruck.services.notifications.real import RealNotificationService

logger = logging.getLogger(__name__)


def create_notification_service(settings: Settings) -> BaseNotificationService:
    """Build the notification service ``settings`` asks for."""
    if settings.use_real_services:
        logger.info(f"Notification Service: Using RealNotificationService ({settings.env_mode.value} mode)")
        return RealNotificationService(settings)

    logger.info("Notification Service: Using MockNotificationService (development mode)")
    return MockNotificationService(
        failure_rate=settings.mock_failure_rate,
        max_latency=settings.mock_max_latency,
    )


__all__ = [
    "create_notification_service",
    "BaseNotificationService",
    "NotificationResult",
    "ReadyNotice",
    "MockNotificationService",
    "RealNotificationService",
]
