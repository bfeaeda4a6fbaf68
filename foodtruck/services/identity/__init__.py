"""
Identity Service Factory

Returns the mock identity service in development and the Identity Toolkit
service in staging/production.

Usage:
    identity = await create_identity_service(settings).verify_token(token)
"""

import logging

from foodtruck.core.config import Settings
from foodtruck.services.identity.base import BaseIdentityService, Identity
from foodtruck.services.identity.mock import MockIdentityService
from foodtruck.services.identity.toolkit import IdentityToolkitService

logger = logging.getLogger(__name__)


def create_identity_service(settings: Settings) -> BaseIdentityService:
    """Build the identity service ``settings`` asks for."""
    if settings.use_real_services:
        logger.info(f"Identity Service: Using IdentityToolkitService ({settings.env_mode.value} mode)")
        return IdentityToolkitService(settings)

    logger.info("Identity Service: Using MockIdentityService (development mode)")
    return MockIdentityService()


__all__ = [
    "create_identity_service",
    "BaseIdentityService",
    "Identity",
    "MockIdentityService",
    "IdentityToolkitService",
]
