"""
Mock Identity Service

Development stand-in for the identity provider. Accepts tokens of the form

    <subject id>|<email>|<display name>

where email and display name are optional. No signature is checked.
"""

import logging
from typing import Optional

from foodtruck.services.identity.base import BaseIdentityService, Identity

logger = logging.getLogger(__name__)

TOKEN_SEPARATOR = "|"


class MockIdentityService(BaseIdentityService):
    """Mock identity service for development and tests."""

    @property
    def provider_name(self) -> str:
        return "mock"

    async def verify_token(self, token: str) -> Optional[Identity]:
        parts = [part.strip() for part in token.split(TOKEN_SEPARATOR)]
        subject_id = parts[0] if parts else ""
        if not subject_id:
            logger.debug("Mock: rejected empty token")
            return None

        email = parts[1] if len(parts) > 1 and parts[1] else None
        display_name = parts[2] if len(parts) > 2 and parts[2] else None

        return Identity(
            subject_id=subject_id,
            email=email,
            display_name=display_name,
            provider="password",
        )

    async def health_check(self) -> bool:
        return True
