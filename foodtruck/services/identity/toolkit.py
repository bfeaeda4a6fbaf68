"""
Identity Toolkit Service

Production identity implementation. Looks ID tokens up through the
Identity Toolkit REST API (``accounts:lookup``), which answers with the
account behind a valid token and with HTTP 400 for an invalid or expired
one.

Requirements:
    - IDENTITY_API_KEY must be set in environment
"""

import logging
from typing import Optional

import httpx

from foodtruck.core.config import Settings
from foodtruck.core.exceptions import ExternalServiceError
from foodtruck.services.identity.base import BaseIdentityService, Identity

logger = logging.getLogger(__name__)


class IdentityToolkitService(BaseIdentityService):
    """Verifies ID tokens against the Identity Toolkit REST API."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        if not settings.identity_api_key:
            raise ValueError(
                "IDENTITY_API_KEY is required for production mode. "
                "Set it in your .env file or environment variables."
            )

        self._api_key = settings.identity_api_key
        self._base_url = settings.identity_toolkit_url.rstrip("/")
        self._timeout = settings.identity_timeout_seconds
        self._transport = transport

        logger.info("IdentityToolkitService initialized")

    @property
    def provider_name(self) -> str:
        return "identity_toolkit"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def verify_token(self, token: str) -> Optional[Identity]:
        try:
            async with self._client() as client:
                response = await client.post(
                    "/accounts:lookup",
                    params={"key": self._api_key},
                    json={"idToken": token},
                )
        except httpx.HTTPError as e:
            logger.error(f"Identity Toolkit: request failed - {e}")
            raise ExternalServiceError("Identity provider is unreachable")

        if response.status_code == 400:
            logger.info("Identity Toolkit: token rejected")
            return None
        if response.status_code != 200:
            logger.error(f"Identity Toolkit: unexpected status {response.status_code}")
            raise ExternalServiceError("Identity provider returned an error")

        users = response.json().get("users") or []
        if not users:
            return None

        user = users[0]
        providers = user.get("providerUserInfo") or []
        return Identity(
            subject_id=user["localId"],
            email=user.get("email"),
            display_name=user.get("displayName"),
            provider=providers[0].get("providerId") if providers else "password",
        )

    async def health_check(self) -> bool:
        # A lookup with a junk token must come back as a clean 400
        try:
            async with self._client() as client:
                response = await client.post(
                    "/accounts:lookup",
                    params={"key": self._api_key},
                    json={"idToken": "health-check"},
                )
            return response.status_code in (200, 400)
        except httpx.HTTPError as e:
            logger.error(f"Identity Toolkit: health check failed - {e}")
            return False
