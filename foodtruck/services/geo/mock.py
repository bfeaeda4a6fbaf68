"""
Mock Geo Service Implementation

Simulates the Google Maps Geocoding API without making real API calls.
Used in development mode (ENV_MODE=development).

Behavior:
    - Derives stable coordinates near New York City from the address text,
      so the same address always lands on the same spot
    - Simulates configurable latency and failure rate
"""

import asyncio
import hashlib
import random
import logging
from datetime import datetime
from typing import Optional

from foodtruck.services.geo.base import (
    BaseGeoService,
    GeocodeResult,
    format_address,
)

logger = logging.getLogger(__name__)


class MockGeoService(BaseGeoService):
    """
    Mock implementation of the geo service.

    Attributes:
        failure_rate: Probability of simulated API failure (0.0-1.0)
        min_latency: Minimum response time in seconds
        max_latency: Maximum response time in seconds
    """

    # NYC center coordinates for generating realistic mock data
    NYC_CENTER_LAT = 40.7128
    NYC_CENTER_LNG = -74.0060

    def __init__(
        self,
        failure_rate: float = 0.0,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
    ):
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max(max_latency, min_latency)

        logger.info(f"MockGeoService initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _simulate_latency(self) -> float:
        latency = random.uniform(self.min_latency, self.max_latency)
        if latency > 0:
            await asyncio.sleep(latency)
        return latency * 1000

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    def _coordinates_for(self, full_address: str) -> tuple[float, float]:
        """Stable pseudo-coordinates within ~5km of the NYC center."""
        digest = hashlib.sha256(full_address.lower().encode("utf-8")).digest()
        lat_offset = (digest[0] / 255 - 0.5) * 0.1
        lng_offset = (digest[1] / 255 - 0.5) * 0.1
        return (
            round(self.NYC_CENTER_LAT + lat_offset, 6),
            round(self.NYC_CENTER_LNG + lng_offset, 6),
        )

    async def geocode_address(
        self,
        address: str,
        city: Optional[str] = None,
        state: Optional[str] = None,
        postal_code: Optional[str] = None,
        country: Optional[str] = None,
    ) -> GeocodeResult:
        start_time = datetime.now()
        await self._simulate_latency()

        if not address or not address.strip():
            return GeocodeResult(
                success=False,
                error_message="Address not found. Please check and try again.",
                error_code="address_not_found",
            )

        if self._should_fail():
            logger.warning("Mock: Simulated geocoding failure")
            return GeocodeResult(
                success=False,
                error_message="Address lookup service error",
                error_code="api_error",
            )

        full_address = format_address(address, city, state, postal_code, country)
        lat, lng = self._coordinates_for(full_address)
        elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000

        logger.debug(f"Mock: Geocoded '{full_address}' -> ({lat}, {lng})")

        return GeocodeResult(
            success=True,
            formatted_address=full_address,
            latitude=lat,
            longitude=lng,
            postal_code=postal_code,
            city=city,
            state=state,
            country=country or "US",
            response_time_ms=elapsed_ms,
        )

    async def health_check(self) -> bool:
        return True
