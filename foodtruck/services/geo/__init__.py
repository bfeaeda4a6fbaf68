"""
Geo Service Factory

Mock geocoder in development, Google Maps in staging and production.

Usage:
    geo_service = create_geo_service(settings)
    result = await geo_service.geocode_address("350 Fifth Avenue", city="New York")
"""

import logging

from foodtruck.core.config import Settings
from foodtruck.services.geo.base import (
    BaseGeoService,
    GeocodeResult,
    haversine_miles,
)
from foodtruck.services.geo.mock import MockGeoService
from foodtruck.services.geo.google import GoogleGeoService

logger = logging.getLogger(__name__)


def create_geo_service(settings: Settings) -> BaseGeoService:
    """
    Build the geo service ``settings`` asks for.

    Raises:
        ValueError: real services requested but no Google API key configured
    """
    if settings.use_real_services:
        logger.info(f"Geo Service: Using GoogleGeoService ({settings.env_mode.value} mode)")
        return GoogleGeoService(settings)

    logger.info("Geo Service: Using MockGeoService (development mode)")
    return MockGeoService(
        failure_rate=settings.mock_failure_rate,
        min_latency=settings.mock_min_latency,
        max_latency=settings.mock_max_latency,
    )


__all__ = [
    "create_geo_service",
    "BaseGeoService",
    "GeocodeResult",
    "haversine_miles",
    "MockGeoService",
    "GoogleGeoService",
]
