"""
Google Maps Geo Service Implementation

Production implementation using the Google Maps Geocoding API.
Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - GOOGLE_MAPS_API_KEY must be set in environment
    - Geocoding API must be enabled in Google Cloud Console
"""

import logging
from datetime import datetime
from typing import Optional

import googlemaps
from googlemaps.exceptions import ApiError, Timeout, TransportError

from foodtruck.core.config import Settings
from foodtruck.services.geo.base import (
    BaseGeoService,
    GeocodeResult,
    format_address,
)

logger = logging.getLogger(__name__)


class GoogleGeoService(BaseGeoService):
    """
    Production Google Maps geo service implementation.

    Raises ValueError when ``settings`` carries no API key.
    """

    def __init__(self, settings: Settings):
        if not settings.google_maps_api_key:
            raise ValueError(
                "GOOGLE_MAPS_API_KEY is required for production mode. "
                "Set it in your .env file or environment variables."
            )

        self._client = googlemaps.Client(key=settings.google_maps_api_key)

        logger.info("GoogleGeoService initialized")

    @property
    def provider_name(self) -> str:
        return "google"

    def _extract_address_components(self, components: list) -> dict[str, Optional[str]]:
        """Pull postal code, city, state and country out of Google's response."""
        result = {
            "postal_code": None,
            "city": None,
            "state": None,
            "country": None,
        }

        for component in components:
            types = component.get("types", [])

            if "postal_code" in types:
                result["postal_code"] = component.get("short_name")
            elif "locality" in types:
                result["city"] = component.get("long_name")
            elif "administrative_area_level_1" in types:
                result["state"] = component.get("short_name")
            elif "country" in types:
                result["country"] = component.get("short_name")

        return result

    async def geocode_address(
        self,
        address: str,
        city: Optional[str] = None,
        state: Optional[str] = None,
        postal_code: Optional[str] = None,
        country: Optional[str] = None,
    ) -> GeocodeResult:
        start_time = datetime.now()
        full_address = format_address(address, city, state, postal_code, country)

        logger.debug(f"Google: Geocoding address - {full_address}")

        try:
            # googlemaps is synchronous, but a single geocode call is short
            geocode_result = self._client.geocode(full_address)
            elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000

            if not geocode_result:
                logger.warning(f"Google: Address not found - {full_address}")
                return GeocodeResult(
                    success=False,
                    error_message="Address not found. Please check and try again.",
                    error_code="address_not_found",
                    response_time_ms=elapsed_ms,
                )

            best = geocode_result[0]
            location = best.get("geometry", {}).get("location", {})
            components = self._extract_address_components(best.get("address_components", []))

            return GeocodeResult(
                success=True,
                formatted_address=best.get("formatted_address", full_address),
                latitude=location.get("lat"),
                longitude=location.get("lng"),
                response_time_ms=elapsed_ms,
                **components,
            )

        except Timeout:
            logger.error("Google: API timeout")
            return GeocodeResult(
                success=False,
                error_message="Address lookup timed out. Please try again.",
                error_code="timeout",
            )

        except ApiError as e:
            logger.error(f"Google: API error - {e}")
            return GeocodeResult(
                success=False,
                error_message="Address lookup service error",
                error_code="api_error",
            )

        except TransportError as e:
            logger.error(f"Google: Transport error - {e}")
            return GeocodeResult(
                success=False,
                error_message="Unable to reach address lookup service",
                error_code="transport_error",
            )

    async def health_check(self) -> bool:
        try:
            return bool(self._client.geocode("New York, NY"))
        except (ApiError, Timeout, TransportError) as e:
            logger.error(f"Google: Health check failed - {e}")
            return False
