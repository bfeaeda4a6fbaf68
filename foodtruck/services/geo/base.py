"""
Geo Service Abstract Base Class

Defines the interface contract for geocoding truck locations. Both
MockGeoService and GoogleGeoService implement it.

Use Cases:
    - Filling in coordinates when an owner saves a location by address
    - Distance filtering when customers browse trucks near them
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

EARTH_RADIUS_MILES = 3958.8


@dataclass
class GeocodeResult:
    """
    Standardized result from geocoding an address.

    Attributes:
        success: Whether the address was found
        formatted_address: Standardized address format
        latitude: GPS latitude coordinate
        longitude: GPS longitude coordinate
        postal_code: Extracted postal code
        city: Extracted city name
        state: Extracted state
        country: Country code (e.g., "US")
        error_message: Error description if geocoding failed
        error_code: Machine-readable error code
        response_time_ms: API response time
    """
    success: bool
    formatted_address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    response_time_ms: float = 0.0


def format_address(
    address: str,
    city: Optional[str] = None,
    state: Optional[str] = None,
    postal_code: Optional[str] = None,
    country: Optional[str] = None,
) -> str:
    """Join the non-empty parts of an address into one line."""
    region = " ".join(part for part in (state, postal_code) if part)
    return ", ".join(part for part in (address, city, region, country) if part)


def haversine_miles(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points in miles."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_MILES * math.asin(math.sqrt(a))


class BaseGeoService(ABC):
    """
    Abstract base class for geolocation services.

    Example:
        >>> service = create_geo_service(settings)
        >>> result = await service.geocode_address("350 Fifth Avenue", city="New York")
        >>> if result.success:
        ...     print(result.latitude, result.longitude)
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of the geo provider ("mock", "google")."""
        pass

    @abstractmethod
    async def geocode_address(
        self,
        address: str,
        city: Optional[str] = None,
        state: Optional[str] = None,
        postal_code: Optional[str] = None,
        country: Optional[str] = None,
    ) -> GeocodeResult:
        """
        Resolve an address to coordinates.

        Returns:
            GeocodeResult: success=False when the address cannot be found
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Verify connectivity to the geo service."""
        pass
