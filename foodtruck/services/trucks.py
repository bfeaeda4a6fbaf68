"""
Truck discovery for customers: truck locations across every account,
filtered by city or by distance from a point.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from foodtruck.core.exceptions import ValidationError
from foodtruck.models import BusinessAccount, Location
from foodtruck.services.geo.base import haversine_miles


@dataclass
class TruckListing:
    account_id: str
    account_name: str
    location_id: str
    location_name: str
    address1: Optional[str]
    city: Optional[str]
    state: Optional[str]
    latitude: Optional[float]
    longitude: Optional[float]
    distance_miles: Optional[float] = None


async def browse_trucks(
    db: AsyncSession,
    city: Optional[str] = None,
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    radius_miles: Optional[float] = None,
) -> list[TruckListing]:
    """
    List truck locations.

    With ``lat``/``lng`` (and optionally ``radius_miles``) only located
    trucks are returned, nearest first. Otherwise listings are sorted by
    account then location name.
    """
    if (lat is None) != (lng is None):
        raise ValidationError("Both lat and lng are required for a distance search")
    if radius_miles is not None and radius_miles <= 0:
        raise ValidationError("radius_miles must be positive")

    query = (
        select(Location, BusinessAccount.name)
        .join(BusinessAccount, Location.account_id == BusinessAccount.id)
        .where(Location.is_truck_location.is_(True))
        .order_by(BusinessAccount.name, Location.name)
    )
    if city:
        query = query.where(func.lower(Location.city) == city.strip().lower())

    result = await db.execute(query)
    listings = [
        TruckListing(
            account_id=location.account_id,
            account_name=account_name,
            location_id=location.id,
            location_name=location.name,
            address1=location.address1,
            city=location.city,
            state=location.state,
            latitude=location.latitude,
            longitude=location.longitude,
        )
        for location, account_name in result.all()
    ]

    if lat is None:
        return listings

    nearby = []
    for listing in listings:
        if listing.latitude is None or listing.longitude is None:
            continue
        listing.distance_miles = round(
            haversine_miles(lat, lng, listing.latitude, listing.longitude), 2
        )
        if radius_miles is None or listing.distance_miles <= radius_miles:
            nearby.append(listing)

    nearby.sort(key=lambda listing: listing.distance_miles)
    return nearby
