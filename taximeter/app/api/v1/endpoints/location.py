"""
Location API endpoints.

Drivers push GPS pings; riders look up available drivers nearby.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from taximeter.app.db.session import get_db
from taximeter.app.core.config import settings
from taximeter.app.core.dependencies import get_current_driver
from taximeter.app.core.exceptions import ValidationError
from taximeter.app.core.redis_client import get_redis
from taximeter.app.schemas.location import (
    LocationPush, LocationPushResponse, NearbyDriver, NearbyDriversResponse, DriverLocation, Center
)
from taximeter.app.schemas.session import VehicleSummary, CompanySummary
from taximeter.app.services import presence

router = APIRouter(prefix="/location", tags=["Location"])


@router.post("", response_model=LocationPushResponse)
async def push_location(
    location: LocationPush,
    current_driver: dict = Depends(get_current_driver),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    """
    Record the authenticated driver's current position.
    """
    ping = await presence.record_location(db, redis, current_driver, location)
    return LocationPushResponse(id=ping.id)


@router.get("", response_model=NearbyDriversResponse)
async def nearby_drivers(
    lat: Optional[float] = Query(None, ge=-90, le=90, description="Rider latitude"),
    lng: Optional[float] = Query(None, ge=-180, le=180, description="Rider longitude"),
    radius: float = Query(settings.nearby_default_radius_km, gt=0, le=500, description="Search radius in km"),
    db: AsyncSession = Depends(get_db)
):
    """
    Available drivers around a point, closest first.

    Public endpoint used by the rider app.
    """
    if lat is None or lng is None:
        raise ValidationError("Latitude and longitude are required")

    candidates = await presence.find_nearby(db, lat, lng, radius)

    drivers = [
        NearbyDriver(
            id=c.driver.id,
            name=c.driver.full_name,
            phone=c.driver.phone,
            location=DriverLocation(
                latitude=c.driver.current_latitude,
                longitude=c.driver.current_longitude,
                last_update=c.driver.last_location_update,
            ),
            distance=round(c.distance_km, 2),
            estimated_arrival_minutes=c.estimated_arrival_minutes,
            vehicle=VehicleSummary.model_validate(c.vehicle) if c.vehicle else None,
            company=CompanySummary.model_validate(c.company) if c.company else None,
        )
        for c in candidates
    ]

    return NearbyDriversResponse(
        drivers=drivers,
        count=len(drivers),
        center=Center(lat=lat, lng=lng),
        radius=radius,
    )
