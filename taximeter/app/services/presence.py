"""
Presence store: driver location ingestion and nearby-driver lookup.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taximeter.app.core.config import settings
from taximeter.app.core.exceptions import InternalError, InvalidLocationError, InvalidTokenError
from taximeter.app.models.company import Company
from taximeter.app.models.driver import Driver
from taximeter.app.models.enums import AccountStatus
from taximeter.app.models.location_update import LocationUpdate
from taximeter.app.models.vehicle import Vehicle
from taximeter.app.schemas.location import LocationPush
from taximeter.app.services.geo import EARTH_RADIUS_KM, distance_km
from taximeter.app.services.presence_events import publish_presence_changed

logger = logging.getLogger("taximeter.presence")

MINUTES_PER_KM = 2  # Rough pickup estimate used by the rider app

KM_PER_DEGREE_LATITUDE = EARTH_RADIUS_KM * math.pi / 180


@dataclass
class NearbyCandidate:
    driver: Driver
    vehicle: Optional[Vehicle]
    company: Optional[Company]
    distance_km: float

    @property
    def estimated_arrival_minutes(self) -> int:
        return math.ceil(self.distance_km * MINUTES_PER_KM)


async def record_location(
    db: AsyncSession,
    redis,
    claims: dict,
    coords: LocationPush,
) -> LocationUpdate:
    """
    Store a location ping for the authenticated driver.

    The driver's cached position and the new ping are committed together.
    Concurrent pings for the same driver each get their own row; the cached
    position ends up at whichever commit lands last.

    Raises:
        InvalidLocationError: latitude or longitude missing
        InternalError: the write could not be committed
    """
    if coords.latitude is None or coords.longitude is None:
        raise InvalidLocationError()

    driver = await db.get(Driver, claims["driver_id"])
    if driver is None:
        raise InvalidTokenError("Unknown driver")

    now = datetime.now(timezone.utc)
    driver.current_latitude = coords.latitude
    driver.current_longitude = coords.longitude
    driver.last_location_update = now

    ping = LocationUpdate(
        driver_id=driver.id,
        vehicle_id=claims.get("vehicle_id"),
        latitude=coords.latitude,
        longitude=coords.longitude,
        accuracy=coords.accuracy,
        speed=coords.speed,
        heading=coords.heading,
        altitude=coords.altitude,
    )
    db.add(ping)

    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Location write failed", extra={"driver_id": driver.id})
        raise InternalError("Could not record location") from exc

    await db.refresh(ping)

    await publish_presence_changed(redis, {
        "driverId": driver.id,
        "vehicleId": claims.get("vehicle_id"),
        "companyId": claims.get("company_id"),
        "latitude": coords.latitude,
        "longitude": coords.longitude,
        "accuracy": coords.accuracy,
        "speed": coords.speed,
        "heading": coords.heading,
        "timestamp": now.isoformat(),
    })

    return ping


async def find_nearby(
    db: AsyncSession,
    lat: float,
    lng: float,
    radius_km: float,
    now: Optional[datetime] = None,
) -> List[NearbyCandidate]:
    """
    Available drivers within ``radius_km`` of (lat, lng), closest first.

    Only drivers that are online, ACTIVE, have a position and reported it
    within the freshness window are considered. Ties on distance are broken
    by driver id. Returns an empty list when nobody qualifies.
    """
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(seconds=settings.presence_freshness_seconds)

    # Latitude band pre-filter; a point further north/south than this cannot be within radius
    lat_delta = radius_km / KM_PER_DEGREE_LATITUDE

    query = (
        select(Driver, Vehicle, Company)
        .outerjoin(Vehicle, Driver.vehicle_id == Vehicle.id)
        .outerjoin(Company, Driver.company_id == Company.id)
        .where(
            Driver.is_online.is_(True),
            Driver.status == AccountStatus.ACTIVE,
            Driver.current_latitude.is_not(None),
            Driver.current_longitude.is_not(None),
            Driver.last_location_update >= cutoff,
            Driver.current_latitude.between(lat - lat_delta, lat + lat_delta),
        )
    )
    result = await db.execute(query)

    candidates = []
    for driver, vehicle, company in result.all():
        distance = distance_km(lat, lng, driver.current_latitude, driver.current_longitude)
        if distance <= radius_km:
            candidates.append(NearbyCandidate(driver, vehicle, company, distance))

    candidates.sort(key=lambda c: (c.distance_km, c.driver.id))
    return candidates
