"""
Location and presence schemas.
"""

from pydantic import Field
from datetime import datetime
from typing import List, Optional
from taximeter.app.schemas.base import CamelModel
from taximeter.app.schemas.session import VehicleSummary, CompanySummary


class LocationPush(CamelModel):
    """Schema for a driver location ping."""
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    accuracy: Optional[float] = Field(None, ge=0)
    speed: Optional[float] = Field(None, ge=0)
    heading: Optional[float] = Field(None, ge=0, le=360)
    altitude: Optional[float] = None


class LocationPushResponse(CamelModel):
    """Response after recording a location ping."""
    id: int
    message: str = "Location updated successfully"


class DriverLocation(CamelModel):
    latitude: float
    longitude: float
    last_update: datetime


class NearbyDriver(CamelModel):
    """A candidate driver in a nearby-drivers answer."""
    id: int
    name: str
    phone: Optional[str] = None
    location: DriverLocation
    distance: float  # km, rounded to 2 decimals
    estimated_arrival_minutes: int
    vehicle: Optional[VehicleSummary] = None
    company: Optional[CompanySummary] = None
    status: str = "available"


class Center(CamelModel):
    lat: float
    lng: float


class NearbyDriversResponse(CamelModel):
    drivers: List[NearbyDriver]
    count: int
    center: Center
    radius: float
