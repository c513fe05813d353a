"""
Session Pydantic schemas.

Request and response schemas for driver login and logout.
"""

from pydantic import EmailStr, Field
from typing import Optional
from taximeter.app.schemas.base import CamelModel


class SessionCreate(CamelModel):
    """
    Schema for driver login.

    Used by POST /session.
    """
    email: EmailStr = Field(..., description="Driver account email")
    password: str = Field(..., min_length=1, description="Password")
    device_id: Optional[str] = Field(default=None, max_length=200, description="Taxi meter device identifier")


class VehicleSummary(CamelModel):
    id: int
    license_plate: str
    brand: Optional[str] = None
    model: Optional[str] = None
    color: Optional[str] = None


class CompanySummary(CamelModel):
    id: int
    name: str
    taxi_license_number: Optional[str] = None


class DriverProfile(CamelModel):
    """Driver profile returned after a successful login."""
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    taxi_driver_license: Optional[str] = None
    vehicle: Optional[VehicleSummary] = None
    company: CompanySummary


class SessionResponse(CamelModel):
    """Returned by a successful login."""
    token: str
    driver: DriverProfile
    message: str = "Authentication successful"


class MessageResponse(CamelModel):
    message: str
