"""
Trip log schemas.
"""

from pydantic import Field
from datetime import datetime
from typing import Any, Dict, List, Optional
from taximeter.app.schemas.base import CamelModel
from taximeter.app.models.trip_enums import TripLogType


class TripLogCreate(CamelModel):
    """
    Trip event pushed by the taxi meter.

    ``log_details`` is an open document; unknown keys are kept as sent.
    """
    log_type: TripLogType
    parent_id: Optional[int] = Field(None, gt=0)
    start_latitude: Optional[float] = Field(None, ge=-90, le=90)
    start_longitude: Optional[float] = Field(None, ge=-180, le=180)
    start_address: Optional[str] = Field(None, max_length=500)
    end_latitude: Optional[float] = Field(None, ge=-90, le=90)
    end_longitude: Optional[float] = Field(None, ge=-180, le=180)
    end_address: Optional[str] = Field(None, max_length=500)
    distance: Optional[float] = Field(None, ge=0)
    duration: Optional[int] = Field(None, ge=0)
    final_price: Optional[float] = Field(None, ge=0)
    tariff_used: Optional[str] = Field(None, max_length=100)
    trip_start_time: Optional[datetime] = None
    trip_end_time: Optional[datetime] = None
    log_details: Optional[Dict[str, Any]] = None


class TripLogCreateResponse(CamelModel):
    id: int
    message: str = "Trip logged successfully"


class TripLogResponse(CamelModel):
    """Trip log as returned to the driver."""
    id: int
    log_type: TripLogType
    parent_id: Optional[int]
    company_id: Optional[int]
    vehicle_id: Optional[int]
    driver_id: int
    user_id: Optional[int]
    start_latitude: Optional[float]
    start_longitude: Optional[float]
    start_address: Optional[str]
    end_latitude: Optional[float]
    end_longitude: Optional[float]
    end_address: Optional[str]
    distance: Optional[float]
    duration: Optional[int]
    final_price: Optional[float]
    tariff_used: Optional[str]
    trip_start_time: Optional[datetime]
    trip_end_time: Optional[datetime]
    log_details: Optional[Dict[str, Any]]
    start_reported: bool
    end_reported: bool
    report_error: Optional[str]
    created_at: datetime
    updated_at: datetime


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class TripLogListResponse(CamelModel):
    trips: List[TripLogResponse]
    pagination: Pagination
