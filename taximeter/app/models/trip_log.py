"""
Trip log database model.

One row per lifecycle event: driver login/logout and trip start/end.
"""

from sqlalchemy import Column, Integer, String, Float, Text, Boolean, ForeignKey, DateTime, Enum, JSON
from sqlalchemy.sql import func
from taximeter.app.db.session import Base
from taximeter.app.models.trip_enums import TripLogType


class TripLog(Base):
    """
    Trip log event.

    A TRIP_END points at its TRIP_START through ``parent_id``. Apart from the
    regulator bookkeeping columns (``start_reported``, ``end_reported``,
    ``report_error``), rows are immutable once written.
    """
    __tablename__ = "trip_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    log_type = Column(Enum(TripLogType), nullable=False, index=True)
    parent_id = Column(Integer, ForeignKey('trip_logs.id'), nullable=True, index=True)

    # References
    company_id = Column(Integer, ForeignKey('companies.id'), nullable=True, index=True)
    vehicle_id = Column(Integer, ForeignKey('vehicles.id'), nullable=True, index=True)
    driver_id = Column(Integer, ForeignKey('drivers.id'), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=True)

    # Trip data
    start_latitude = Column(Float, nullable=True)
    start_longitude = Column(Float, nullable=True)
    start_address = Column(String(500), nullable=True)
    end_latitude = Column(Float, nullable=True)
    end_longitude = Column(Float, nullable=True)
    end_address = Column(String(500), nullable=True)
    distance = Column(Float, nullable=True)  # km
    duration = Column(Integer, nullable=True)  # seconds
    final_price = Column(Float, nullable=True)
    tariff_used = Column(String(100), nullable=True)
    trip_start_time = Column(DateTime(timezone=True), nullable=True)
    trip_end_time = Column(DateTime(timezone=True), nullable=True)

    # Free-form document (device id, IP, meter extras)
    log_details = Column(JSON, nullable=True)

    # Regulator reporting state
    start_reported = Column(Boolean, default=False, nullable=False)
    end_reported = Column(Boolean, default=False, nullable=False)
    report_error = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<TripLog(id={self.id}, type='{self.log_type.value}', driver_id={self.driver_id})>"
