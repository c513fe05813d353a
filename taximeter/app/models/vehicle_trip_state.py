"""
Vehicle trip state database model.

Tracks the single open trip of each vehicle.
"""

from sqlalchemy import Column, Integer, ForeignKey, DateTime
from sqlalchemy.sql import func
from taximeter.app.db.session import Base


class VehicleTripState(Base):
    """
    Open-trip slot per vehicle.

    ``open_trip_id`` is the TRIP_START log of the trip currently running on
    the vehicle, or NULL when the vehicle is idle. The primary key on
    ``vehicle_id`` guarantees one slot per vehicle.
    """
    __tablename__ = "vehicle_trip_states"

    vehicle_id = Column(Integer, ForeignKey('vehicles.id'), primary_key=True)
    open_trip_id = Column(Integer, ForeignKey('trip_logs.id'), nullable=True)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<VehicleTripState(vehicle_id={self.vehicle_id}, open_trip_id={self.open_trip_id})>"
