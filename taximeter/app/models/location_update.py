"""
Location update database model.

Append-only breadcrumb of every location ping a driver pushes.
"""

from sqlalchemy import Column, Integer, Float, ForeignKey, DateTime
from sqlalchemy.sql import func
from taximeter.app.db.session import Base


class LocationUpdate(Base):
    """
    One location ping.

    Never updated or deleted by this service; retention is handled elsewhere.
    """
    __tablename__ = "location_updates"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # References
    driver_id = Column(Integer, ForeignKey('drivers.id'), nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey('vehicles.id'), nullable=True)

    # GPS fix
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    accuracy = Column(Float, nullable=True)  # meters
    speed = Column(Float, nullable=True)  # km/h
    heading = Column(Float, nullable=True)  # degrees
    altitude = Column(Float, nullable=True)  # meters

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<LocationUpdate(driver_id={self.driver_id}, lat={self.latitude}, lng={self.longitude})>"
