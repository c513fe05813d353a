"""
Driver database model.

Holds the driver profile plus the presence fields (online flag and cached
current location) maintained by the session and presence services.
"""

from sqlalchemy import Column, Integer, String, Float, Boolean, ForeignKey, DateTime, Enum, Index
from sqlalchemy.sql import func
from taximeter.app.db.session import Base
from taximeter.app.models.enums import AccountStatus


class Driver(Base):
    """
    Driver profile and presence.

    Created and retired by the driver directory. This service only flips
    ``is_online`` and updates the ``current_*`` / ``last_location_update`` fields.
    """
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # References
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, unique=True)
    company_id = Column(Integer, ForeignKey('companies.id'), nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey('vehicles.id'), nullable=True, index=True)

    # Profile
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    phone = Column(String(50), nullable=True)
    taxi_driver_license = Column(String(100), nullable=True)
    status = Column(Enum(AccountStatus), default=AccountStatus.ACTIVE, nullable=False)

    # Presence
    is_online = Column(Boolean, default=False, nullable=False)
    current_latitude = Column(Float, nullable=True)
    current_longitude = Column(Float, nullable=True)
    last_location_update = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index('ix_drivers_presence', 'is_online', 'status', 'last_location_update'),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<Driver(id={self.id}, name='{self.full_name}', online={self.is_online})>"
