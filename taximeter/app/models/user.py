"""
User database model.

Login identities. Drivers additionally have a row in ``drivers``.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum
from sqlalchemy.sql import func
from taximeter.app.db.session import Base
from taximeter.app.models.enums import UserRole


class User(Base):
    """
    User model for authentication.

    Owned by the driver directory; this service only reads it.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(200), nullable=True)
    phone = Column(String(50), nullable=True)
    hashed_password = Column(String(255), nullable=True)  # NULL for SSO-only accounts
    is_active = Column(Boolean, default=True, nullable=False)

    role = Column(Enum(UserRole), default=UserRole.DRIVER, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role.value}')>"
