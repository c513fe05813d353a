"""
Compliance report attempt database model.

Audit record of each outbound call to the regulator API.
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey, DateTime, Enum, JSON
from sqlalchemy.sql import func
from taximeter.app.db.session import Base
from taximeter.app.models.trip_enums import ComplianceRequestType


class ComplianceReportAttempt(Base):
    """
    One call to the regulator.

    Append-only. ``status_code`` is 0 when no response was received
    (connection error or timeout).
    """
    __tablename__ = "compliance_report_attempts"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    trip_log_id = Column(Integer, ForeignKey('trip_logs.id'), nullable=False, index=True)

    request_type = Column(Enum(ComplianceRequestType), nullable=False)
    endpoint = Column(String(500), nullable=False)
    payload = Column(JSON, nullable=False)
    response = Column(JSON, nullable=True)
    status_code = Column(Integer, nullable=False)
    success = Column(Boolean, nullable=False, index=True)
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<ComplianceReportAttempt(trip_log_id={self.trip_log_id}, status={self.status_code}, success={self.success})>"
