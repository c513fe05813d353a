"""
Trip log enumerations.
"""

import enum


class TripLogType(str, enum.Enum):
    """Kinds of events recorded in the trip log."""
    DRIVER_LOGIN = "DRIVER_LOGIN"
    DRIVER_LOGOUT = "DRIVER_LOGOUT"
    TRIP_START = "TRIP_START"  # Reported to the regulator
    TRIP_END = "TRIP_END"  # Reported to the regulator, links to its TRIP_START


class ComplianceRequestType(str, enum.Enum):
    """Regulator endpoint a report was sent to."""
    TRIP_START = "TRIP_START"
    TRIP_END = "TRIP_END"

    @property
    def path(self) -> str:
        return self.value.lower()


REPORTED_LOG_TYPES = {TripLogType.TRIP_START, TripLogType.TRIP_END}
