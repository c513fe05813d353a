"""
Directory enumerations.

Defines user roles and account status for the taxi dispatch system.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        ADMIN: Platform administrator
        COMPANY_ADMIN: Manages a taxi company
        DRIVER: Operates a vehicle and uses the taxi meter app
        RIDER: Looks up nearby taxis
    """
    ADMIN = "ADMIN"
    COMPANY_ADMIN = "COMPANY_ADMIN"
    DRIVER = "DRIVER"
    RIDER = "RIDER"


class AccountStatus(str, enum.Enum):
    """Status shared by companies, vehicles and drivers."""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"
