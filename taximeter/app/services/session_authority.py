"""
Session authority: driver login, logout and token verification.

Login checks the driver directory (user, driver profile, company), issues a
24-hour signed token and marks the driver online. Logout marks the driver
offline. Both append a DRIVER_LOGIN / DRIVER_LOGOUT trip log.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taximeter.app.core.exceptions import (
    AccountSuspendedError,
    AuthError,
    DriverProfileRequiredError,
    InvalidCredentialsError,
    InvalidTokenError,
)
from taximeter.app.core.jwt import create_session_token, decode_session_token, session_claims
from taximeter.app.core.security import verify_password
from taximeter.app.models.company import Company
from taximeter.app.models.driver import Driver
from taximeter.app.models.enums import AccountStatus
from taximeter.app.models.trip_enums import TripLogType
from taximeter.app.models.trip_log import TripLog
from taximeter.app.models.user import User
from taximeter.app.models.vehicle import Vehicle
from taximeter.app.services.audit import AuditAction, log_auth_event

logger = logging.getLogger("taximeter.session")


@dataclass
class AuthenticatedSession:
    token: str
    user: User
    driver: Driver
    company: Company
    vehicle: Optional[Vehicle]


def verify(token: Optional[str]) -> Dict[str, Any]:
    """
    Validate a session token and return its claims.

    Raises:
        InvalidTokenError: token missing, badly signed, signed with another
            algorithm, expired, or not carrying a driver identity
    """
    claims = decode_session_token(token)
    logger.debug("Session token verified", extra={"driver_id": claims["driver_id"]})
    return claims


async def _reject(
    db: AsyncSession,
    exc: AuthError,
    email: str,
    user: Optional[User],
    ip_address: Optional[str],
    detail: Optional[str] = None,
):
    """Audit and log a failed login, then raise the error."""
    reason = getattr(exc, "reason", "unknown")
    logger.warning(
        "Login rejected",
        extra={"email": email, "reason": reason, "detail": detail, "ip": ip_address},
    )
    await log_auth_event(
        db=db,
        action=AuditAction.LOGIN_FAILED,
        user_id=user.id if user else None,
        email=email,
        ip_address=ip_address,
        metadata={"reason": reason, "detail": detail},
    )
    raise exc


async def authenticate(
    db: AsyncSession,
    email: str,
    password: str,
    device_id: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> AuthenticatedSession:
    """
    Log a driver in.

    Raises:
        InvalidCredentialsError: unknown email, no password set, wrong password
        DriverProfileRequiredError: the account has no driver profile
        AccountSuspendedError: user, driver or company is not active
    """
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if not user or not user.hashed_password:
        await _reject(db, InvalidCredentialsError(), email, user, ip_address, "unknown user or no password")

    if not verify_password(password, user.hashed_password):
        await _reject(db, InvalidCredentialsError(), email, user, ip_address, "wrong password")

    result = await db.execute(select(Driver).where(Driver.user_id == user.id))
    driver = result.scalar_one_or_none()

    if not driver:
        await _reject(db, DriverProfileRequiredError(), email, user, ip_address)

    company = await db.get(Company, driver.company_id)

    if not user.is_active:
        await _reject(db, AccountSuspendedError("user"), email, user, ip_address, "user account disabled")
    if driver.status != AccountStatus.ACTIVE:
        await _reject(db, AccountSuspendedError("driver"), email, user, ip_address, "driver not active")
    if company is None or company.status != AccountStatus.ACTIVE:
        await _reject(db, AccountSuspendedError("company"), email, user, ip_address, "company not active")

    vehicle = await db.get(Vehicle, driver.vehicle_id) if driver.vehicle_id else None

    token = create_session_token(session_claims(user, driver, device_id))

    now = datetime.now(timezone.utc)
    driver.is_online = True
    driver.last_location_update = now

    db.add(TripLog(
        log_type=TripLogType.DRIVER_LOGIN,
        company_id=driver.company_id,
        vehicle_id=driver.vehicle_id,
        driver_id=driver.id,
        user_id=user.id,
        log_details={
            "deviceId": device_id,
            "loginTime": now.isoformat(),
            "ipAddress": ip_address or "unknown",
        },
    ))
    await db.commit()

    await log_auth_event(
        db=db,
        action=AuditAction.LOGIN_SUCCESS,
        user_id=user.id,
        email=email,
        ip_address=ip_address,
        metadata={"driver_id": driver.id, "device_id": device_id},
    )
    logger.info("Driver logged in", extra={"driver_id": driver.id, "vehicle_id": driver.vehicle_id})

    return AuthenticatedSession(token=token, user=user, driver=driver, company=company, vehicle=vehicle)


async def end_session(db: AsyncSession, token: Optional[str], ip_address: Optional[str] = None) -> None:
    """
    Log a driver out.

    The token is verified first; an invalid or expired token leaves the
    driver's online flag untouched.
    """
    claims = verify(token)

    driver = await db.get(Driver, claims["driver_id"])
    if driver is None:
        raise InvalidTokenError("Unknown driver")

    now = datetime.now(timezone.utc)
    driver.is_online = False
    driver.last_location_update = now

    db.add(TripLog(
        log_type=TripLogType.DRIVER_LOGOUT,
        company_id=claims.get("company_id"),
        vehicle_id=claims.get("vehicle_id"),
        driver_id=driver.id,
        user_id=claims.get("user_id"),
        log_details={
            "deviceId": claims.get("device_id"),
            "logoutTime": now.isoformat(),
            "ipAddress": ip_address or "unknown",
        },
    ))
    await db.commit()

    await log_auth_event(
        db=db,
        action=AuditAction.LOGOUT,
        user_id=claims.get("user_id"),
        email=None,
        ip_address=ip_address,
        metadata={"driver_id": driver.id},
    )
    logger.info("Driver logged out", extra={"driver_id": driver.id})
