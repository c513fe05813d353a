"""
Driver session tokens.

A session token is an HS256 JWT carrying the driver's identity (user,
driver, vehicle, company, device) and expires after 24 hours. Tokens are
not stored server side; a token is valid until it expires.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from taximeter.app.core.config import settings
from taximeter.app.core.exceptions import InvalidTokenError

# Claims every driver session token must carry
REQUIRED_CLAIMS = ("user_id", "driver_id")


def session_claims(user, driver, device_id: Optional[str] = None) -> Dict[str, Any]:
    """Token claims for a driver logging in from ``device_id``."""
    return {
        "sub": str(user.id),
        "user_id": user.id,
        "driver_id": driver.id,
        "vehicle_id": driver.vehicle_id,
        "company_id": driver.company_id,
        "role": user.role.value,
        "device_id": device_id,
    }


def create_session_token(claims: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign a session token.

    Args:
        claims: Output of ``session_claims`` (or an equivalent dict)
        expires_delta: Lifetime; defaults to ``access_token_expire_minutes``

    Example payload:
        {
            "sub": "12",
            "user_id": 12,
            "driver_id": 4,
            "vehicle_id": 7,
            "company_id": 1,
            "role": "DRIVER",
            "device_id": "meter-01",
            "exp": 1234567890
        }
    """
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    payload = {**claims, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def decode_session_token(token: Optional[str]) -> Dict[str, Any]:
    """
    Verify a session token and return its claims.

    Signature, algorithm and expiry are checked by jose. Tokens signed with
    any other algorithm are refused.

    Raises:
        InvalidTokenError: token missing, badly signed, expired, or without
            a driver identity
    """
    if not token:
        raise InvalidTokenError("Token required")

    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        raise InvalidTokenError()

    if not all(payload.get(claim) for claim in REQUIRED_CLAIMS):
        raise InvalidTokenError("Invalid token payload")

    return payload
