"""
Authentication and service dependencies for FastAPI.

This module provides dependencies for protecting routes with session tokens
and for reaching app-wide services.
"""

from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from taximeter.app.services.session_authority import verify

# HTTP Bearer security scheme; missing headers are reported by verify()
security = HTTPBearer(auto_error=False)


async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    """Raw bearer token from the Authorization header, if any."""
    return credentials.credentials if credentials else None


async def get_current_driver(token: Optional[str] = Depends(get_bearer_token)) -> dict:
    """
    FastAPI dependency for session authentication.

    Only the token is checked (signature, algorithm, expiry); there is no
    server-side revocation list.

    Returns:
        Decoded token claims (user_id, driver_id, vehicle_id, company_id, role)

    Raises:
        InvalidTokenError: 401 if the token is missing or invalid
    """
    return verify(token)


def get_compliance_dispatcher(request: Request):
    """Outbound regulator dispatcher created in the application lifespan."""
    return request.app.state.compliance_dispatcher
