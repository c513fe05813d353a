"""
Audit logging service for tracking authentication events.

Keeps the internal reason for every failed login, which the API itself
never reveals to the caller.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from taximeter.app.models.audit_log import AuditLog


class AuditAction:
    """Standardized audit action constants."""
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    LOGOUT = "LOGOUT"


async def log_auth_event(
    db: AsyncSession,
    action: str,
    user_id: Optional[int],
    email: Optional[str],
    ip_address: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Log an authentication event (login success/failure, logout).

    Args:
        db: Database session
        action: One of the AuditAction constants
        user_id: ID of the user, if known
        email: Email used for the attempt
        ip_address: Caller IP address
        metadata: Additional context (e.g., failure reason)

    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_id=user_id,
        actor_email=email,
        action=action,
        meta_data=metadata,
        ip_address=ip_address
    )

    db.add(audit_log)
    await db.commit()
    await db.refresh(audit_log)

    return audit_log
