"""
Session API endpoints.

Driver login (POST /session) and logout (DELETE /session) for the taxi meter app.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from taximeter.app.db.session import get_db
from taximeter.app.core.dependencies import get_bearer_token
from taximeter.app.core.observability import client_ip
from taximeter.app.schemas.session import (
    SessionCreate, SessionResponse, DriverProfile, VehicleSummary, CompanySummary, MessageResponse
)
from taximeter.app.services import session_authority

router = APIRouter(prefix="/session", tags=["Session"])


@router.post("", response_model=SessionResponse)
async def create_session(
    credentials: SessionCreate,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Authenticate a driver and return a 24-hour session token.

    The driver is marked online and a DRIVER_LOGIN trip log is written.
    Wrong credentials and accounts without a driver profile both answer 401
    with the same message; inactive driver or company answers 403.
    """
    session = await session_authority.authenticate(
        db,
        email=credentials.email,
        password=credentials.password,
        device_id=credentials.device_id,
        ip_address=client_ip(request),
    )

    driver, vehicle, company = session.driver, session.vehicle, session.company

    return SessionResponse(
        token=session.token,
        driver=DriverProfile(
            id=driver.id,
            name=driver.full_name,
            email=session.user.email,
            phone=driver.phone,
            taxi_driver_license=driver.taxi_driver_license,
            vehicle=VehicleSummary.model_validate(vehicle) if vehicle else None,
            company=CompanySummary.model_validate(company),
        ),
    )


@router.delete("", response_model=MessageResponse)
async def delete_session(
    request: Request,
    token: Optional[str] = Depends(get_bearer_token),
    db: AsyncSession = Depends(get_db)
):
    """
    Log the driver out.

    Marks the driver offline and writes a DRIVER_LOGOUT trip log.
    """
    await session_authority.end_session(db, token, ip_address=client_ip(request))
    return MessageResponse(message="Logout successful")
