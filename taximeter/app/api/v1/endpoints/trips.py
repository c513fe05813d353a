"""
Trip log API endpoints.

The taxi meter records login/logout and trip start/end events here.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from taximeter.app.db.session import get_db
from taximeter.app.core.dependencies import get_current_driver, get_compliance_dispatcher
from taximeter.app.schemas.trip_log import (
    TripLogCreate, TripLogCreateResponse, TripLogListResponse, TripLogResponse, Pagination
)
from taximeter.app.services import trip_lifecycle

router = APIRouter(prefix="/trips", tags=["Trips"])


@router.post("", response_model=TripLogCreateResponse)
async def record_trip_event(
    event: TripLogCreate,
    current_driver: dict = Depends(get_current_driver),
    db: AsyncSession = Depends(get_db),
    dispatcher=Depends(get_compliance_dispatcher)
):
    """
    Record a trip log event.

    TRIP_START and TRIP_END are queued for the regulator; the response does
    not wait for that call and does not reflect its outcome.
    """
    trip_log = await trip_lifecycle.record_event(db, dispatcher, current_driver, event)
    return TripLogCreateResponse(id=trip_log.id)


@router.get("", response_model=TripLogListResponse)
async def list_trip_events(
    page: int = Query(1, description="Page number"),
    limit: int = Query(trip_lifecycle.DEFAULT_PAGE_SIZE, description="Items per page"),
    current_driver: dict = Depends(get_current_driver),
    db: AsyncSession = Depends(get_db)
):
    """
    The authenticated driver's trip logs, newest first.

    Out-of-range page/limit values are clamped rather than rejected.
    """
    result = await trip_lifecycle.list_events(db, current_driver, page, limit)

    return TripLogListResponse(
        trips=[TripLogResponse.model_validate(t) for t in result.trips],
        pagination=Pagination(
            page=result.page,
            limit=result.limit,
            total=result.total,
            pages=result.pages,
        ),
    )
