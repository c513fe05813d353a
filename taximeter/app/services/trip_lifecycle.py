"""
Trip lifecycle engine.

Records trip log events for the authenticated driver and keeps one open trip
per vehicle:

    Idle --TRIP_START--> TripActive --TRIP_END--> Idle

The open trip lives in ``vehicle_trip_states`` and is claimed/released with
conditional updates in the same transaction as the trip log row, so two
concurrent starts on one vehicle cannot both succeed.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import select, update, func, desc
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taximeter.app.core.exceptions import ConflictError, InternalError, ValidationError
from taximeter.app.models.trip_enums import REPORTED_LOG_TYPES, ComplianceRequestType, TripLogType
from taximeter.app.models.trip_log import TripLog
from taximeter.app.models.vehicle_trip_state import VehicleTripState
from taximeter.app.schemas.trip_log import TripLogCreate
from taximeter.app.services.compliance_reporter import build_payload

logger = logging.getLogger("taximeter.trips")

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


@dataclass
class TripLogPage:
    trips: List[TripLog]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0


async def _resolve_parent(
    db: AsyncSession,
    parent_id: Optional[int],
    driver_id: int,
    vehicle_id: Optional[int],
) -> Optional[int]:
    """
    Parent TRIP_START for a TRIP_END.

    A supplied parent must be a TRIP_START of the same driver and vehicle.
    Without one, the vehicle's open trip (if any) is used.
    """
    if parent_id is not None:
        parent = await db.get(TripLog, parent_id)
        if (
            parent is None
            or parent.log_type != TripLogType.TRIP_START
            or parent.driver_id != driver_id
            or parent.vehicle_id != vehicle_id
        ):
            raise ValidationError("parentId must reference a TRIP_START of this driver and vehicle")
        return parent_id

    if vehicle_id is None:
        return None

    state = await db.get(VehicleTripState, vehicle_id)
    return state.open_trip_id if state else None


async def _check_parent(db: AsyncSession, parent_id: int, driver_id: int) -> None:
    """Any other event may only point at one of the driver's own trip logs."""
    parent = await db.get(TripLog, parent_id)
    if parent is None or parent.driver_id != driver_id:
        raise ValidationError("parentId must reference a trip log of this driver")


async def _claim_vehicle(db: AsyncSession, vehicle_id: int, trip_id: int) -> None:
    """Mark ``trip_id`` as the vehicle's open trip, or raise ConflictError."""
    result = await db.execute(
        update(VehicleTripState)
        .where(
            VehicleTripState.vehicle_id == vehicle_id,
            VehicleTripState.open_trip_id.is_(None),
        )
        .values(open_trip_id=trip_id)
    )
    if result.rowcount == 1:
        return

    existing = await db.get(VehicleTripState, vehicle_id)
    if existing is not None:
        raise ConflictError("Vehicle already has an open trip")

    db.add(VehicleTripState(vehicle_id=vehicle_id, open_trip_id=trip_id))
    try:
        await db.flush()
    except IntegrityError:
        # Another request created the slot first
        raise ConflictError("Vehicle already has an open trip")


async def _release_vehicle(db: AsyncSession, vehicle_id: int, parent_id: int) -> None:
    """Clear the vehicle's open trip if it is ``parent_id``, or raise ConflictError."""
    result = await db.execute(
        update(VehicleTripState)
        .where(
            VehicleTripState.vehicle_id == vehicle_id,
            VehicleTripState.open_trip_id == parent_id,
        )
        .values(open_trip_id=None)
    )
    if result.rowcount != 1:
        raise ConflictError("Trip is not open on this vehicle")


async def record_event(db: AsyncSession, dispatcher, claims: dict, data: TripLogCreate) -> TripLog:
    """
    Persist a trip log event for the authenticated driver.

    TRIP_START and TRIP_END are handed to the compliance dispatcher after the
    commit; the caller never waits for, or sees, the regulator outcome.

    Raises:
        ValidationError: TRIP_END with a parent that is not this driver's TRIP_START,
            or any other event whose parent is not one of this driver's trip logs
        ConflictError: TRIP_START on a busy vehicle, or TRIP_END of a trip that is no longer open
        InternalError: the write could not be committed
    """
    driver_id = claims["driver_id"]
    vehicle_id = claims.get("vehicle_id")

    parent_id = data.parent_id
    if data.log_type == TripLogType.TRIP_END:
        parent_id = await _resolve_parent(db, data.parent_id, driver_id, vehicle_id)
        if parent_id is None:
            logger.warning("Trip end without an open trip", extra={"driver_id": driver_id, "vehicle_id": vehicle_id})
    elif parent_id is not None:
        await _check_parent(db, parent_id, driver_id)

    trip_log = TripLog(
        log_type=data.log_type,
        parent_id=parent_id,
        company_id=claims.get("company_id"),
        vehicle_id=vehicle_id,
        driver_id=driver_id,
        user_id=claims.get("user_id"),
        start_latitude=data.start_latitude,
        start_longitude=data.start_longitude,
        start_address=data.start_address,
        end_latitude=data.end_latitude,
        end_longitude=data.end_longitude,
        end_address=data.end_address,
        distance=data.distance,
        duration=data.duration,
        final_price=data.final_price,
        tariff_used=data.tariff_used,
        trip_start_time=data.trip_start_time,
        trip_end_time=data.trip_end_time,
        log_details=data.log_details,
    )
    db.add(trip_log)

    try:
        await db.flush()
        if vehicle_id is not None:
            if data.log_type == TripLogType.TRIP_START:
                await _claim_vehicle(db, vehicle_id, trip_log.id)
            elif data.log_type == TripLogType.TRIP_END and parent_id is not None:
                await _release_vehicle(db, vehicle_id, parent_id)
        await db.commit()
    except ConflictError:
        await db.rollback()
        logger.info(
            "Trip event rejected",
            extra={"driver_id": driver_id, "vehicle_id": vehicle_id, "log_type": data.log_type.value},
        )
        raise
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Trip log write failed", extra={"driver_id": driver_id})
        raise InternalError("Could not record trip event") from exc

    logger.info(
        "Trip event recorded",
        extra={"trip_log_id": trip_log.id, "log_type": data.log_type.value, "driver_id": driver_id},
    )

    if data.log_type in REPORTED_LOG_TYPES:
        dispatcher.submit(trip_log.id, ComplianceRequestType(data.log_type.value), build_payload(trip_log))

    return trip_log


async def list_events(db: AsyncSession, claims: dict, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> TripLogPage:
    """The authenticated driver's trip logs, newest first."""
    page = max(1, page)
    limit = min(max(1, limit), MAX_PAGE_SIZE)
    driver_id = claims["driver_id"]

    total_result = await db.execute(
        select(func.count(TripLog.id)).where(TripLog.driver_id == driver_id)
    )
    total = total_result.scalar() or 0

    result = await db.execute(
        select(TripLog)
        .where(TripLog.driver_id == driver_id)
        .order_by(desc(TripLog.created_at), desc(TripLog.id))
        .offset((page - 1) * limit)
        .limit(limit)
    )

    return TripLogPage(trips=list(result.scalars().all()), page=page, limit=limit, total=total)
