"""
Compliance reporter: forwards trip start/end events to the regulator API.

Every call, successful or not, leaves a ComplianceReportAttempt row. The
outcome is mirrored onto the trip log (``*_reported`` flag or
``report_error``). Failures are never retried here; unflagged trip logs are
picked up by an external reconciliation job.
"""

import logging
from typing import Any, Dict, Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from taximeter.app.core.config import settings
from taximeter.app.core.exceptions import ComplianceReportError
from taximeter.app.models.compliance_report_attempt import ComplianceReportAttempt
from taximeter.app.models.trip_enums import ComplianceRequestType, TripLogType
from taximeter.app.models.trip_log import TripLog

logger = logging.getLogger("taximeter.compliance")


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def build_payload(trip_log: TripLog) -> Dict[str, Any]:
    """Regulator request body for a TRIP_START or TRIP_END log."""
    if trip_log.log_type == TripLogType.TRIP_START:
        return {
            "driverId": trip_log.driver_id,
            "vehicleId": trip_log.vehicle_id,
            "startTime": _iso(trip_log.trip_start_time),
            "startLocation": {
                "latitude": trip_log.start_latitude,
                "longitude": trip_log.start_longitude,
            },
            "tariff": trip_log.tariff_used,
        }
    if trip_log.log_type == TripLogType.TRIP_END:
        return {
            "driverId": trip_log.driver_id,
            "vehicleId": trip_log.vehicle_id,
            "endTime": _iso(trip_log.trip_end_time),
            "endLocation": {
                "latitude": trip_log.end_latitude,
                "longitude": trip_log.end_longitude,
            },
            "distance": trip_log.distance,
            "duration": trip_log.duration,
            "finalPrice": trip_log.final_price,
            "tariff": trip_log.tariff_used,
        }
    raise ValueError(f"{trip_log.log_type.value} is not reported to the regulator")


def _response_body(response: httpx.Response):
    """Parsed JSON body, or the raw text when the regulator did not send JSON."""
    try:
        return response.json()
    except ValueError:
        return response.text or None


class ComplianceReporter:
    """
    Regulator API client.

    Args:
        client: Shared httpx client; its timeout bounds every call
        base_url: Regulator API base, e.g. ``https://api.example/v1``
        api_key: Bearer credential
    """

    def __init__(self, client: httpx.AsyncClient, base_url: Optional[str] = None, api_key: Optional[str] = None):
        self.client = client
        self.base_url = (base_url or settings.regulator_api_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.regulator_api_key

    def endpoint_for(self, kind: ComplianceRequestType) -> str:
        return f"{self.base_url}/{kind.path}"

    async def _send(self, endpoint: str, payload: Dict[str, Any]) -> httpx.Response:
        try:
            return await self.client.post(
                endpoint,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise ComplianceReportError(f"{type(exc).__name__}: {exc}") from exc

    async def report(
        self,
        db: AsyncSession,
        trip_log_id: int,
        kind: ComplianceRequestType,
        payload: Dict[str, Any],
    ) -> ComplianceReportAttempt:
        """
        Send one report and record its outcome.

        Never raises for regulator-side problems; those end up on the
        attempt row and in ``TripLog.report_error``.
        """
        endpoint = self.endpoint_for(kind)
        attempt = ComplianceReportAttempt(
            trip_log_id=trip_log_id,
            request_type=kind,
            endpoint=endpoint,
            payload=payload,
        )

        try:
            response = await self._send(endpoint, payload)
            attempt.response = _response_body(response)
            attempt.status_code = response.status_code
            attempt.success = 200 <= response.status_code <= 299
            if not attempt.success:
                raise ComplianceReportError(
                    f"Regulator API error: {response.status_code} {response.reason_phrase}".strip(),
                    status_code=response.status_code,
                    response=attempt.response,
                )
        except ComplianceReportError as exc:
            attempt.status_code = exc.status_code
            attempt.success = False
            attempt.error_message = str(exc)

        db.add(attempt)

        trip_log = await db.get(TripLog, trip_log_id)
        if trip_log is not None:
            if attempt.success:
                if kind == ComplianceRequestType.TRIP_START:
                    trip_log.start_reported = True
                else:
                    trip_log.end_reported = True
                trip_log.report_error = None
            else:
                trip_log.report_error = attempt.error_message

        await db.commit()

        log_data = {
            "trip_log_id": trip_log_id,
            "kind": kind.value,
            "status_code": attempt.status_code,
        }
        if attempt.success:
            logger.info("Regulator report accepted", extra=log_data)
        else:
            logger.warning("Regulator report failed", extra={**log_data, "error": attempt.error_message})

        return attempt
