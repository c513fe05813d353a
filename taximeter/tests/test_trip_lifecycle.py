"""
Integration tests for trip logging and the one-open-trip-per-vehicle rule.
"""

import json

import pytest
from sqlalchemy import select, func

from taximeter.app.models.trip_log import TripLog
from taximeter.app.models.vehicle_trip_state import VehicleTripState

TRIP_START = {
    "logType": "TRIP_START",
    "startLatitude": 50.8503,
    "startLongitude": 4.3517,
    "startAddress": "Grand-Place, Brussels",
    "tripStartTime": "2024-05-01T10:00:00Z",
    "tariffUsed": "T1",
}


def trip_end(parent_id=None, **extra):
    body = {
        "logType": "TRIP_END",
        "endLatitude": 50.8466,
        "endLongitude": 4.3528,
        "endAddress": "Manneken Pis, Brussels",
        "tripEndTime": "2024-05-01T10:12:00Z",
        "distance": 0.6,
        "duration": 720,
        "finalPrice": 9.4,
        "tariffUsed": "T1",
    }
    if parent_id is not None:
        body["parentId"] = parent_id
    body.update(extra)
    return body


async def count_trip_logs(session_factory):
    async with session_factory() as session:
        result = await session.execute(select(func.count(TripLog.id)))
        return result.scalar()


async def record(client, dispatcher, body, headers):
    """Post a trip event and wait for any regulator report it queued."""
    response = await client.post("/v1/trips", json=body, headers=headers)
    await dispatcher.join()
    return response


@pytest.mark.asyncio
async def test_start_then_end_are_linked_and_listed_newest_first(client, make_driver, auth_headers, dispatcher):
    driver = await make_driver()
    headers = auth_headers(driver)

    response = await record(client, dispatcher, TRIP_START, headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Trip logged successfully"
    start_id = response.json()["id"]

    response = await record(client, dispatcher, trip_end(start_id), headers)
    assert response.status_code == 200
    end_id = response.json()["id"]

    response = await client.get("/v1/trips", headers=headers)
    assert response.status_code == 200
    data = response.json()

    assert [t["id"] for t in data["trips"]] == [end_id, start_id]
    assert data["pagination"] == {"page": 1, "limit": 50, "total": 2, "pages": 1}

    end, start = data["trips"]
    assert end["logType"] == "TRIP_END"
    assert end["parentId"] == start_id
    assert end["driverId"] == driver.id
    assert end["vehicleId"] == driver.vehicle_id
    assert end["companyId"] == driver.company_id
    assert end["distance"] == 0.6
    assert end["duration"] == 720
    assert end["finalPrice"] == 9.4
    assert start["startAddress"] == "Grand-Place, Brussels"
    assert start["parentId"] is None


@pytest.mark.asyncio
async def test_start_and_end_are_reported_to_regulator(client, make_driver, auth_headers, dispatcher, regulator, fetch):
    driver = await make_driver()
    headers = auth_headers(driver)

    start_id = (await record(client, dispatcher, TRIP_START, headers)).json()["id"]
    end_id = (await record(client, dispatcher, trip_end(start_id), headers)).json()["id"]

    assert [r.url.path for r in regulator.requests] == ["/api/trip_start", "/api/trip_end"]
    assert all(r.headers["Authorization"] == "Bearer test-regulator-key" for r in regulator.requests)

    start_body = json.loads(regulator.requests[0].content)
    assert start_body["driverId"] == driver.id
    assert start_body["vehicleId"] == driver.vehicle_id
    assert start_body["startLocation"] == {"latitude": 50.8503, "longitude": 4.3517}
    assert start_body["tariff"] == "T1"
    assert start_body["startTime"].startswith("2024-05-01T10:00:00")

    end_body = json.loads(regulator.requests[1].content)
    assert end_body["finalPrice"] == 9.4
    assert end_body["duration"] == 720
    assert end_body["endLocation"] == {"latitude": 50.8466, "longitude": 4.3528}

    start = await fetch(TripLog, start_id)
    end = await fetch(TripLog, end_id)
    assert start.start_reported is True
    assert end.end_reported is True
    assert start.report_error is None


@pytest.mark.asyncio
async def test_regulator_outage_does_not_fail_the_request(client, make_driver, auth_headers, dispatcher, regulator, fetch):
    regulator.status_code = 503
    regulator.body = {"error": "maintenance"}
    driver = await make_driver()

    response = await record(client, dispatcher, TRIP_START, auth_headers(driver))
    assert response.status_code == 200

    stored = await fetch(TripLog, response.json()["id"])
    assert stored.start_reported is False
    assert "503" in stored.report_error


@pytest.mark.asyncio
async def test_driver_login_events_are_not_reported(client, make_driver, auth_headers, dispatcher, regulator):
    driver = await make_driver()
    body = {"logType": "DRIVER_LOGIN", "logDetails": {"meterSerial": "M-001", "firmware": "2.4"}}

    response = await record(client, dispatcher, body, auth_headers(driver))
    assert response.status_code == 200

    assert regulator.requests == []
    trips = (await client.get("/v1/trips", headers=auth_headers(driver))).json()["trips"]
    assert trips[0]["logDetails"] == {"meterSerial": "M-001", "firmware": "2.4"}


@pytest.mark.asyncio
async def test_second_start_on_busy_vehicle_is_409(client, make_driver, auth_headers, dispatcher, regulator, session_factory):
    driver = await make_driver()
    headers = auth_headers(driver)

    assert (await record(client, dispatcher, TRIP_START, headers)).status_code == 200

    response = await record(client, dispatcher, TRIP_START, headers)
    assert response.status_code == 409
    assert response.json() == {"error": "Vehicle already has an open trip"}

    assert await count_trip_logs(session_factory) == 1
    assert len(regulator.requests) == 1


@pytest.mark.asyncio
async def test_vehicle_is_free_again_after_trip_end(client, dispatcher, make_driver, auth_headers, fetch):
    driver = await make_driver()
    headers = auth_headers(driver)

    first = (await record(client, dispatcher, TRIP_START, headers)).json()["id"]
    assert (await record(client, dispatcher, trip_end(first), headers)).status_code == 200

    state = await fetch(VehicleTripState, driver.vehicle_id)
    assert state.open_trip_id is None

    response = await record(client, dispatcher, TRIP_START, headers)
    assert response.status_code == 200

    state = await fetch(VehicleTripState, driver.vehicle_id)
    assert state.open_trip_id == response.json()["id"]


@pytest.mark.asyncio
async def test_end_without_parent_links_to_open_trip(client, dispatcher, make_driver, auth_headers, fetch):
    driver = await make_driver()
    headers = auth_headers(driver)

    start_id = (await record(client, dispatcher, TRIP_START, headers)).json()["id"]
    end_id = (await record(client, dispatcher, trip_end(), headers)).json()["id"]

    end = await fetch(TripLog, end_id)
    assert end.parent_id == start_id


@pytest.mark.asyncio
async def test_end_without_any_open_trip_is_kept_unlinked(client, dispatcher, make_driver, auth_headers, fetch):
    driver = await make_driver()

    response = await record(client, dispatcher, trip_end(), auth_headers(driver))
    assert response.status_code == 200

    end = await fetch(TripLog, response.json()["id"])
    assert end.parent_id is None


@pytest.mark.asyncio
async def test_end_of_already_closed_trip_is_409(client, dispatcher, make_driver, auth_headers):
    driver = await make_driver()
    headers = auth_headers(driver)

    start_id = (await record(client, dispatcher, TRIP_START, headers)).json()["id"]
    assert (await record(client, dispatcher, trip_end(start_id), headers)).status_code == 200

    response = await record(client, dispatcher, trip_end(start_id), headers)
    assert response.status_code == 409
    assert response.json() == {"error": "Trip is not open on this vehicle"}


@pytest.mark.asyncio
async def test_end_with_unknown_parent_is_400(client, dispatcher, make_driver, auth_headers, session_factory):
    driver = await make_driver()

    response = await record(client, dispatcher, trip_end(9999), auth_headers(driver))
    assert response.status_code == 400
    assert await count_trip_logs(session_factory) == 0


@pytest.mark.asyncio
async def test_end_with_other_drivers_trip_is_400(client, dispatcher, make_driver, auth_headers):
    owner = await make_driver()
    other = await make_driver()

    start_id = (await record(client, dispatcher, TRIP_START, auth_headers(owner))).json()["id"]

    response = await record(client, dispatcher, trip_end(start_id), auth_headers(other))
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_end_pointing_at_non_start_event_is_400(client, dispatcher, make_driver, auth_headers):
    driver = await make_driver()
    headers = auth_headers(driver)

    login_id = (await record(client, dispatcher, {"logType": "DRIVER_LOGIN"}, headers)).json()["id"]

    response = await record(client, dispatcher, trip_end(login_id), headers)
    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    {**TRIP_START, "parentId": 999999},
    {"logType": "DRIVER_LOGIN", "parentId": 424242},
    {"logType": "DRIVER_LOGOUT", "parentId": 1},
])
async def test_unknown_parent_on_other_events_is_400(
    client, dispatcher, make_driver, auth_headers, regulator, session_factory, fetch, body
):
    driver = await make_driver()

    response = await record(client, dispatcher, body, auth_headers(driver))
    assert response.status_code == 400
    assert response.json() == {"error": "parentId must reference a trip log of this driver"}

    assert await count_trip_logs(session_factory) == 0
    assert regulator.requests == []
    state = await fetch(VehicleTripState, driver.vehicle_id)
    assert state is None or state.open_trip_id is None


@pytest.mark.asyncio
async def test_event_may_point_at_own_trip_log(client, dispatcher, make_driver, auth_headers, fetch):
    driver = await make_driver()
    other = await make_driver()
    headers = auth_headers(driver)

    login_id = (await record(client, dispatcher, {"logType": "DRIVER_LOGIN"}, headers)).json()["id"]

    response = await record(client, dispatcher, {**TRIP_START, "parentId": login_id}, headers)
    assert response.status_code == 200
    assert (await fetch(TripLog, response.json()["id"])).parent_id == login_id

    response = await record(client, dispatcher, {"logType": "DRIVER_LOGOUT", "parentId": login_id}, auth_headers(other))
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_driver_without_vehicle_is_not_limited(client, dispatcher, make_driver, auth_headers):
    driver = await make_driver(with_vehicle=False)
    headers = auth_headers(driver)

    assert (await record(client, dispatcher, TRIP_START, headers)).status_code == 200
    assert (await record(client, dispatcher, TRIP_START, headers)).status_code == 200


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    {"logType": "TRIP_PAUSE"},
    {},
    {"logType": "TRIP_END", "distance": -1},
    {"logType": "TRIP_START", "startLatitude": 123},
])
async def test_malformed_event_is_400(client, dispatcher, make_driver, auth_headers, body):
    driver = await make_driver()

    response = await record(client, dispatcher, body, auth_headers(driver))
    assert response.status_code == 400
    assert "error" in response.json()


@pytest.mark.asyncio
async def test_trip_endpoints_require_token(client):
    assert (await client.post("/v1/trips", json=TRIP_START)).status_code == 401
    assert (await client.get("/v1/trips")).status_code == 401


@pytest.mark.asyncio
async def test_listing_only_shows_own_trips(client, dispatcher, make_driver, auth_headers):
    mine = await make_driver()
    theirs = await make_driver()

    await record(client, dispatcher, TRIP_START, auth_headers(theirs))

    data = (await client.get("/v1/trips", headers=auth_headers(mine))).json()
    assert data["trips"] == []
    assert data["pagination"] == {"page": 1, "limit": 50, "total": 0, "pages": 0}


@pytest.mark.asyncio
async def test_pagination_is_clamped(client, dispatcher, make_driver, auth_headers):
    driver = await make_driver()
    headers = auth_headers(driver)

    ids = []
    for _ in range(3):
        response = await record(client, dispatcher, {"logType": "DRIVER_LOGIN"}, headers)
        ids.append(response.json()["id"])

    data = (await client.get("/v1/trips", params={"page": 0, "limit": 0}, headers=headers)).json()
    assert data["pagination"] == {"page": 1, "limit": 1, "total": 3, "pages": 3}
    assert [t["id"] for t in data["trips"]] == [ids[-1]]

    data = (await client.get("/v1/trips", params={"page": 2, "limit": 1}, headers=headers)).json()
    assert [t["id"] for t in data["trips"]] == [ids[1]]

    data = (await client.get("/v1/trips", params={"limit": 1000}, headers=headers)).json()
    assert data["pagination"]["limit"] == 100
    assert len(data["trips"]) == 3

    data = (await client.get("/v1/trips", params={"page": 5}, headers=headers)).json()
    assert data["trips"] == []
    assert data["pagination"]["total"] == 3
