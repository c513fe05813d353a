"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from taximeter.app.api.v1.endpoints import session, location, trips

router = APIRouter()

# Driver login / logout
router.include_router(session.router)

# Location pings and nearby-driver lookup
router.include_router(location.router)

# Trip log events
router.include_router(trips.router)
