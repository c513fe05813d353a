"""
Cross-origin access for the public API.

Every origin, method and header is allowed. Pre-flight ``OPTIONS`` requests
are answered here with an empty 200 body, for any path.
"""

from typing import List, Optional

from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

ALLOWED_METHODS = "GET, POST, PUT, PATCH, DELETE, OPTIONS"
PREFLIGHT_MAX_AGE = "600"


def parse_origins(allowed: Optional[str]) -> List[str]:
    origins = [o.strip() for o in (allowed or "").split(",") if o.strip()]
    return ["*"] if not origins or "*" in origins else origins


class PreflightMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, origins: List[str]):
        super().__init__(app)
        self.origins = origins

    def allow_origin(self, origin: Optional[str]) -> Optional[str]:
        if "*" in self.origins:
            return "*"
        return origin if origin in self.origins else None

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method != "OPTIONS":
            return await call_next(request)

        headers = {
            "Access-Control-Allow-Methods": ALLOWED_METHODS,
            "Access-Control-Allow-Headers": request.headers.get("access-control-request-headers", "*"),
            "Access-Control-Max-Age": PREFLIGHT_MAX_AGE,
        }
        allow_origin = self.allow_origin(request.headers.get("origin"))
        if allow_origin:
            headers["Access-Control-Allow-Origin"] = allow_origin
            if allow_origin != "*":
                headers["Vary"] = "Origin"

        return Response(status_code=200, headers=headers)


def configure_cors(app, allowed: Optional[str]) -> None:
    """Install CORS headers on responses and the pre-flight responder."""
    origins = parse_origins(allowed)

    # Wildcard origins must not be combined with credentialed requests
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(PreflightMiddleware, origins=origins)
