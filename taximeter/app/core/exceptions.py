"""
Custom exceptions and error handlers for consistent error responses.

Every error leaves the API as ``{"error": "<message>"}`` with the matching
HTTP status code.
"""

import logging
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("taximeter.errors")


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ValidationError(AppException):
    """Missing or malformed input."""

    def __init__(self, message: str = "Invalid request"):
        super().__init__(message=message, status_code=status.HTTP_400_BAD_REQUEST)


class InvalidLocationError(ValidationError):
    """Raised when a location push lacks usable coordinates."""

    def __init__(self, message: str = "Latitude and longitude are required"):
        super().__init__(message=message)


class AuthError(AppException):
    """Raised for authentication failures."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message=message, status_code=status.HTTP_401_UNAUTHORIZED)


class InvalidTokenError(AuthError):
    """Missing, malformed, expired or badly signed session token."""

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message=message)


class InvalidCredentialsError(AuthError):
    """Unknown email or wrong password."""

    reason = "invalid_credentials"

    def __init__(self):
        super().__init__(message="Invalid credentials")


class DriverProfileRequiredError(AuthError):
    """The account exists but has no driver profile."""

    reason = "driver_profile_required"

    def __init__(self):
        # Same public message as a bad password so accounts cannot be enumerated
        super().__init__(message="Invalid credentials")


class ForbiddenError(AppException):
    """Raised when the caller is not allowed to perform an action."""

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message=message, status_code=status.HTTP_403_FORBIDDEN)


class AccountSuspendedError(ForbiddenError):
    """Driver or owning company is not active."""

    reason = "account_suspended"

    def __init__(self, detail: str = ""):
        self.detail = detail
        super().__init__(message="Account is not active")


class NotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str = "Resource"):
        super().__init__(message=f"{resource} not found", status_code=status.HTTP_404_NOT_FOUND)


class ConflictError(AppException):
    """Raised when a write conflicts with current state."""

    def __init__(self, message: str = "Conflict"):
        super().__init__(message=message, status_code=status.HTTP_409_CONFLICT)


class InternalError(AppException):
    """Unexpected failure, e.g. the store is unavailable."""

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message=message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


class ComplianceReportError(Exception):
    """
    Outbound regulator call failed.

    Only ever raised and caught inside the compliance reporter; the failure is
    recorded on the trip log, never returned to an API caller.
    """

    def __init__(self, message: str, status_code: int = 0, response=None):
        self.status_code = status_code
        self.response = response
        super().__init__(message)


# Global Exception Handlers

def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return error_response(exc.status_code, exc.message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handler for framework HTTP errors (unknown routes, bad methods)."""
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        message = "Not found"
    else:
        message = str(exc.detail)

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": message},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query"))
        message = f"Invalid value for '{field}': {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request"
    return error_response(status.HTTP_400_BAD_REQUEST, message)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception(
        "Unhandled exception",
        extra={"method": request.method, "path": request.url.path},
    )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    """
    Turn any exception that escapes the routes into a 500 ``{"error"}`` body.

    Installed inside the CORS and observability middleware, so these
    responses still carry the allow-origin and correlation headers.
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            return await generic_exception_handler(request, exc)
