"""
Error Taxonomy

Application exceptions and the JSON error envelope shared by the exception
handlers and the request pipeline middleware:

    {"error": {"code": "...", "message": "...", "details": ...}}
"""
from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse


class ConfigurationError(Exception):
    """Raised at startup when required settings are missing or out of range."""

    pass


class CourseHubError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500
    code = "INTERNAL_ERROR"
    default_message = "An internal server error occurred"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(CourseHubError):
    """Malformed or out-of-range input."""

    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Validation failed"


class AuthenticationError(CourseHubError):
    """Missing, expired or invalid credentials."""

    status_code = 401
    code = "AUTHENTICATION_REQUIRED"
    default_message = "Authentication required"


class AuthorizationError(CourseHubError):
    """Wrong role, not the resource owner, or not enrolled."""

    status_code = 403
    code = "FORBIDDEN"
    default_message = "Insufficient permissions"


class NotFoundError(CourseHubError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found"


class ConflictError(CourseHubError):
    """Duplicate email or duplicate enrollment."""

    status_code = 409
    code = "CONFLICT"
    default_message = "Resource already exists"


class PayloadTooLargeError(CourseHubError):
    status_code = 413
    code = "PAYLOAD_TOO_LARGE"
    default_message = "Request body too large"


class UnsupportedMediaTypeError(CourseHubError):
    status_code = 415
    code = "UNSUPPORTED_MEDIA_TYPE"
    default_message = "Content-Type must be application/json"


class RateLimitExceededError(CourseHubError):
    status_code = 429
    code = "RATE_LIMIT_EXCEEDED"
    default_message = "Too many requests"


def error_payload(code: str, message: str, details: Any = None) -> Dict[str, Any]:
    """Build the error envelope returned to callers."""
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details,
        }
    }


def error_response(
    exc: CourseHubError,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Render an application error as a JSON response."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(exc.code, exc.message, exc.details),
        headers=headers,
    )
