"""
Request Pipeline Middleware

Outermost to innermost, as wired in coursehub.main.create_app:

    security headers -> request logging -> preflight guard -> CORS
    -> content-type / body-size guard -> rate limiter -> routes

Middleware sits outside FastAPI's exception handlers, so every guard renders
its own error envelope instead of raising.
"""
import logging
import math
import time
from typing import Any, Dict, Optional

from starlette.datastructures import MutableHeaders
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp, Receive, Scope, Send

from coursehub.api.deps import resolve_client_address
from coursehub.config import Settings
from coursehub.exceptions import (
    AuthenticationError,
    PayloadTooLargeError,
    RateLimitExceededError,
    UnsupportedMediaTypeError,
    ValidationError,
    error_response,
)
from coursehub.models import AuditAction

logger = logging.getLogger(__name__)

CORS_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
CORS_HEADERS = "Content-Type, Authorization"
BODY_METHODS = {"POST", "PUT", "PATCH"}

SECURITY_HEADERS = {
    "x-content-type-options": "nosniff",
    "x-frame-options": "DENY",
    "referrer-policy": "no-referrer",
    "cross-origin-resource-policy": "same-origin",
    "strict-transport-security": "max-age=31536000; includeSubDomains; preload",
    "content-security-policy": "default-src 'self'; style-src 'self' 'unsafe-inline'; frame-ancestors 'none'",
}


class SecurityHeadersMiddleware:
    """Add hardening headers to every response and strip server banners."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_wrapper(message: Dict[str, Any]) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                for name, value in SECURITY_HEADERS.items():
                    headers[name] = value
                if "x-powered-by" in headers:
                    del headers["x-powered-by"]
                if "server" in headers:
                    del headers["server"]

            await send(message)

        await self.app(scope, receive, send_wrapper)


def cors_headers(origin: Optional[str], settings: Settings) -> Dict[str, str]:
    """CORS response headers for an allow-listed origin, empty otherwise."""
    if not origin or origin not in settings.allowed_origins:
        return {}
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": CORS_METHODS,
        "Access-Control-Allow-Headers": CORS_HEADERS,
        "Vary": "Origin",
    }


async def log_requests(request: Request, call_next):
    """Log all requests with timing"""
    start_time = time.time()

    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000
    logger.info(
        f"{request.method} {request.url.path} - "
        f"Status: {response.status_code} - "
        f"Duration: {duration_ms:.2f}ms"
    )

    return response


async def preflight_guard(request: Request, call_next):
    """
    Answer OPTIONS requests before CORS handling.

    When preflight_requires_auth is set, a preflight without an Authorization
    header is refused with 401. Browsers never attach credentials to a
    preflight, so cross-origin browser clients need the toggle turned off.
    """
    if request.method != "OPTIONS":
        return await call_next(request)

    settings: Settings = request.app.state.settings
    headers = cors_headers(request.headers.get("origin"), settings)

    if settings.preflight_requires_auth and not request.headers.get("authorization"):
        return error_response(AuthenticationError("Authentication required"), headers=headers)

    return Response(status_code=204, headers=headers)


async def content_type_guard(request: Request, call_next):
    """Reject non-JSON bodies with 415 and oversized bodies with 413."""
    if request.method not in BODY_METHODS:
        return await call_next(request)

    content_type = request.headers.get("content-type", "")
    if "application/json" not in content_type.lower():
        return error_response(UnsupportedMediaTypeError())

    max_bytes = request.app.state.settings.max_body_bytes
    declared = request.headers.get("content-length")
    if declared is not None:
        try:
            length = int(declared)
        except ValueError:
            return error_response(ValidationError("Invalid Content-Length header"))
    else:
        length = len(await request.body())

    if length > max_bytes:
        logger.warning(f"Rejected {length}-byte body for {request.url.path}")
        return error_response(PayloadTooLargeError())

    return await call_next(request)


async def rate_limit(request: Request, call_next):
    """Count the request against its client window; 429 once over the limit."""
    settings: Settings = request.app.state.settings
    client_address = resolve_client_address(request, settings.trust_proxy)

    decision = request.app.state.rate_limiter.hit(client_address)
    if not decision.allowed:
        logger.warning(
            f"Rate limit exceeded for {client_address} "
            f"({decision.count}/{decision.limit})"
        )
        await request.app.state.audit_trail.record(
            None, AuditAction.RATE_LIMIT_EXCEEDED, "request", None, client_address
        )
        return error_response(
            RateLimitExceededError(),
            headers={"Retry-After": str(max(1, math.ceil(decision.retry_after)))},
        )

    return await call_next(request)
