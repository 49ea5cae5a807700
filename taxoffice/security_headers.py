"""
Security headers for API responses

Responses are JSON only, so the Content-Security-Policy denies everything and
no response may be framed or cached. HSTS is sent in production only, where
TLS terminates in front of the app.
"""

import logging
from typing import Callable, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from .config import IS_PRODUCTION

logger = logging.getLogger(__name__)

CONTENT_SECURITY_POLICY = "; ".join(
    ["default-src 'none'", "frame-ancestors 'none'", "base-uri 'none'", "form-action 'self'"]
)

PERMISSIONS_POLICY = ", ".join(
    f"{feature}=()"
    for feature in ("accelerometer", "camera", "geolocation", "gyroscope", "microphone", "payment", "usb")
)

API_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Content-Security-Policy": CONTENT_SECURITY_POLICY,
    "Permissions-Policy": PERMISSIONS_POLICY,
    "X-Permitted-Cross-Domain-Policies": "none",
}

HSTS_VALUE = "max-age=31536000; includeSubDomains; preload"
NO_STORE = "no-store, no-cache, must-revalidate"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds API_HEADERS to every response outside `exclude_paths`"""

    def __init__(self, app, exclude_paths: Optional[list[str]] = None):
        super().__init__(app)
        self.exclude_paths = tuple(exclude_paths or ())

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        if request.url.path.startswith(self.exclude_paths):
            return response

        response.headers.update(API_HEADERS)
        if IS_PRODUCTION:
            response.headers["Strict-Transport-Security"] = HSTS_VALUE
        # Appointment and admin data must never sit in a shared cache
        response.headers.setdefault("Cache-Control", NO_STORE)
        return response
