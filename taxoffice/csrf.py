"""
Double-submit cookie CSRF protection for the admin dashboard

Every response to a client without a token gets a `csrf_token` cookie. Admin
writes (POST/PUT/PATCH/DELETE) must echo that value in the X-CSRF-Token
header. Public booking/cancellation and the login/setup forms carry no
session, so they are exempt. Set CSRF_ENABLED=false to disable.
"""

import logging
import secrets
from typing import Callable, Optional

from fastapi import Request
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .config import SESSION_COOKIE_SECURE

logger = logging.getLogger(__name__)

CSRF_COOKIE_NAME = "csrf_token"
CSRF_HEADER_NAME = "X-CSRF-Token"
CSRF_COOKIE_MAX_AGE = 86400

UNSAFE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

EXEMPT_PREFIXES: tuple[str, ...] = (
    "/api/appointments",  # public booking and cancellation, rate limited
    "/api/availability/",
    "/api/admin/login",
    "/api/admin/setup",
    "/health",
    "/docs",
    "/openapi.json",
    "/csrf-token",
)

# Exempt only on an exact match
EXEMPT_EXACT = frozenset({"/"})

RETRY_HINT = "Please refresh the page and try again."


def generate_csrf_token() -> str:
    return secrets.token_urlsafe(32)


def is_path_exempt(path: str) -> bool:
    return path in EXEMPT_EXACT or path.startswith(EXEMPT_PREFIXES)


def set_csrf_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=CSRF_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=SESSION_COOKIE_SECURE,
        samesite="strict",
        max_age=CSRF_COOKIE_MAX_AGE,
        path="/",
    )


def csrf_error(detail: str) -> JSONResponse:
    return JSONResponse(status_code=403, content={"detail": detail, "error": "csrf_failed"})


def token_problem(cookie_token: Optional[str], header_token: Optional[str]) -> Optional[str]:
    """Why a write request fails the double-submit check, or None if it passes"""
    if not cookie_token:
        return "missing cookie"
    if not header_token:
        return "missing header"
    if not secrets.compare_digest(cookie_token, header_token):
        return "token mismatch"
    return None


class CSRFMiddleware(BaseHTTPMiddleware):
    """Rejects admin writes whose X-CSRF-Token header does not match the cookie"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        cookie_token = request.cookies.get(CSRF_COOKIE_NAME)

        if request.method in UNSAFE_METHODS and not is_path_exempt(path):
            problem = token_problem(cookie_token, request.headers.get(CSRF_HEADER_NAME))
            if problem:
                logger.warning(f"🚫 CSRF rejected {request.method} {path}: {problem}")
                return csrf_error(f"CSRF check failed ({problem}). {RETRY_HINT}")

        response = await call_next(request)

        # /csrf-token sets its own cookie
        if not cookie_token and path != "/csrf-token":
            set_csrf_cookie(response, generate_csrf_token())
        return response


async def csrf_token_endpoint(request: Request, response: Response):
    """Current CSRF token for the dashboard, issuing one when the client has none"""
    token = request.cookies.get(CSRF_COOKIE_NAME)
    if not token:
        token = generate_csrf_token()
        set_csrf_cookie(response, token)
    return {"csrf_token": token}
