import logging
from datetime import datetime

from fastapi import Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from .config import SESSION_COOKIE_NAME, SESSION_COOKIE_SECURE, SESSION_MAX_AGE_SECONDS
from .database import get_db
from .domain.admin.repository import AdminRepository
from .models import AdminUser
from .security_utils import hash_session_token, sign_session_token, unsign_session_token

logger = logging.getLogger(__name__)


def set_session_cookie(response: Response, token: str) -> None:
    """Attach the signed session cookie to a response"""
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=sign_session_token(token),
        max_age=SESSION_MAX_AGE_SECONDS,
        httponly=True,
        secure=SESSION_COOKIE_SECURE,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=SESSION_COOKIE_NAME,
        httponly=True,
        secure=SESSION_COOKIE_SECURE,
        samesite="lax",
        path="/",
    )


def read_session_token(request: Request) -> str | None:
    """Raw session token from the request cookie, or None if missing or tampered"""
    signed = request.cookies.get(SESSION_COOKIE_NAME)
    if not signed:
        return None
    return unsign_session_token(signed, max_age=SESSION_MAX_AGE_SECONDS)


async def get_current_admin(
    request: Request,
    db: Session = Depends(get_db),
) -> AdminUser:
    """Get the logged-in admin from the session cookie"""
    token = read_session_token(request)
    if not token:
        logger.warning(f"⚠️ Unauthenticated admin request: {request.method} {request.url.path}")
        raise HTTPException(status_code=401, detail="Authentication required")

    session = AdminRepository.get_session_by_hash(db, hash_session_token(token))
    if not session:
        logger.warning("⚠️ Admin session not found (revoked or purged)")
        raise HTTPException(status_code=401, detail="Authentication required")

    now = datetime.utcnow()
    if session.expires_at <= now:
        logger.info(f"ℹ️ Admin session {session.id} expired, removing")
        AdminRepository.delete_session(db, session)
        raise HTTPException(status_code=401, detail="Session expired. Please log in again.")

    admin = session.admin
    if not admin or not admin.is_active:
        logger.warning(f"⚠️ Inactive admin attempted access via session {session.id}")
        raise HTTPException(status_code=401, detail="Authentication required")

    AdminRepository.touch_session(db, session, now)
    request.state.admin_session = session

    logger.debug(f"✅ Admin authenticated: {admin.username}")
    return admin
