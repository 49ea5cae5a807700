"""Admin router - setup, login, logout, current-admin and email queue endpoints"""

import logging

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from ...auth import clear_session_cookie, get_current_admin, read_session_token, set_session_cookie
from ...database import get_db
from ...email_service import email_queue_stats, retry_failed_emails
from ...models import AdminUser
from ...rate_limiter import client_ip, login_rate_limit, setup_rate_limit
from .schemas import (
    AdminLoginRequest,
    AdminResponse,
    AdminSetupRequest,
    EmailQueueStatsResponse,
    EmailRetryRequest,
    EmailRetryResponse,
    SetupStatusResponse,
)
from .service import AdminService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin Auth"])


def get_admin_service(db: Session = Depends(get_db)) -> AdminService:
    """Dependency injection for AdminService"""
    return AdminService(db)


@router.get("/check-setup", response_model=SetupStatusResponse)
async def check_setup(service: AdminService = Depends(get_admin_service)):
    """Whether the first admin account still has to be created"""
    return SetupStatusResponse(setup_required=service.setup_required())


@router.post("/setup", response_model=AdminResponse, status_code=201)
async def setup_admin(
    data: AdminSetupRequest,
    request: Request,
    service: AdminService = Depends(get_admin_service),
    _: None = Depends(setup_rate_limit),
):
    """Create the first admin account"""
    return service.create_first_admin(data, ip_address=client_ip(request))


@router.post("/login", response_model=AdminResponse)
async def login(
    data: AdminLoginRequest,
    request: Request,
    response: Response,
    service: AdminService = Depends(get_admin_service),
    _: None = Depends(login_rate_limit),
):
    """Verify credentials and set the session cookie"""
    admin, token = service.login(
        data,
        ip_address=client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )
    set_session_cookie(response, token)
    return admin


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    service: AdminService = Depends(get_admin_service),
):
    """Revoke the current session and clear the cookie"""
    service.logout(read_session_token(request))
    clear_session_cookie(response)
    return {"message": "Logged out"}


@router.get("/me", response_model=AdminResponse)
async def me(current_admin: AdminUser = Depends(get_current_admin)):
    return current_admin


@router.get("/email-queue/stats", response_model=EmailQueueStatsResponse)
async def get_email_queue_stats(
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    return email_queue_stats(db)


@router.post("/email-queue/retry", response_model=EmailRetryResponse)
async def retry_failed_queue_emails(
    data: EmailRetryRequest,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    """Requeue the newest failed emails with a fresh attempt budget"""
    reset = retry_failed_emails(db, limit=data.limit)
    logger.info(f"🔁 {current_admin.username} requeued {reset} failed emails")
    return EmailRetryResponse(reset=reset)
