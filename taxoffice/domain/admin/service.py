"""Admin service - First-run setup, login and session lifecycle"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import SESSION_MAX_AGE_SECONDS
from ...models import AdminUser
from ...security_utils import (
    generate_secure_token,
    hash_password,
    hash_session_token,
    log_security_event,
    pwd_context,
    verify_password,
)
from .repository import AdminRepository
from .schemas import AdminLoginRequest, AdminSetupRequest

logger = logging.getLogger(__name__)


class AdminService:
    """Service layer for admin authentication"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AdminRepository()

    def setup_required(self) -> bool:
        return self.repo.count_admins(self.db) == 0

    def create_first_admin(self, data: AdminSetupRequest, ip_address: Optional[str] = None) -> AdminUser:
        """Create the initial admin account; refused once any admin exists"""
        if not self.setup_required():
            log_security_event("setup_rejected", username=data.username, ip_address=ip_address)
            raise HTTPException(status_code=403, detail="Setup has already been completed")

        admin = self.repo.create_admin(self.db, data.username, data.email, hash_password(data.password))
        log_security_event("admin_created", username=admin.username, ip_address=ip_address)
        logger.info(f"👤 Admin user created: {admin.username}")
        return admin

    def login(
        self,
        data: AdminLoginRequest,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> tuple[AdminUser, str]:
        """
        Verify credentials and open a session.

        Returns:
            (admin, raw session token) - only the token's hash is stored
        """
        purged = self.purge_expired_sessions()
        if purged:
            logger.info(f"🧹 Purged {purged} expired admin session(s)")

        admin = self.repo.get_by_username(self.db, data.username.strip())
        if admin is None:
            # Equalise timing with the wrong-password path
            pwd_context.dummy_verify()
            valid = False
        else:
            valid = verify_password(data.password, admin.password_hash) and admin.is_active

        if not valid:
            logger.warning(f"⚠️ Failed admin login for '{data.username}' from {ip_address}")
            log_security_event("failed_login", username=data.username, ip_address=ip_address)
            raise HTTPException(status_code=401, detail="Invalid username or password")

        token = generate_secure_token()
        expires_at = datetime.utcnow() + timedelta(seconds=SESSION_MAX_AGE_SECONDS)
        self.repo.create_session(
            self.db,
            admin,
            hash_session_token(token),
            expires_at,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        log_security_event("login", username=admin.username, ip_address=ip_address)
        logger.info(f"🔐 Admin {admin.username} logged in")
        return admin, token

    def logout(self, token: Optional[str]) -> None:
        """Revoke the session behind a raw token (no-op when already gone)"""
        if not token:
            return

        session = self.repo.get_session_by_hash(self.db, hash_session_token(token))
        if session is None:
            return

        username = session.admin.username if session.admin else None
        self.repo.delete_session(self.db, session)
        log_security_event("logout", username=username)

    def purge_expired_sessions(self) -> int:
        return self.repo.purge_expired_sessions(self.db, datetime.utcnow())
