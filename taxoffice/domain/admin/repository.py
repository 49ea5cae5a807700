"""Admin repository - Database operations for admin users and their sessions"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import AdminSession, AdminUser


class AdminRepository:
    """Repository for admin and session database operations"""

    @staticmethod
    def count_admins(db: Session) -> int:
        return db.query(AdminUser).count()

    @staticmethod
    def get_by_username(db: Session, username: str) -> Optional[AdminUser]:
        return db.query(AdminUser).filter(AdminUser.username == username).first()

    @staticmethod
    def create_admin(db: Session, username: str, email: str, password_hash: str) -> AdminUser:
        admin = AdminUser(username=username, email=email, password_hash=password_hash)
        db.add(admin)
        db.commit()
        db.refresh(admin)
        return admin

    @staticmethod
    def create_session(
        db: Session,
        admin: AdminUser,
        token_hash: str,
        expires_at: datetime,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AdminSession:
        """Store a new session and record the login time"""
        now = datetime.utcnow()
        session = AdminSession(
            admin_id=admin.id,
            token_hash=token_hash,
            expires_at=expires_at,
            last_seen_at=now,
            ip_address=ip_address,
            user_agent=user_agent[:500] if user_agent else None,
        )
        admin.last_login = now
        db.add(session)
        db.commit()
        db.refresh(session)
        return session

    @staticmethod
    def get_session_by_hash(db: Session, token_hash: str) -> Optional[AdminSession]:
        return db.query(AdminSession).filter(AdminSession.token_hash == token_hash).first()

    @staticmethod
    def touch_session(db: Session, session: AdminSession, now: datetime) -> None:
        session.last_seen_at = now
        db.commit()

    @staticmethod
    def delete_session(db: Session, session: AdminSession) -> None:
        db.delete(session)
        db.commit()

    @staticmethod
    def purge_expired_sessions(db: Session, now: datetime) -> int:
        """Delete expired sessions, returning how many were removed"""
        deleted = (
            db.query(AdminSession)
            .filter(AdminSession.expires_at <= now)
            .delete(synchronize_session=False)
        )
        db.commit()
        return deleted
