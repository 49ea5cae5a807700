"""
Security utilities
Password hashing, session token signing and security audit logging
"""

import hashlib
import logging
import secrets
from datetime import datetime
from typing import Any, Optional

# Token signing
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

# Password hashing
from passlib.context import CryptContext

from .config import BCRYPT_ROUNDS, SECRET_KEY

logger = logging.getLogger(__name__)

SESSION_SALT = "admin-session"

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)


# ============================================================================
# PASSWORD SECURITY
# ============================================================================


def hash_password(password: str) -> str:
    """Hash password using bcrypt"""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against bcrypt hash"""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError as e:
        logger.error(f"Password verification error: {e}")
        return False


# ============================================================================
# SESSION TOKENS
# ============================================================================


def generate_secure_token(length: int = 32) -> str:
    """Generate a cryptographically secure random token"""
    return secrets.token_urlsafe(length)


def hash_session_token(token: str) -> str:
    """Only the sha256 of a session token is stored"""
    return hashlib.sha256(token.encode()).hexdigest()


def sign_session_token(token: str) -> str:
    """Sign a session token for the cookie"""
    serializer = URLSafeTimedSerializer(SECRET_KEY)
    return serializer.dumps(token, salt=SESSION_SALT)


def unsign_session_token(signed: str, max_age: int) -> Optional[str]:
    """
    Verify a signed session cookie

    Returns:
        The raw session token if valid, None if tampered or expired
    """
    serializer = URLSafeTimedSerializer(SECRET_KEY)
    try:
        return serializer.loads(signed, salt=SESSION_SALT, max_age=max_age)
    except SignatureExpired:
        logger.info("Session cookie expired")
        return None
    except BadSignature:
        logger.warning("Invalid session cookie signature")
        return None


# ============================================================================
# AUDIT LOGGING
# ============================================================================


def log_security_event(
    event_type: str,
    username: Optional[str] = None,
    ip_address: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
):
    """
    Log security-related events for audit trail

    Args:
        event_type: Type of security event (login, logout, failed_login, ...)
        username: Admin username, if known
        ip_address: Client IP address
        details: Additional event details
    """
    log_entry = {
        "timestamp": datetime.utcnow().isoformat(),
        "event_type": event_type,
        "username": username,
        "ip_address": ip_address,
        "details": details or {},
    }

    logger.info(f"SECURITY_EVENT: {log_entry}")


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================


def mask_sensitive_data(data: str, visible_chars: int = 4) -> str:
    """Mask sensitive data (emails, phones) for logging"""
    if len(data) <= visible_chars:
        return "*" * len(data)

    return "*" * (len(data) - visible_chars) + data[-visible_chars:]
