import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()
IS_PRODUCTION = ENVIRONMENT == "production"

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./taxoffice.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

# Business calendar
TIMEZONE = os.getenv("TIMEZONE", "Europe/Athens")
BOOKING_WINDOW_DAYS = int(os.getenv("BOOKING_WINDOW_DAYS", "60"))  # How far ahead clients can book
MINIMUM_NOTICE_HOURS = int(os.getenv("MINIMUM_NOTICE_HOURS", "24"))
SLOT_DURATION_MINUTES = int(os.getenv("SLOT_DURATION_MINUTES", "30"))

# Weekly hours used to seed availability_settings on first boot (0=Monday ... 6=Sunday)
DEFAULT_WORKING_DAYS = [
    int(d) for d in os.getenv("DEFAULT_WORKING_DAYS", "0,1,2,3,4").split(",") if d.strip()
]
DEFAULT_OPEN_TIME = os.getenv("DEFAULT_OPEN_TIME", "09:00")
DEFAULT_CLOSE_TIME = os.getenv("DEFAULT_CLOSE_TIME", "17:00")

# Admin sessions (stored in the admin_sessions table)
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "taxoffice_session")
SESSION_MAX_AGE_SECONDS = int(os.getenv("SESSION_MAX_AGE_SECONDS", str(8 * 60 * 60)))
SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", str(IS_PRODUCTION)).lower() == "true"
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

# Public site base URL, used for cancellation links in emails
PUBLIC_SITE_URL = os.getenv("PUBLIC_SITE_URL", "http://localhost:3000")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "NT Taxoffice <noreply@taxoffice.gr>")
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")
EMAIL_MAX_ATTEMPTS = int(os.getenv("EMAIL_MAX_ATTEMPTS", "5"))
EMAIL_RETENTION_DAYS = int(os.getenv("EMAIL_RETENTION_DAYS", "30"))

# Middleware toggles
# Set to false only for development/testing
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
CSRF_ENABLED = os.getenv("CSRF_ENABLED", "true").lower() == "true"
SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"

ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "https://taxoffice.gr,https://www.taxoffice.gr,http://localhost:3000",
).split(",")
