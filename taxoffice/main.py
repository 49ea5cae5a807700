import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError, ProgrammingError

# Import models so they're registered with SQLAlchemy Base
from . import models  # noqa: F401
from .config import ALLOWED_ORIGINS, CSRF_ENABLED, RATE_LIMIT_ENABLED, SECURITY_HEADERS_ENABLED
from .csrf import CSRFMiddleware, csrf_token_endpoint
from .database import Base, SessionLocal, engine
from .domain.admin.router import router as admin_auth_router
from .domain.appointments.router import admin_router as admin_appointments_router
from .domain.appointments.router import router as appointments_router
from .domain.scheduling.errors import BookingError
from .domain.scheduling.router import admin_router as admin_availability_router
from .domain.scheduling.router import router as availability_router
from .domain.scheduling.service import AvailabilityService
from .security_headers import SecurityHeadersMiddleware

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("passlib").setLevel(logging.ERROR)
logging.getLogger("arq").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")

    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except (OperationalError, ProgrammingError) as e:
        # Another worker may have created them first
        if "already exists" in str(e):
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")
            raise

    db = SessionLocal()
    try:
        AvailabilityService(db).ensure_default_settings()
    finally:
        db.close()

    if RATE_LIMIT_ENABLED:
        try:
            from .rate_limiter import get_redis_client

            get_redis_client()  # Connection test
            logger.info("Redis connection established")
        except Exception as e:
            logger.warning(f"Redis connection failed - rate limited endpoints will return 503: {e}")

    yield

    logger.info("Application shutting down...")


app = FastAPI(title="Tax Office Appointments API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    """Domain errors carry their own status and machine-readable code"""
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.code},
    )


@app.exception_handler(OperationalError)
async def storage_unavailable_handler(request: Request, exc: OperationalError):
    logger.error(f"❌ Database unavailable during {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=503,
        content={
            "detail": "Service temporarily unavailable. Please try again shortly.",
            "error": "storage_unavailable",
        },
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Validation errors without the raw input or exception objects"""
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise

    duration_ms = (time.time() - start_time) * 1000
    logger.debug(f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms:.0f}ms)")
    return response


if SECURITY_HEADERS_ENABLED:
    app.add_middleware(
        SecurityHeadersMiddleware, exclude_paths=["/health", "/docs", "/openapi.json"]
    )
    logger.info("Security headers enabled")
else:
    logger.warning("Security headers DISABLED - only use in development!")

if CSRF_ENABLED:
    app.add_middleware(CSRFMiddleware)
    logger.info("CSRF protection enabled")
else:
    logger.info("CSRF protection disabled")

# CORS - credentials are needed for the admin session cookie
logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "X-CSRF-Token"],
)

# Routes
app.include_router(availability_router)
app.include_router(appointments_router)
app.include_router(admin_auth_router)
app.include_router(admin_appointments_router)
app.include_router(admin_availability_router)


@app.get("/")
def root():
    return {"message": "Tax Office Appointments API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}


@app.get("/health/redis")
async def redis_health_check():
    """Check Redis connectivity for monitoring"""
    try:
        from .rate_limiter import get_redis_client

        redis_client = get_redis_client()

        start_time = time.time()
        redis_client.ping()
        response_time = (time.time() - start_time) * 1000

        info = redis_client.info()
        return {
            "status": "healthy",
            "redis": {
                "connected": True,
                "response_time_ms": round(response_time, 2),
                "version": info.get("redis_version", "unknown"),
                "connected_clients": info.get("connected_clients", 0),
            },
        }
    except Exception as e:
        return {"status": "unhealthy", "redis": {"connected": False, "error": str(e)}}


app.add_api_route("/csrf-token", csrf_token_endpoint, methods=["GET"], tags=["Security"])
