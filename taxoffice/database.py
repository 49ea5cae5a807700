import logging
import os
import time

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import DATABASE_URL

logger = logging.getLogger(__name__)

# A single office's traffic; the defaults stay small
POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "5"))
MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "10"))
POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "300"))
LOG_SLOW_QUERIES = os.getenv("DB_LOG_SLOW_QUERIES", "true").lower() == "true"
SLOW_QUERY_SECONDS = float(os.getenv("DB_SLOW_QUERY_THRESHOLD", "1.0"))

IS_SQLITE = DATABASE_URL.startswith("sqlite")


def _engine_options() -> dict:
    """Pool options for PostgreSQL, thread-shareable connections for SQLite"""
    if IS_SQLITE:
        # Booking requests run in FastAPI's thread pool
        return {"connect_args": {"check_same_thread": False, "timeout": 30}}

    return {
        "pool_pre_ping": True,
        "pool_recycle": POOL_RECYCLE,
        "pool_size": POOL_SIZE,
        "max_overflow": MAX_OVERFLOW,
        "pool_timeout": POOL_TIMEOUT,
    }


def install_slow_query_logging(target: Engine, threshold: float) -> None:
    """Warn about statements slower than `threshold` seconds"""

    @event.listens_for(target, "before_cursor_execute")
    def _start_timer(conn, _cursor, _statement, _parameters, _context, _executemany):
        conn.info.setdefault("query_started", []).append(time.perf_counter())

    @event.listens_for(target, "after_cursor_execute")
    def _stop_timer(conn, _cursor, statement, _parameters, _context, _executemany):
        elapsed = time.perf_counter() - conn.info["query_started"].pop()
        if elapsed > threshold:
            logger.warning(f"🐌 Slow query ({elapsed:.2f}s): {statement[:200]}")


engine = create_engine(DATABASE_URL, echo=False, **_engine_options())
if IS_SQLITE:
    logger.info("🗄️ Using SQLite database")
else:
    logger.info(f"🗄️ Database pool: size={POOL_SIZE}, max_overflow={MAX_OVERFLOW}")

if LOG_SLOW_QUERIES:
    install_slow_query_logging(engine, SLOW_QUERY_SECONDS)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
