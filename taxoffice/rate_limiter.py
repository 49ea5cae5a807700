"""
Hybrid in-memory + Redis rate limiting

Each window is counted in process memory and written back to Redis every few
seconds, so a restarted API process resumes a client's remaining budget
instead of starting from zero. Redis being unreachable fails closed (503).
"""

import logging
import os
import time
from dataclasses import dataclass
from threading import Lock
from typing import Optional

import redis
from fastapi import HTTPException, Request, status

from .config import RATE_LIMIT_ENABLED

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None

# key -> {"count": int, "reset_time": int, "last_redis_sync": int}
memory_cache: dict[str, dict] = {}
cache_lock = Lock()

REDIS_SYNC_INTERVAL = 10
CACHE_CLEANUP_INTERVAL = 60
last_cleanup_time = 0


@dataclass(frozen=True)
class RateLimit:
    """A named budget of `limit` requests per `window_seconds`"""

    name: str
    limit: int
    window_seconds: int
    per_ip: bool = True

    def describe(self) -> str:
        minutes = max(1, self.window_seconds // 60)
        return f"Maximum {self.limit} requests per {minutes} minutes."


def _connect() -> redis.Redis:
    options = {
        "decode_responses": True,
        "socket_connect_timeout": 5,
        "socket_timeout": 5,
        "retry_on_timeout": True,
        "health_check_interval": 30,
    }
    redis_url = os.getenv("REDIS_URL")
    if redis_url:
        logger.info("📡 Rate limiter using REDIS_URL")
        return redis.from_url(redis_url, **options)

    host = os.getenv("REDIS_HOST", "localhost")
    port = int(os.getenv("REDIS_PORT", "6379"))
    logger.info(f"📡 Rate limiter using Redis at {host}:{port}")
    return redis.Redis(
        host=host,
        port=port,
        password=os.getenv("REDIS_PASSWORD") or None,
        db=int(os.getenv("REDIS_DB", "0")),
        ssl=os.getenv("REDIS_SSL", "false").lower() == "true",
        **options,
    )


def get_redis_client() -> redis.Redis:
    """Shared Redis connection, created and pinged on first use"""
    global redis_client

    if redis_client is None:
        client = _connect()
        try:
            client.ping()
        except redis.RedisError as e:
            logger.error(f"❌ Redis unreachable, rate limited endpoints will return 503: {e}")
            raise
        redis_client = client
        logger.info("✅ Redis connected for rate limiting")

    return redis_client


def cleanup_expired_cache(now: int) -> None:
    """Drop finished windows from memory, at most once per cleanup interval"""
    global last_cleanup_time

    if now - last_cleanup_time < CACHE_CLEANUP_INTERVAL:
        return

    with cache_lock:
        expired = [key for key, window in memory_cache.items() if now >= window["reset_time"]]
        for key in expired:
            del memory_cache[key]
    if expired:
        logger.debug(f"🧹 Dropped {len(expired)} expired rate limit windows")

    last_cleanup_time = now


def _load_window(key: str, window_seconds: int, client: redis.Redis, now: int) -> dict:
    """Start a window for a key, resuming the Redis copy if one is still running"""
    try:
        stored_count = client.get(key)
        stored_ttl = client.ttl(key)
    except redis.RedisError as e:
        logger.warning(f"⚠️ Could not read {key} from Redis, counting in memory only: {e}")
        stored_count, stored_ttl = None, -2

    if stored_count and stored_ttl > 0:
        return {"count": int(stored_count), "reset_time": now + stored_ttl, "last_redis_sync": now}
    return {"count": 0, "reset_time": now + window_seconds, "last_redis_sync": now}


def _sync_window(key: str, window: dict, client: redis.Redis, now: int) -> None:
    if now - window["last_redis_sync"] < REDIS_SYNC_INTERVAL:
        return
    try:
        client.set(key, window["count"], ex=max(1, window["reset_time"] - now))
        window["last_redis_sync"] = now
    except redis.RedisError as e:
        logger.warning(f"⚠️ Could not write {key} to Redis: {e}")


def check_rate_limit(
    key: str, limit: int, window_seconds: int, redis_client: redis.Redis
) -> tuple[bool, int, int]:
    """Count one request against a key's window.

    Returns:
        (allowed, requests counted in the window, seconds until it resets)
    """
    now = int(time.time())
    cleanup_expired_cache(now)

    with cache_lock:
        window = memory_cache.get(key)
        if window is None:
            window = memory_cache[key] = _load_window(key, window_seconds, redis_client, now)

        if now >= window["reset_time"]:
            window.update(count=0, reset_time=now + window_seconds, last_redis_sync=0)

        allowed = window["count"] < limit
        if allowed:
            window["count"] += 1

        _sync_window(key, window, redis_client, now)
        return allowed, window["count"], max(0, window["reset_time"] - now)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def enforce_rate_limit(request: Request, rule: RateLimit) -> None:
    """Raise 429 once the caller has used up the rule's budget"""
    if not RATE_LIMIT_ENABLED:
        return

    key = f"{rule.name}:{client_ip(request) if rule.per_ip else 'global'}"
    try:
        allowed, count, retry_after = check_rate_limit(key, rule.limit, rule.window_seconds, get_redis_client())
    except Exception as e:
        logger.error(f"❌ Rate limiter failure for {key}, denying request: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Rate limiting service temporarily unavailable",
        ) from e

    if not allowed:
        logger.warning(f"🚫 Rate limit exceeded for {key} ({count}/{rule.limit})")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "message": f"Too many requests. {rule.describe()}",
                "retry_after": retry_after,
                "limit": rule.limit,
                "window_seconds": rule.window_seconds,
            },
            headers={"Retry-After": str(retry_after)},
        )

    request.state.rate_limit_remaining = rule.limit - count


def create_rate_limiter(limit: int, window_seconds: int, key_prefix: str = "rate_limit", use_ip: bool = True):
    """
    Build a FastAPI dependency for a rate limit rule

    Example:
        @router.post("")
        def create_appointment(data: AppointmentCreate, _: None = Depends(booking_rate_limit)):
            ...
    """
    rule = RateLimit(key_prefix, limit, window_seconds, use_ip)

    async def rate_limiter(request: Request):
        await enforce_rate_limit(request, rule)

    return rate_limiter


booking_rate_limit = create_rate_limiter(limit=5, window_seconds=60 * 60, key_prefix="booking")
login_rate_limit = create_rate_limiter(limit=5, window_seconds=15 * 60, key_prefix="login")
setup_rate_limit = create_rate_limiter(limit=3, window_seconds=60 * 60, key_prefix="setup")
cancellation_rate_limit = create_rate_limiter(limit=10, window_seconds=15 * 60, key_prefix="cancellation")
api_rate_limit = create_rate_limiter(limit=100, window_seconds=15 * 60, key_prefix="api")
