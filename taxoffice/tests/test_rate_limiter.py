from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import redis
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from taxoffice import rate_limiter
from taxoffice.rate_limiter import check_rate_limit, create_rate_limiter

limited = create_rate_limiter(limit=2, window_seconds=60, key_prefix="test")


def _app() -> FastAPI:
    app = FastAPI()

    @app.post("/limited")
    async def limited_route(_: None = Depends(limited)):
        return {"ok": True}

    return app


def _redis() -> MagicMock:
    client = MagicMock()
    client.get.return_value = None
    client.ttl.return_value = -2
    return client


@pytest.fixture(autouse=True)
def _empty_cache():
    rate_limiter.memory_cache.clear()
    yield
    rate_limiter.memory_cache.clear()


def test_requests_over_limit_get_429() -> None:
    client = TestClient(_app())

    with (
        patch("taxoffice.rate_limiter.RATE_LIMIT_ENABLED", True),
        patch("taxoffice.rate_limiter.get_redis_client", return_value=_redis()),
    ):
        assert client.post("/limited").status_code == 200
        assert client.post("/limited").status_code == 200
        blocked = client.post("/limited")

    assert blocked.status_code == 429
    assert 0 < int(blocked.headers["Retry-After"]) <= 60
    assert blocked.json()["detail"]["limit"] == 2


def test_limits_are_per_client_ip() -> None:
    client = TestClient(_app())

    with (
        patch("taxoffice.rate_limiter.RATE_LIMIT_ENABLED", True),
        patch("taxoffice.rate_limiter.get_redis_client", return_value=_redis()),
    ):
        for _ in range(2):
            client.post("/limited", headers={"X-Forwarded-For": "10.0.0.1"})
        other = client.post("/limited", headers={"X-Forwarded-For": "10.0.0.2"})

    assert other.status_code == 200


def test_redis_unavailable_fails_closed() -> None:
    client = TestClient(_app())

    with (
        patch("taxoffice.rate_limiter.RATE_LIMIT_ENABLED", True),
        patch("taxoffice.rate_limiter.get_redis_client", side_effect=redis.ConnectionError("down")),
    ):
        response = client.post("/limited")

    assert response.status_code == 503


def test_disabled_limiter_skips_redis() -> None:
    client = TestClient(_app())

    with (
        patch("taxoffice.rate_limiter.RATE_LIMIT_ENABLED", False),
        patch("taxoffice.rate_limiter.get_redis_client") as get_client,
    ):
        for _ in range(5):
            assert client.post("/limited").status_code == 200

    get_client.assert_not_called()


def test_existing_redis_window_is_honoured() -> None:
    client = _redis()
    client.get.return_value = "5"
    client.ttl.return_value = 30

    allowed, count, ttl = check_rate_limit("login:1.2.3.4", 5, 900, client)

    assert allowed is False
    assert count == 5
    assert 0 < ttl <= 30
