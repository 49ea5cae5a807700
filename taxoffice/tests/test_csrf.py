from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient

from taxoffice.csrf import CSRF_COOKIE_NAME, CSRF_HEADER_NAME, CSRFMiddleware, csrf_token_endpoint, is_path_exempt


def _client() -> TestClient:
    app = FastAPI()
    app.add_middleware(CSRFMiddleware)

    @app.get("/api/admin/appointments")
    async def read():
        return {"ok": True}

    @app.put("/api/admin/availability/settings")
    async def write():
        return {"ok": True}

    @app.post("/api/appointments")
    async def book():
        return {"ok": True}

    app.add_api_route("/csrf-token", csrf_token_endpoint, methods=["GET"])
    return TestClient(app)


def test_write_without_token_rejected() -> None:
    response = _client().put("/api/admin/availability/settings")

    assert response.status_code == 403
    assert response.json()["error"] == "csrf_failed"


def test_get_issues_cookie_and_matching_header_passes() -> None:
    client = _client()

    first = client.get("/api/admin/appointments")
    token = first.cookies[CSRF_COOKIE_NAME]

    response = client.put("/api/admin/availability/settings", headers={CSRF_HEADER_NAME: token})
    assert response.status_code == 200


def test_mismatched_header_rejected() -> None:
    client = _client()
    client.get("/api/admin/appointments")

    response = client.put("/api/admin/availability/settings", headers={CSRF_HEADER_NAME: "forged"})

    assert response.status_code == 403


def test_public_booking_is_exempt() -> None:
    assert _client().post("/api/appointments").status_code == 200


def test_token_endpoint_reuses_existing_cookie() -> None:
    client = _client()

    issued = client.get("/csrf-token")
    token = issued.json()["csrf_token"]
    assert issued.cookies[CSRF_COOKIE_NAME] == token

    assert client.get("/csrf-token").json()["csrf_token"] == token


def test_root_is_exempt_only_on_exact_match() -> None:
    assert is_path_exempt("/")
    assert not is_path_exempt("/api/admin/availability/settings")
    assert is_path_exempt("/api/admin/login")
