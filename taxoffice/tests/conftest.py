from __future__ import annotations

import os
import tempfile
from datetime import datetime

# Settings are read at import time, so the environment is prepared first.
_DB_DIR = tempfile.mkdtemp(prefix="taxoffice-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["CSRF_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ["TIMEZONE"] = "Europe/Athens"
os.environ["BOOKING_WINDOW_DAYS"] = "60"
os.environ["MINIMUM_NOTICE_HOURS"] = "0"
os.environ["SLOT_DURATION_MINUTES"] = "30"
os.environ["DEFAULT_WORKING_DAYS"] = "0,1,2,3,4"
os.environ["DEFAULT_OPEN_TIME"] = "09:00"
os.environ["DEFAULT_CLOSE_TIME"] = "17:00"
os.environ["ADMIN_EMAIL"] = "office@taxoffice.gr"
os.environ.pop("RESEND_API_KEY", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from taxoffice import models  # noqa: E402,F401
from taxoffice.database import Base, SessionLocal, engine  # noqa: E402
from taxoffice.domain.admin.repository import AdminRepository  # noqa: E402
from taxoffice.domain.scheduling.service import get_clock  # noqa: E402
from taxoffice.main import app  # noqa: E402
from taxoffice.security_utils import hash_password  # noqa: E402

from .builders import AdminData  # noqa: E402

# Monday; the booking window runs to Friday 2024-08-09
FIXED_NOW = datetime(2024, 6, 10, 7, 0)


def fixed_clock() -> datetime:
    return FIXED_NOW


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    engine.dispose()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    app.dependency_overrides[get_clock] = lambda: fixed_clock
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def admin(db):
    data = AdminData()
    return AdminRepository.create_admin(db, data.username, data.email, hash_password(data.password))


@pytest.fixture
def admin_client(client, admin):
    data = AdminData()
    response = client.post(
        "/api/admin/login", json={"username": data.username, "password": data.password}
    )
    assert response.status_code == 200
    return client
