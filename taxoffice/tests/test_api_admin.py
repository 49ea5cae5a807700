from __future__ import annotations

from datetime import date, datetime, time, timedelta

from taxoffice.config import SESSION_COOKIE_NAME
from taxoffice.models import AdminSession, AdminUser, EmailQueue

from .builders import AdminData, AppointmentData

SETUP_BODY = {"username": "first_admin", "email": "First@TaxOffice.gr", "password": "s3cure-passw0rd"}


def _book(client, **overrides) -> dict:
    response = client.post("/api/appointments", json=AppointmentData(**overrides).payload())
    assert response.status_code == 201
    return response.json()


# ---------------------------------------------------------------------------
# Setup and sessions
# ---------------------------------------------------------------------------


def test_first_run_setup_only_once(client, db) -> None:
    assert client.get("/api/admin/check-setup").json() == {"setup_required": True}

    created = client.post("/api/admin/setup", json=SETUP_BODY)
    assert created.status_code == 201
    assert created.json()["email"] == "first@taxoffice.gr"
    assert "password_hash" not in created.json()

    assert client.get("/api/admin/check-setup").json() == {"setup_required": False}
    again = client.post("/api/admin/setup", json={**SETUP_BODY, "username": "second_admin"})
    assert again.status_code == 403
    assert db.query(AdminUser).count() == 1


def test_setup_validates_password_length(client) -> None:
    response = client.post("/api/admin/setup", json={**SETUP_BODY, "password": "short"})
    assert response.status_code == 422


def test_login_sets_cookie_and_me_works(client, admin) -> None:
    data = AdminData()

    response = client.post("/api/admin/login", json={"username": data.username, "password": data.password})

    assert response.status_code == 200
    assert SESSION_COOKIE_NAME in response.cookies
    me = client.get("/api/admin/me")
    assert me.status_code == 200
    assert me.json()["username"] == data.username
    assert me.json()["last_login"] is not None


def test_wrong_password_and_unknown_user_look_the_same(client, admin) -> None:
    wrong = client.post("/api/admin/login", json={"username": AdminData().username, "password": "nope-nope"})
    unknown = client.post("/api/admin/login", json={"username": "ghost", "password": "nope-nope"})

    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json() == unknown.json()


def test_admin_routes_require_session(client) -> None:
    assert client.get("/api/admin/me").status_code == 401
    assert client.get("/api/admin/appointments").status_code == 401
    assert client.get("/api/admin/availability/settings").status_code == 401


def test_tampered_cookie_rejected(client, admin) -> None:
    client.cookies.set(SESSION_COOKIE_NAME, "forged.value.signature")
    assert client.get("/api/admin/me").status_code == 401


def test_logout_revokes_session(admin_client, db) -> None:
    assert db.query(AdminSession).count() == 1

    assert admin_client.post("/api/admin/logout").status_code == 200

    assert db.query(AdminSession).count() == 0
    assert admin_client.get("/api/admin/me").status_code == 401


def test_expired_session_is_removed(admin_client, db) -> None:
    session = db.query(AdminSession).one()
    session.expires_at = datetime.utcnow() - timedelta(minutes=1)
    db.commit()

    response = admin_client.get("/api/admin/me")

    assert response.status_code == 401
    assert response.json()["detail"] == "Session expired. Please log in again."
    assert db.query(AdminSession).count() == 0


# ---------------------------------------------------------------------------
# Appointments
# ---------------------------------------------------------------------------


def test_list_appointments_ordered_by_slot(admin_client) -> None:
    _book(admin_client, appointment_date=date(2024, 6, 11), appointment_time=time(9, 0))
    _book(admin_client, appointment_time=time(15, 0))
    _book(admin_client, appointment_time=time(9, 30))

    body = admin_client.get("/api/admin/appointments").json()

    assert body["total"] == 3
    assert [(a["appointment_date"], a["appointment_time"]) for a in body["items"]] == [
        ("2024-06-10", "09:30:00"),
        ("2024-06-10", "15:00:00"),
        ("2024-06-11", "09:00:00"),
    ]


def test_list_filters_and_pagination(admin_client) -> None:
    for hour in (9, 10, 11):
        _book(admin_client, appointment_time=time(hour, 0))
    _book(admin_client, appointment_date=date(2024, 6, 12), client_name="Ελένη Γεωργίου")

    monday = admin_client.get("/api/admin/appointments", params={"from": "2024-06-10", "to": "2024-06-10"})
    assert monday.json()["total"] == 3

    page = admin_client.get("/api/admin/appointments", params={"limit": 2, "page": 2}).json()
    assert page["pages"] == 2
    assert len(page["items"]) == 2

    found = admin_client.get("/api/admin/appointments", params={"search": "Ελένη"}).json()
    assert [a["client_name"] for a in found["items"]] == ["Ελένη Γεωργίου"]


def test_inverted_range_is_a_bad_request(admin_client) -> None:
    response = admin_client.get("/api/admin/appointments", params={"from": "2024-06-20", "to": "2024-06-10"})

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_filter"


def test_limit_above_maximum_rejected(admin_client) -> None:
    assert admin_client.get("/api/admin/appointments", params={"limit": 500}).status_code == 422


def test_status_changes(admin_client, db) -> None:
    appointment = _book(admin_client)
    url = f"/api/admin/appointments/{appointment['id']}/status"

    confirmed = admin_client.put(url, json={"status": "confirmed"})
    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "confirmed"
    assert db.query(EmailQueue).filter(EmailQueue.email_type == "appointment-confirmed").count() == 1

    assert admin_client.put(url, json={"status": "declined"}).status_code == 422
    assert admin_client.put(url, json={"status": "cancelled"}).status_code == 422

    declined = admin_client.put(url, json={"status": "declined", "decline_reason": "Λείπουν δικαιολογητικά"})
    assert declined.status_code == 200
    assert declined.json()["decline_reason"] == "Λείπουν δικαιολογητικά"

    back = admin_client.put(url, json={"status": "confirmed"})
    assert back.status_code == 409
    assert back.json()["error"] == "invalid_status_transition"

    detail = admin_client.get(f"/api/admin/appointments/{appointment['id']}").json()
    assert [h["new_status"] for h in detail["history"]] == ["declined", "confirmed", "booked"]


def test_version_conflict(admin_client) -> None:
    appointment = _book(admin_client)

    response = admin_client.put(
        f"/api/admin/appointments/{appointment['id']}/status", json={"status": "confirmed", "version": 5}
    )

    assert response.status_code == 409
    assert response.json()["error"] == "concurrent_modification"


def test_admin_cancel_and_reschedule(admin_client) -> None:
    kept = _book(admin_client, appointment_time=time(12, 0))
    moved = _book(admin_client)

    conflict = admin_client.put(f"/api/admin/appointments/{moved['id']}", json={"appointment_time": "12:00"})
    assert conflict.status_code == 409

    ok = admin_client.put(f"/api/admin/appointments/{moved['id']}", json={"appointment_time": "12:30"})
    assert ok.status_code == 200
    assert ok.json()["appointment_time"] == "12:30:00"

    cancelled = admin_client.post(f"/api/admin/appointments/{kept['id']}/cancel", json={"reason": "Ασθένεια"})
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"


def test_missing_appointment(admin_client) -> None:
    assert admin_client.get("/api/admin/appointments/999").status_code == 404


def test_appointment_stats(admin_client) -> None:
    _book(admin_client)
    _book(admin_client, appointment_date=date(2024, 6, 13))

    stats = admin_client.get("/api/admin/appointments/stats").json()

    assert stats["by_status"] == {"booked": 2}
    assert stats["today"] == 1
    assert stats["upcoming_week"] == 1


# ---------------------------------------------------------------------------
# Office hours and blocked dates
# ---------------------------------------------------------------------------


def test_weekly_settings_seeded_and_updated(admin_client) -> None:
    settings = admin_client.get("/api/admin/availability/settings").json()
    assert len(settings) == 7
    assert [s["is_working_day"] for s in settings] == [True] * 5 + [False] * 2

    update = admin_client.put(
        "/api/admin/availability/settings",
        json={"days": [{"day_of_week": 5, "is_working_day": True, "start_time": "10:00", "end_time": "14:00"}]},
    )
    assert update.status_code == 200

    saturday = admin_client.get("/api/availability", params={"date": "2024-06-15"}).json()
    assert len(saturday["slots"]) == 8
    assert saturday["slots"][0] == "10:00:00"


def test_weekly_settings_validation(admin_client) -> None:
    bad_window = {"days": [{"day_of_week": 0, "is_working_day": True, "start_time": "17:00", "end_time": "09:00"}]}
    with_offset = {
        "days": [{"day_of_week": 0, "is_working_day": True, "start_time": "09:00:00Z", "end_time": "17:00:00Z"}]
    }
    duplicate = {
        "days": [
            {"day_of_week": 1, "is_working_day": False},
            {"day_of_week": 1, "is_working_day": False},
        ]
    }

    assert admin_client.put("/api/admin/availability/settings", json=bad_window).status_code == 422
    assert admin_client.put("/api/admin/availability/settings", json=with_offset).status_code == 422
    assert admin_client.put("/api/admin/availability/settings", json=duplicate).status_code == 422


def test_blocked_dates_lifecycle(admin_client) -> None:
    created = admin_client.post(
        "/api/admin/availability/blocked-dates", json={"blocked_date": "2024-06-12", "reason": "Τοπική αργία"}
    )
    assert created.status_code == 201
    blocked_id = created.json()["id"]

    duplicate = admin_client.post("/api/admin/availability/blocked-dates", json={"blocked_date": "2024-06-12"})
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "date_already_blocked"

    closed = admin_client.get("/api/availability", params={"date": "2024-06-12"})
    assert closed.status_code == 400
    assert closed.json()["error"] == "non_working_day"

    listed = admin_client.get("/api/admin/availability/blocked-dates").json()
    assert [b["blocked_date"] for b in listed] == ["2024-06-12"]

    assert admin_client.delete(f"/api/admin/availability/blocked-dates/{blocked_id}").status_code == 200
    assert admin_client.delete(f"/api/admin/availability/blocked-dates/{blocked_id}").status_code == 404
    assert len(admin_client.get("/api/availability", params={"date": "2024-06-12"}).json()["slots"]) == 16

    # a soft-deleted date can be blocked again
    again = admin_client.post("/api/admin/availability/blocked-dates", json={"blocked_date": "2024-06-12"})
    assert again.status_code == 201
    assert again.json()["id"] == blocked_id


def test_blocking_a_past_date_rejected(admin_client) -> None:
    response = admin_client.post("/api/admin/availability/blocked-dates", json={"blocked_date": "2024-06-01"})
    assert response.status_code == 400


def test_availability_stats(admin_client) -> None:
    _book(admin_client)

    stats = admin_client.get("/api/admin/availability/stats").json()

    assert stats["booked_slots"] == 1
    assert stats["available_slots"] == stats["total_slots"] - 1
    assert stats["total_slots"] == 45 * 16


# ---------------------------------------------------------------------------
# Email queue
# ---------------------------------------------------------------------------


def test_email_queue_requires_admin(client) -> None:
    assert client.get("/api/admin/email-queue/stats").status_code == 401
    assert client.post("/api/admin/email-queue/retry", json={}).status_code == 401


def test_email_queue_stats_and_retry(admin_client, db) -> None:
    _book(admin_client)
    for entry in db.query(EmailQueue).all():
        entry.status = "failed"
        entry.attempts = 5
    db.commit()

    stats = admin_client.get("/api/admin/email-queue/stats").json()
    assert stats["by_status"] == {"failed": 2}
    assert stats["total"] == 2

    retried = admin_client.post("/api/admin/email-queue/retry", json={"limit": 1})
    assert retried.status_code == 200
    assert retried.json() == {"reset": 1}

    after = admin_client.get("/api/admin/email-queue/stats").json()
    assert after["by_status"] == {"failed": 1, "pending": 1}


def test_email_queue_retry_limit_validated(admin_client) -> None:
    assert admin_client.post("/api/admin/email-queue/retry", json={"limit": 0}).status_code == 422
