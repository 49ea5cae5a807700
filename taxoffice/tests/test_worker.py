from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

from taxoffice.database import SessionLocal
from taxoffice.models import AdminSession, EmailQueue
from taxoffice.worker import (
    WorkerSettings,
    clean_old_emails_task,
    purge_expired_sessions_task,
    send_queued_emails_task,
)


def test_cron_jobs_registered() -> None:
    names = {job.coroutine.__name__ for job in WorkerSettings.cron_jobs}
    assert names == {"send_queued_emails_task", "purge_expired_sessions_task", "clean_old_emails_task"}


def test_email_task_closes_its_session() -> None:
    session = MagicMock()

    with (
        patch("taxoffice.worker.SessionLocal", return_value=session),
        patch("taxoffice.worker.process_email_queue", new=AsyncMock(return_value={"sent": 2})) as process,
    ):
        result = asyncio.run(send_queued_emails_task({}))

    assert result == {"sent": 2}
    process.assert_awaited_once_with(session)
    session.close.assert_called_once()


def test_purge_task_removes_only_expired_sessions(db, admin) -> None:
    now = datetime.utcnow()
    db.add_all(
        [
            AdminSession(admin_id=admin.id, token_hash="a" * 64, expires_at=now - timedelta(hours=1)),
            AdminSession(admin_id=admin.id, token_hash="b" * 64, expires_at=now + timedelta(hours=1)),
        ]
    )
    db.commit()

    with patch("taxoffice.worker.SessionLocal", side_effect=SessionLocal):
        removed = asyncio.run(purge_expired_sessions_task({}))

    assert removed == 1
    assert [s.token_hash for s in db.query(AdminSession).all()] == ["b" * 64]


def test_cleanup_task_prunes_old_delivered_emails(db) -> None:
    old = datetime.utcnow() - timedelta(days=60)
    db.add_all(
        [
            EmailQueue(email_type="booking-confirmation", recipient=recipient, data={}, status=status, created_at=old)
            for recipient, status in (("a@example.gr", "sent"), ("b@example.gr", "pending"))
        ]
    )
    db.commit()

    with patch("taxoffice.worker.SessionLocal", side_effect=SessionLocal):
        removed = asyncio.run(clean_old_emails_task({}))

    assert removed == 1
    assert [e.recipient for e in db.query(EmailQueue).all()] == ["b@example.gr"]
