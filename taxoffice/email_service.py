"""
Email Service using Resend
Appointment emails are queued in the email_queue table inside the same
transaction as the booking change, then rendered from MJML and delivered by
the background worker.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, Union

import resend
from mjml import mjml_to_html
from sqlalchemy import func
from sqlalchemy.orm import Session

from .config import EMAIL_FROM_ADDRESS, EMAIL_MAX_ATTEMPTS, RESEND_API_KEY
from .email_templates import EMAIL_TEMPLATES
from .models import EmailQueue
from .security_utils import mask_sensitive_data

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY

DEFAULT_BATCH_SIZE = 20


class EmailDeliveryError(Exception):
    """Rendering or sending an email failed; the queue will retry"""


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise EmailDeliveryError(f"Failed to compile MJML template: {str(e)}") from e

    # mjml_to_html returns a dict with 'html' and 'errors' keys
    if result.get("errors"):
        logger.warning(f"MJML compilation warnings: {result['errors']}")
    return result.get("html", "")


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address

    Returns:
        Resend response dict
    """
    html_content = compile_mjml_to_html(mjml_content)
    recipients = [to] if isinstance(to, str) else to

    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise EmailDeliveryError("Email service not configured")

    try:
        response = resend.Emails.send(
            {
                "from": from_address or EMAIL_FROM_ADDRESS,
                "to": recipients,
                "subject": subject,
                "html": html_content,
            }
        )
    except Exception as e:
        logger.error(f"❌ Email send error: {e}")
        raise EmailDeliveryError(f"Failed to send email: {str(e)}") from e

    logger.info(f"✅ Email sent via Resend: {response}")
    return response


def queue_email(db: Session, email_type: str, recipient: str, data: dict) -> EmailQueue:
    """
    Add an email to the queue. The caller commits, so the email is stored
    only if the state change that triggered it is.
    """
    subject_for, _ = EMAIL_TEMPLATES[email_type]
    entry = EmailQueue(
        email_type=email_type,
        recipient=recipient,
        data=data,
        subject=subject_for(data),
        status="pending",
        attempts=0,
    )
    db.add(entry)
    logger.debug(f"📨 Queued {email_type} email for {mask_sensitive_data(recipient)}")
    return entry


def retry_delay(attempts: int) -> timedelta:
    """Backoff after a failed attempt: 1, 2, 4, 8 ... minutes"""
    return timedelta(minutes=2 ** max(attempts - 1, 0))


def _mark_failed(db: Session, entry: EmailQueue, reason: str) -> None:
    entry.status = "failed"
    entry.error_message = reason
    db.commit()


async def process_email_queue(
    db: Session,
    batch_size: int = DEFAULT_BATCH_SIZE,
    now: Optional[datetime] = None,
) -> dict:
    """
    Send due emails from the queue.

    Returns:
        Counts of sent, retried and failed emails
    """
    now = now or datetime.utcnow()
    due = (
        db.query(EmailQueue)
        .filter(
            EmailQueue.status == "pending",
            (EmailQueue.next_attempt_at.is_(None)) | (EmailQueue.next_attempt_at <= now),
        )
        .order_by(EmailQueue.id)
        .limit(batch_size)
        .all()
    )

    summary = {"sent": 0, "retried": 0, "failed": 0}
    for entry in due:
        entry.attempts += 1
        template = EMAIL_TEMPLATES.get(entry.email_type)
        if template is None:
            logger.error(f"❌ Unknown email type {entry.email_type} (queue id {entry.id})")
            _mark_failed(db, entry, f"Unknown email type: {entry.email_type}")
            summary["failed"] += 1
            continue

        _, build_mjml = template
        try:
            mjml_content = build_mjml(entry.data)
        except Exception as e:
            # Bad stored data renders the same way on every run
            logger.error(f"❌ Could not render {entry.email_type} email {entry.id}: {e}")
            _mark_failed(db, entry, f"Template error: {e}")
            summary["failed"] += 1
            continue

        try:
            await send_email(entry.recipient, entry.subject, mjml_content)
        except EmailDeliveryError as e:
            entry.error_message = str(e)
            if entry.attempts >= EMAIL_MAX_ATTEMPTS:
                entry.status = "failed"
                summary["failed"] += 1
                logger.error(
                    f"❌ Giving up on {entry.email_type} email {entry.id} after {entry.attempts} attempts"
                )
            else:
                entry.next_attempt_at = now + retry_delay(entry.attempts)
                summary["retried"] += 1
                logger.warning(
                    f"⚠️ {entry.email_type} email {entry.id} failed (attempt {entry.attempts}), "
                    f"retrying at {entry.next_attempt_at}"
                )
        else:
            entry.status = "sent"
            entry.sent_at = now
            entry.error_message = None
            summary["sent"] += 1
        finally:
            db.commit()

    if due:
        logger.info(f"📬 Email queue processed: {summary}")
    return summary


# ============================================================================
# QUEUE UPKEEP
# ============================================================================


def email_queue_stats(db: Session, now: Optional[datetime] = None) -> dict:
    """Queue size per status plus failures queued in the last 24 hours"""
    now = now or datetime.utcnow()
    rows = db.query(EmailQueue.status, func.count(EmailQueue.id)).group_by(EmailQueue.status).all()
    by_status = {status: count for status, count in rows}

    failed_recent = (
        db.query(func.count(EmailQueue.id))
        .filter(EmailQueue.status == "failed", EmailQueue.created_at >= now - timedelta(hours=24))
        .scalar()
    )
    return {
        "by_status": by_status,
        "total": sum(by_status.values()),
        "failed_last_24h": failed_recent or 0,
    }


def retry_failed_emails(db: Session, limit: int = 10) -> int:
    """
    Put the newest `limit` failed emails back in the queue with a fresh
    attempt budget. Returns how many were reset.
    """
    failed = (
        db.query(EmailQueue)
        .filter(EmailQueue.status == "failed")
        .order_by(EmailQueue.created_at.desc(), EmailQueue.id.desc())
        .limit(limit)
        .all()
    )
    for entry in failed:
        entry.status = "pending"
        entry.attempts = 0
        entry.error_message = None
        entry.next_attempt_at = None
    db.commit()

    logger.info(f"🔁 Reset {len(failed)} failed emails for retry")
    return len(failed)


def clean_old_emails(db: Session, days_old: int = 30, now: Optional[datetime] = None) -> int:
    """Delete sent and failed emails queued more than `days_old` days ago"""
    now = now or datetime.utcnow()
    deleted = (
        db.query(EmailQueue)
        .filter(
            EmailQueue.status.in_(("sent", "failed")),
            EmailQueue.created_at < now - timedelta(days=days_old),
        )
        .delete(synchronize_session=False)
    )
    db.commit()

    if deleted:
        logger.info(f"🧹 Cleaned {deleted} old emails from queue")
    return deleted
