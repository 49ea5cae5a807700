"""
MJML Email Templates
Appointment emails rendered with MJML for responsive, cross-client compatibility.
Every template takes the queued payload dict; values are HTML-escaped before use.
"""

from datetime import date, time
from typing import Optional

from .config import PUBLIC_SITE_URL
from .utils.sanitization import sanitize_dict

BRAND = "NT TAXOFFICE"

THEME = {
    "primary": "#1e3a8a",
    "background": "#f8fafc",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "success": "#16a34a",
    "danger": "#dc2626",
}


def format_date(value: str) -> str:
    """2024-06-10 -> Monday 10/06/2024"""
    return date.fromisoformat(value).strftime("%A %d/%m/%Y")


def format_time(value: str) -> str:
    """10:00:00 -> 10:00"""
    return time.fromisoformat(value).strftime("%H:%M")


def cancellation_url(token: str) -> str:
    return f"{PUBLIC_SITE_URL.rstrip('/')}/cancel-appointment?token={token}"


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button href="{cta_url}" background-color="{THEME['primary']}" color="#ffffff"
              font-weight="600" border-radius="8px" padding="18px 40px" font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="32px 40px 48px 40px">
          <mj-column>
            <mj-text font-size="14px" font-weight="700" color="{THEME['primary']}" padding="0 0 24px 0">
              {BRAND}
            </mj-text>
            <mj-divider border-color="{THEME['border']}" border-width="1px" padding="0 0 24px 0" />
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>
            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              {BRAND} - This is an automated message, please do not reply.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def appointment_details(data: dict) -> str:
    """Date / time / service block shared by every appointment email"""
    return f"""
    <mj-text padding="8px 0 24px 0">
      <strong>Date:</strong> {format_date(data['appointment_date'])}<br/>
      <strong>Time:</strong> {format_time(data['appointment_time'])}<br/>
      <strong>Service:</strong> {data['service_type']}
    </mj-text>
    """


def booking_confirmation_template(data: dict) -> str:
    data = sanitize_dict(data)
    content = f"""
    <mj-text>Dear {data['client_name']},</mj-text>
    <mj-text>
      Thank you for booking an appointment with us. Your request has been received
      and will be confirmed by our office shortly.
    </mj-text>
    {appointment_details(data)}
    <mj-text color="{THEME['text_muted']}" font-size="14px">
      If you can no longer attend, please cancel using the button below.
    </mj-text>
    """
    return get_base_template(
        title="Appointment booked",
        preview_text="We have received your appointment request",
        content_sections=content,
        cta_url=cancellation_url(data["cancellation_token"]),
        cta_label="Cancel appointment",
    )


def admin_notification_template(data: dict) -> str:
    data = sanitize_dict(data)
    notes = data.get("notes") or "-"
    content = f"""
    <mj-text>A new appointment was booked through the website.</mj-text>
    <mj-text padding="8px 0 0 0">
      <strong>Client:</strong> {data['client_name']}<br/>
      <strong>Email:</strong> {data['client_email']}<br/>
      <strong>Phone:</strong> {data['client_phone']}
    </mj-text>
    {appointment_details(data)}
    <mj-text><strong>Notes:</strong> {notes}</mj-text>
    """
    return get_base_template(
        title="New appointment",
        preview_text=f"New appointment: {data['client_name']}",
        content_sections=content,
        cta_url=f"{PUBLIC_SITE_URL.rstrip('/')}/admin/dashboard",
        cta_label="Open dashboard",
    )


def cancellation_confirmation_template(data: dict) -> str:
    data = sanitize_dict(data)
    content = f"""
    <mj-text>Dear {data['client_name']},</mj-text>
    <mj-text>Your appointment has been cancelled.</mj-text>
    {appointment_details(data)}
    <mj-text>You are welcome to book a new appointment at any time.</mj-text>
    """
    return get_base_template(
        title="Appointment cancelled",
        preview_text="Your appointment has been cancelled",
        content_sections=content,
        cta_url=PUBLIC_SITE_URL,
        cta_label="Book a new appointment",
    )


def appointment_confirmed_template(data: dict) -> str:
    data = sanitize_dict(data)
    content = f"""
    <mj-text>Dear {data['client_name']},</mj-text>
    <mj-text color="{THEME['success']}">Your appointment has been confirmed.</mj-text>
    {appointment_details(data)}
    <mj-text>We look forward to seeing you.</mj-text>
    """
    return get_base_template(
        title="Appointment confirmed",
        preview_text="Your appointment is confirmed",
        content_sections=content,
        cta_url=cancellation_url(data["cancellation_token"]),
        cta_label="Cancel appointment",
    )


def appointment_declined_template(data: dict) -> str:
    data = sanitize_dict(data)
    content = f"""
    <mj-text>Dear {data['client_name']},</mj-text>
    <mj-text color="{THEME['danger']}">
      Unfortunately we cannot accommodate your appointment request.
    </mj-text>
    {appointment_details(data)}
    <mj-text><strong>Reason:</strong> {data.get('decline_reason') or '-'}</mj-text>
    <mj-text>Please choose another date and time on our website.</mj-text>
    """
    return get_base_template(
        title="Appointment update",
        preview_text="Update about your appointment request",
        content_sections=content,
        cta_url=PUBLIC_SITE_URL,
        cta_label="Book another time",
    )


def booking_confirmation_subject(data: dict) -> str:
    return f"Appointment booked - {BRAND}"


def admin_notification_subject(data: dict) -> str:
    return f"New appointment: {data['client_name']} - {format_date(data['appointment_date'])}"


def cancellation_confirmation_subject(data: dict) -> str:
    return f"Appointment cancelled - {BRAND}"


def appointment_confirmed_subject(data: dict) -> str:
    return f"Your appointment is confirmed - {BRAND}"


def appointment_declined_subject(data: dict) -> str:
    return f"Update about your appointment - {BRAND}"


# email_type -> (subject builder, MJML template builder)
EMAIL_TEMPLATES = {
    "booking-confirmation": (booking_confirmation_subject, booking_confirmation_template),
    "admin-notification": (admin_notification_subject, admin_notification_template),
    "cancellation-confirmation": (cancellation_confirmation_subject, cancellation_confirmation_template),
    "appointment-confirmed": (appointment_confirmed_subject, appointment_confirmed_template),
    "appointment-declined": (appointment_declined_subject, appointment_declined_template),
}
