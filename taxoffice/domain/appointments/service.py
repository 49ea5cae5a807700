"""Appointment service - Booking transaction, cancellation and admin workflow"""

import calendar
import logging
import math
from collections.abc import Callable
from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ...config import ADMIN_EMAIL
from ...email_service import queue_email
from ...models import Appointment, generate_cancellation_token
from ...security_utils import mask_sensitive_data
from ...shared.validators import validate_uuid
from ..scheduling.availability import AvailabilityIndex, slot_locks
from ..scheduling.errors import (
    AlreadyCancelled,
    AppointmentNotFound,
    ConcurrentModification,
    InvalidFilter,
    InvalidStatusTransition,
    SlotTaken,
)
from ..scheduling.policy import BusinessHoursPolicy
from ..scheduling.repository import SchedulingRepository
from ..scheduling.service import AvailabilityService
from .repository import AppointmentRepository
from .schemas import AppointmentCreate, AppointmentFilter, AppointmentStatus, AppointmentUpdate, StatusUpdate

logger = logging.getLogger(__name__)

# status -> statuses it may move to
ALLOWED_TRANSITIONS = {
    AppointmentStatus.BOOKED.value: {
        AppointmentStatus.CONFIRMED.value,
        AppointmentStatus.DECLINED.value,
        AppointmentStatus.COMPLETED.value,
        AppointmentStatus.CANCELLED.value,
    },
    AppointmentStatus.CONFIRMED.value: {
        AppointmentStatus.COMPLETED.value,
        AppointmentStatus.DECLINED.value,
        AppointmentStatus.CANCELLED.value,
    },
}

EDITABLE_STATUSES = (AppointmentStatus.BOOKED.value, AppointmentStatus.CONFIRMED.value)


def email_payload(appointment: Appointment) -> dict:
    """JSON-safe appointment data stored with queued emails"""
    return {
        "client_name": appointment.client_name,
        "client_email": appointment.client_email,
        "client_phone": appointment.client_phone,
        "appointment_date": appointment.appointment_date.isoformat(),
        "appointment_time": appointment.appointment_time.isoformat(),
        "service_type": appointment.service_type,
        "notes": appointment.notes,
        "cancellation_token": appointment.cancellation_token,
        "decline_reason": appointment.decline_reason,
    }


class AppointmentService:
    """Service layer for appointments"""

    def __init__(self, db: Session, clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.repo = AppointmentRepository()
        self.scheduling_repo = SchedulingRepository()
        self.availability = AvailabilityService(db, clock=clock)

    # ------------------------------------------------------------------
    # Transaction helpers
    # ------------------------------------------------------------------

    def _claim_slot(self, policy: BusinessHoursPolicy, day: date, at: time) -> None:
        """Raise SlotTaken if (day, at) is occupied in the database"""
        index = AvailabilityIndex(policy, {day: self.scheduling_repo.get_booked_times(self.db, day)})
        index.mark_booked(day, at)

    def _commit(self) -> None:
        """
        Commit, mapping the occupied-slot unique index to SlotTaken and
        optimistic version conflicts to ConcurrentModification.
        """
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Slot claimed by a concurrent booking: {e.orig}")
            raise SlotTaken() from e
        except StaleDataError as e:
            self.db.rollback()
            logger.warning("⚠️ Appointment changed by another request during update")
            raise ConcurrentModification() from e

    @staticmethod
    def _check_transition(appointment: Appointment, new_status: str) -> None:
        if new_status not in ALLOWED_TRANSITIONS.get(appointment.status, set()):
            raise InvalidStatusTransition(
                f"Cannot change appointment from {appointment.status} to {new_status}"
            )

    @staticmethod
    def _check_version(appointment: Appointment, expected: Optional[int]) -> None:
        if expected is not None and expected != appointment.version:
            raise ConcurrentModification()

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    def book(self, data: AppointmentCreate) -> Appointment:
        """
        Book a slot for a client.

        The slot is validated against the business calendar, then re-checked
        against committed bookings while holding the slot's lock. The partial
        unique index catches bookings committed by other processes.

        Raises:
            InvalidDate / NonWorkingDay / InvalidSlot: slot not bookable
            SlotTaken: slot already occupied
        """
        day, at = data.appointment_date, data.appointment_time
        policy = self.availability.load_policy()
        policy.check_slot(day, at)

        with slot_locks.hold(day, at):
            self._claim_slot(policy, day, at)

            appointment = Appointment(
                client_name=data.client_name,
                client_email=data.client_email,
                client_phone=data.client_phone,
                appointment_date=day,
                appointment_time=at,
                service_type=data.service_type.value,
                notes=data.notes,
                status=AppointmentStatus.BOOKED.value,
                cancellation_token=generate_cancellation_token(),
            )
            self.db.add(appointment)
            self.repo.add_history(
                self.db, appointment, None, AppointmentStatus.BOOKED.value, "client", "Appointment created"
            )

            payload = email_payload(appointment)
            queue_email(self.db, "booking-confirmation", appointment.client_email, payload)
            if ADMIN_EMAIL:
                queue_email(self.db, "admin-notification", ADMIN_EMAIL, payload)

            self._commit()

        self.db.refresh(appointment)
        logger.info(
            f"📅 Appointment {appointment.id} booked for {day} {at.strftime('%H:%M')} "
            f"({mask_sensitive_data(appointment.client_email)})"
        )
        return appointment

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_appointment(self, appointment_id: int) -> Appointment:
        appointment = self.repo.get_by_id(self.db, appointment_id, with_history=True)
        if not appointment:
            raise AppointmentNotFound()
        return appointment

    def get_by_token(self, token: str) -> Appointment:
        if not validate_uuid(token):
            raise AppointmentNotFound()
        appointment = self.repo.get_by_token(self.db, token)
        if not appointment:
            raise AppointmentNotFound()
        return appointment

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def _cancel(self, appointment: Appointment, changed_by: str, reason: Optional[str]) -> Appointment:
        if appointment.status == AppointmentStatus.CANCELLED.value:
            raise AlreadyCancelled()
        self._check_transition(appointment, AppointmentStatus.CANCELLED.value)

        old_status = appointment.status
        appointment.status = AppointmentStatus.CANCELLED.value
        self.repo.add_history(
            self.db,
            appointment,
            old_status,
            appointment.status,
            changed_by,
            reason or f"Cancelled by {changed_by}",
        )
        queue_email(self.db, "cancellation-confirmation", appointment.client_email, email_payload(appointment))
        self._commit()

        logger.info(f"🗑️ Appointment {appointment.id} cancelled by {changed_by}")
        return appointment

    def cancel_by_token(self, token: str, reason: Optional[str] = None) -> Appointment:
        """Client cancellation through the link in their confirmation email"""
        return self._cancel(self.get_by_token(token), "client", reason)

    def cancel(
        self,
        appointment_id: int,
        admin_username: str,
        reason: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Appointment:
        appointment = self.get_appointment(appointment_id)
        self._check_version(appointment, expected_version)
        return self._cancel(appointment, "admin", reason or f"Cancelled by {admin_username}")

    # ------------------------------------------------------------------
    # Admin workflow
    # ------------------------------------------------------------------

    def update_status(self, appointment_id: int, data: StatusUpdate, admin_username: str) -> Appointment:
        """Confirm, decline or complete an appointment"""
        appointment = self.get_appointment(appointment_id)
        self._check_version(appointment, data.version)

        new_status = data.status.value
        self._check_transition(appointment, new_status)

        old_status = appointment.status
        appointment.status = new_status
        notes = f"Status changed by {admin_username}"
        if new_status == AppointmentStatus.DECLINED.value:
            appointment.decline_reason = data.decline_reason
            notes = data.decline_reason

        self.repo.add_history(self.db, appointment, old_status, new_status, "admin", notes)

        if new_status == AppointmentStatus.CONFIRMED.value:
            queue_email(self.db, "appointment-confirmed", appointment.client_email, email_payload(appointment))
        elif new_status == AppointmentStatus.DECLINED.value:
            queue_email(self.db, "appointment-declined", appointment.client_email, email_payload(appointment))

        self._commit()
        logger.info(f"🔄 Appointment {appointment.id}: {old_status} -> {new_status} by {admin_username}")
        return appointment

    def reschedule(self, appointment_id: int, data: AppointmentUpdate, admin_username: str) -> Appointment:
        """
        Edit client details and/or move an appointment to another slot.
        A move is checked against the calendar and claimed under the new slot's lock.
        """
        appointment = self.get_appointment(appointment_id)
        self._check_version(appointment, data.version)
        if appointment.status not in EDITABLE_STATUSES:
            raise InvalidStatusTransition(f"A {appointment.status} appointment cannot be edited")

        changes = data.model_dump(
            exclude_unset=True, exclude={"appointment_date", "appointment_time", "version"}
        )
        for key, value in changes.items():
            if value is None:
                continue
            setattr(appointment, key, value.value if key == "service_type" else value)

        new_day = data.appointment_date or appointment.appointment_date
        new_time = data.appointment_time or appointment.appointment_time
        if (new_day, new_time) == (appointment.appointment_date, appointment.appointment_time):
            self._commit()
            return appointment

        policy = self.availability.load_policy()
        policy.check_slot(new_day, new_time)

        with slot_locks.hold(new_day, new_time):
            self._claim_slot(policy, new_day, new_time)

            moved_from = f"{appointment.appointment_date} {appointment.appointment_time.strftime('%H:%M')}"
            moved_to = f"{new_day} {new_time.strftime('%H:%M')}"
            appointment.appointment_date = new_day
            appointment.appointment_time = new_time
            self.repo.add_history(
                self.db,
                appointment,
                appointment.status,
                appointment.status,
                "admin",
                f"Rescheduled from {moved_from} to {moved_to} by {admin_username}",
            )
            self._commit()

        logger.info(f"📆 Appointment {appointment.id} rescheduled {moved_from} -> {moved_to}")
        return appointment

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_appointments(self, filters: AppointmentFilter) -> dict:
        if filters.from_date and filters.to_date and filters.from_date > filters.to_date:
            raise InvalidFilter("'from' date must not be after 'to' date")

        items, total = self.repo.list_appointments(self.db, filters)
        return {
            "items": items,
            "total": total,
            "page": filters.page,
            "limit": filters.limit,
            "pages": math.ceil(total / filters.limit) if total else 0,
        }

    def appointment_stats(self) -> dict:
        today = self.availability.clock().date()
        active = EDITABLE_STATUSES
        occupying = active + (AppointmentStatus.COMPLETED.value,)
        month_start = today.replace(day=1)
        month_end = today.replace(day=calendar.monthrange(today.year, today.month)[1])

        return {
            "by_status": self.repo.status_counts(self.db),
            "today": self.repo.count_between(self.db, today, today, active),
            "upcoming_week": self.repo.count_between(
                self.db, today + timedelta(days=1), today + timedelta(days=7), active
            ),
            "this_month": self.repo.count_between(self.db, month_start, month_end, occupying),
        }
