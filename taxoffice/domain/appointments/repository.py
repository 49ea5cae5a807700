"""Appointment repository - Database operations for appointments and their history"""

from datetime import date
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from ...models import Appointment, AppointmentHistory
from .schemas import AppointmentFilter


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_by_id(db: Session, appointment_id: int, with_history: bool = False) -> Optional[Appointment]:
        query = db.query(Appointment)
        if with_history:
            query = query.options(selectinload(Appointment.history))
        return query.filter(Appointment.id == appointment_id).first()

    @staticmethod
    def get_by_token(db: Session, token: str) -> Optional[Appointment]:
        return db.query(Appointment).filter(Appointment.cancellation_token == token).first()

    @staticmethod
    def add_history(
        db: Session,
        appointment: Appointment,
        old_status: Optional[str],
        new_status: str,
        changed_by: str,
        notes: Optional[str] = None,
    ) -> AppointmentHistory:
        """Append a history row (caller commits)"""
        entry = AppointmentHistory(
            old_status=old_status,
            new_status=new_status,
            changed_by=changed_by,
            notes=notes,
        )
        appointment.history.append(entry)
        return entry

    @staticmethod
    def list_appointments(db: Session, filters: AppointmentFilter) -> tuple[list[Appointment], int]:
        """Filtered page ordered by (date, time) ascending, plus the total match count"""
        query = db.query(Appointment)

        if filters.from_date:
            query = query.filter(Appointment.appointment_date >= filters.from_date)
        if filters.to_date:
            query = query.filter(Appointment.appointment_date <= filters.to_date)
        if filters.status:
            query = query.filter(Appointment.status == filters.status.value)
        if filters.service_type:
            query = query.filter(Appointment.service_type == filters.service_type.value)
        if filters.search:
            term = f"%{filters.search.strip()}%"
            query = query.filter(
                or_(
                    Appointment.client_name.ilike(term),
                    Appointment.client_email.ilike(term),
                    Appointment.client_phone.ilike(term),
                )
            )

        total = query.count()
        items = (
            query.order_by(
                Appointment.appointment_date.asc(),
                Appointment.appointment_time.asc(),
                Appointment.id.asc(),
            )
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
            .all()
        )
        return items, total

    @staticmethod
    def status_counts(db: Session) -> dict[str, int]:
        rows = db.query(Appointment.status, func.count(Appointment.id)).group_by(Appointment.status).all()
        return {status: count for status, count in rows}

    @staticmethod
    def count_between(db: Session, start: date, end: date, statuses: tuple[str, ...]) -> int:
        """Appointments with a date in [start, end] and one of the given statuses"""
        return (
            db.query(Appointment)
            .filter(
                Appointment.appointment_date >= start,
                Appointment.appointment_date <= end,
                Appointment.status.in_(statuses),
            )
            .count()
        )
