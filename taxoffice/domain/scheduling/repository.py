"""Scheduling repository - Database operations for office hours, blocked dates and booked slots"""

from collections import defaultdict
from datetime import date, time
from typing import Optional

from sqlalchemy.orm import Session

from ...models import OCCUPYING_STATUSES, Appointment, AvailabilitySetting, BlockedDate


class SchedulingRepository:
    """Repository for availability database operations"""

    @staticmethod
    def get_weekly_settings(db: Session) -> list[AvailabilitySetting]:
        return db.query(AvailabilitySetting).order_by(AvailabilitySetting.day_of_week).all()

    @staticmethod
    def get_setting(db: Session, day_of_week: int) -> Optional[AvailabilitySetting]:
        return (
            db.query(AvailabilitySetting)
            .filter(AvailabilitySetting.day_of_week == day_of_week)
            .first()
        )

    @staticmethod
    def save_setting(
        db: Session,
        day_of_week: int,
        is_working_day: bool,
        start_time: Optional[time],
        end_time: Optional[time],
    ) -> AvailabilitySetting:
        """Insert or update the row for a weekday (caller commits)"""
        setting = SchedulingRepository.get_setting(db, day_of_week)
        if setting is None:
            setting = AvailabilitySetting(day_of_week=day_of_week)
            db.add(setting)

        setting.is_working_day = is_working_day
        setting.start_time = start_time if is_working_day else None
        setting.end_time = end_time if is_working_day else None
        return setting

    @staticmethod
    def get_active_blocked_dates(db: Session, from_date: Optional[date] = None) -> list[BlockedDate]:
        query = db.query(BlockedDate).filter(BlockedDate.deleted_at.is_(None))
        if from_date is not None:
            query = query.filter(BlockedDate.blocked_date >= from_date)
        return query.order_by(BlockedDate.blocked_date.asc()).all()

    @staticmethod
    def get_blocked_date_by_id(db: Session, blocked_id: int) -> Optional[BlockedDate]:
        return db.query(BlockedDate).filter(BlockedDate.id == blocked_id).first()

    @staticmethod
    def get_blocked_date_by_day(db: Session, day: date) -> Optional[BlockedDate]:
        """Row for a date, including soft-deleted ones"""
        return db.query(BlockedDate).filter(BlockedDate.blocked_date == day).first()

    @staticmethod
    def create_blocked_date(db: Session, day: date, reason: Optional[str]) -> BlockedDate:
        blocked = BlockedDate(blocked_date=day, reason=reason)
        db.add(blocked)
        db.commit()
        db.refresh(blocked)
        return blocked

    @staticmethod
    def get_booked_times(db: Session, day: date) -> list[time]:
        """Start times of occupied slots on a date"""
        rows = (
            db.query(Appointment.appointment_time)
            .filter(
                Appointment.appointment_date == day,
                Appointment.status.in_(OCCUPYING_STATUSES),
            )
            .all()
        )
        return [row[0] for row in rows]

    @staticmethod
    def get_booked_times_between(db: Session, start: date, end: date) -> dict[date, list[time]]:
        """Occupied slot start times per date for an inclusive date range"""
        rows = (
            db.query(Appointment.appointment_date, Appointment.appointment_time)
            .filter(
                Appointment.appointment_date >= start,
                Appointment.appointment_date <= end,
                Appointment.status.in_(OCCUPYING_STATUSES),
            )
            .all()
        )
        booked = defaultdict(list)
        for day, at in rows:
            booked[day].append(at)
        return dict(booked)

    @staticmethod
    def count_occupying_on(db: Session, day: date) -> int:
        return (
            db.query(Appointment)
            .filter(
                Appointment.appointment_date == day,
                Appointment.status.in_(OCCUPYING_STATUSES),
            )
            .count()
        )
