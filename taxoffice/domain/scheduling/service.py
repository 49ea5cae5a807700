"""Scheduling service - Office hours, blocked dates and slot availability"""

import logging
from collections.abc import Callable
from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...config import (
    BOOKING_WINDOW_DAYS,
    DEFAULT_CLOSE_TIME,
    DEFAULT_OPEN_TIME,
    DEFAULT_WORKING_DAYS,
    MINIMUM_NOTICE_HOURS,
    SLOT_DURATION_MINUTES,
)
from ...models import AvailabilitySetting, BlockedDate
from .availability import AvailabilityIndex
from .errors import BlockedDateNotFound, DateAlreadyBlocked, InvalidDate
from .policy import BusinessHoursPolicy, DayHours, business_now
from .repository import SchedulingRepository
from .schemas import WeekdayHours
from .slots import Slot, generate_slots

logger = logging.getLogger(__name__)


def parse_clock_time(value: str) -> time:
    """Parse HH:MM or HH:MM:SS from configuration"""
    return time.fromisoformat(value)


def default_weekly_hours() -> dict[int, DayHours]:
    window = DayHours(parse_clock_time(DEFAULT_OPEN_TIME), parse_clock_time(DEFAULT_CLOSE_TIME))
    return {day: window for day in DEFAULT_WORKING_DAYS}


def get_clock() -> Callable[[], datetime]:
    """Dependency returning the business clock; overridden in tests"""
    return business_now


class AvailabilityService:
    """Service layer for availability and office-hours management"""

    def __init__(self, db: Session, clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.repo = SchedulingRepository()
        self.clock = clock or business_now

    # ------------------------------------------------------------------
    # Policy
    # ------------------------------------------------------------------

    def ensure_default_settings(self) -> None:
        """Seed the weekly hours table on first boot"""
        if self.repo.get_weekly_settings(self.db):
            return

        defaults = default_weekly_hours()
        for day in range(7):
            window = defaults.get(day)
            self.repo.save_setting(
                self.db,
                day,
                window is not None,
                window.open if window else None,
                window.close if window else None,
            )
        self.db.commit()
        logger.info(f"🗓️ Seeded default office hours for weekdays {sorted(defaults)}")

    def weekly_hours(self) -> dict[int, DayHours]:
        settings = self.repo.get_weekly_settings(self.db)
        if not settings:
            return default_weekly_hours()

        return {
            s.day_of_week: DayHours(s.start_time, s.end_time)
            for s in settings
            if s.is_working_day and s.start_time and s.end_time
        }

    def load_policy(self) -> BusinessHoursPolicy:
        """Snapshot of the business calendar for the current request"""
        today = self.clock().date()
        blocked = self.repo.get_active_blocked_dates(self.db, from_date=today)
        return BusinessHoursPolicy(
            hours=self.weekly_hours(),
            slot_minutes=SLOT_DURATION_MINUTES,
            blackout_dates=frozenset(b.blocked_date for b in blocked),
            horizon_days=BOOKING_WINDOW_DAYS,
            min_notice=timedelta(hours=MINIMUM_NOTICE_HOURS),
            clock=self.clock,
        )

    def build_index(self, policy: BusinessHoursPolicy, start: date, end: date) -> AvailabilityIndex:
        """Availability index hydrated with occupied slots in [start, end]"""
        return AvailabilityIndex(policy, self.repo.get_booked_times_between(self.db, start, end))

    # ------------------------------------------------------------------
    # Slot queries
    # ------------------------------------------------------------------

    def free_slots(self, day: date) -> list[Slot]:
        """Free slots of a date; raises InvalidDate / NonWorkingDay"""
        policy = self.load_policy()
        index = AvailabilityIndex(policy, {day: self.repo.get_booked_times(self.db, day)})
        return index.free_slots(day)

    def is_slot_available(self, day: date, at: time) -> bool:
        policy = self.load_policy()
        index = AvailabilityIndex(policy, {day: self.repo.get_booked_times(self.db, day)})
        return index.is_free(day, at)

    def _window_days(self, policy: BusinessHoursPolicy):
        day = policy.today()
        last = policy.last_bookable_date()
        while day <= last:
            yield day
            day += timedelta(days=1)

    def available_dates(self) -> list[dict]:
        """Dates in the booking window that still have free slots"""
        policy = self.load_policy()
        index = self.build_index(policy, policy.today(), policy.last_bookable_date())

        result = []
        for day in self._window_days(policy):
            if not policy.is_working_day(day):
                continue
            slots = index.free_slots(day)
            if slots:
                result.append(
                    {
                        "date": day,
                        "day_of_week": day.weekday(),
                        "slots": [s.time for s in slots],
                    }
                )
        return result

    def next_available_slot(self) -> Optional[Slot]:
        policy = self.load_policy()
        index = self.build_index(policy, policy.today(), policy.last_bookable_date())

        for day in self._window_days(policy):
            if not policy.is_working_day(day):
                continue
            slots = index.free_slots(day)
            if slots:
                return slots[0]
        return None

    def availability_stats(self) -> dict:
        """Slot capacity and utilisation over the booking window"""
        policy = self.load_policy()
        booked = self.repo.get_booked_times_between(self.db, policy.today(), policy.last_bookable_date())

        total_slots = 0
        booked_slots = 0
        for day in self._window_days(policy):
            if not policy.is_working_day(day):
                continue
            slot_times = {s.time for s in generate_slots(policy, day)}
            total_slots += len(slot_times)
            booked_slots += len(slot_times.intersection(booked.get(day, ())))

        return {
            "total_slots": total_slots,
            "booked_slots": booked_slots,
            "available_slots": total_slots - booked_slots,
            "utilization_rate": round(booked_slots / total_slots * 100, 2) if total_slots else 0.0,
        }

    # ------------------------------------------------------------------
    # Office hours administration
    # ------------------------------------------------------------------

    def get_weekly_settings(self) -> list[AvailabilitySetting]:
        self.ensure_default_settings()
        return self.repo.get_weekly_settings(self.db)

    def update_weekly_settings(self, days: list[WeekdayHours], admin_username: str) -> list[AvailabilitySetting]:
        self.ensure_default_settings()
        for item in days:
            self.repo.save_setting(
                self.db, item.day_of_week, item.is_working_day, item.start_time, item.end_time
            )
        self.db.commit()
        logger.info(
            f"🗓️ Office hours updated by {admin_username} for weekdays {[d.day_of_week for d in days]}"
        )
        return self.repo.get_weekly_settings(self.db)

    # ------------------------------------------------------------------
    # Blocked dates
    # ------------------------------------------------------------------

    def list_blocked_dates(self) -> list[BlockedDate]:
        """Blocked dates from today onwards"""
        return self.repo.get_active_blocked_dates(self.db, from_date=self.clock().date())

    def block_date(self, day: date, reason: Optional[str], admin_username: str) -> BlockedDate:
        if day < self.clock().date():
            raise InvalidDate("Cannot block a date in the past")

        existing = self.repo.get_blocked_date_by_day(self.db, day)
        if existing is not None and existing.deleted_at is None:
            raise DateAlreadyBlocked()

        if existing is not None:
            existing.deleted_at = None
            existing.reason = reason
            self.db.commit()
            self.db.refresh(existing)
            blocked = existing
        else:
            blocked = self.repo.create_blocked_date(self.db, day, reason)

        booked = self.repo.count_occupying_on(self.db, day)
        if booked:
            logger.warning(f"⚠️ Blocked {day} which still has {booked} active appointment(s)")
        logger.info(f"🚫 Date {day} blocked by {admin_username}: {reason or 'no reason given'}")
        return blocked

    def unblock_date(self, blocked_id: int, admin_username: str) -> None:
        blocked = self.repo.get_blocked_date_by_id(self.db, blocked_id)
        if blocked is None or blocked.deleted_at is not None:
            raise BlockedDateNotFound()

        blocked.deleted_at = datetime.utcnow()
        self.db.commit()
        logger.info(f"✅ Date {blocked.blocked_date} unblocked by {admin_username}")
