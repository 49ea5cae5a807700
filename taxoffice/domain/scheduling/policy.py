"""Business calendar policy - which dates and times can be booked.

A policy is an immutable snapshot of the office hours, blocked dates and
booking window. Building one never touches the database; see
``AvailabilityService.load_policy`` for the version backed by stored settings.
"""

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from types import MappingProxyType
from zoneinfo import ZoneInfo

from ...config import TIMEZONE
from .errors import InvalidDate, InvalidSlot, NonWorkingDay


def business_now() -> datetime:
    """Current wall-clock time in the office's timezone, as a naive datetime"""
    return datetime.now(ZoneInfo(TIMEZONE)).replace(tzinfo=None)


@dataclass(frozen=True)
class DayHours:
    open: time
    close: time


@dataclass(frozen=True)
class BusinessHoursPolicy:
    hours: Mapping[int, DayHours]  # weekday (0=Monday) -> opening window
    slot_minutes: int = 30
    blackout_dates: frozenset = frozenset()
    horizon_days: int = 60
    min_notice: timedelta = timedelta(0)
    clock: Callable[[], datetime] = field(default=business_now, compare=False)

    def __post_init__(self):
        if self.slot_minutes <= 0:
            raise ValueError("slot_minutes must be positive")
        for weekday, window in self.hours.items():
            if not 0 <= weekday <= 6:
                raise ValueError(f"Invalid weekday {weekday}")
            if window.open >= window.close:
                raise ValueError(f"Opening time must be before closing time (weekday {weekday})")
        object.__setattr__(self, "hours", MappingProxyType(dict(self.hours)))
        object.__setattr__(self, "blackout_dates", frozenset(self.blackout_dates))

    @classmethod
    def weekly(
        cls,
        working_days: Iterable[int],
        open_time: time,
        close_time: time,
        **kwargs,
    ) -> "BusinessHoursPolicy":
        """Same opening window on every working day"""
        window = DayHours(open_time, close_time)
        return cls(hours={day: window for day in working_days}, **kwargs)

    @property
    def slot_duration(self) -> timedelta:
        return timedelta(minutes=self.slot_minutes)

    def today(self) -> date:
        return self.clock().date()

    def last_bookable_date(self) -> date:
        return self.today() + timedelta(days=self.horizon_days)

    def earliest_start(self) -> datetime:
        """Slots starting before this moment are not offered"""
        return self.clock() + self.min_notice

    def is_working_day(self, day: date) -> bool:
        return day not in self.blackout_dates and day.weekday() in self.hours

    def day_window(self, day: date) -> tuple[time, time]:
        """Opening window for a bookable date.

        Raises:
            InvalidDate: date is in the past or beyond the booking window
            NonWorkingDay: date is blocked or the office is closed that weekday
        """
        today = self.today()
        if day < today:
            raise InvalidDate("Cannot book a date in the past")
        if day > self.last_bookable_date():
            raise InvalidDate(f"Date is beyond the {self.horizon_days}-day booking window")
        if day in self.blackout_dates:
            raise NonWorkingDay(f"The office is closed on {day.isoformat()}")

        window = self.hours.get(day.weekday())
        if window is None:
            raise NonWorkingDay(f"{day.strftime('%A')} is not a working day")
        return window.open, window.close

    def check_slot(self, day: date, at: time) -> None:
        """Raise unless (day, at) is the start of a bookable slot"""
        opens, closes = self.day_window(day)
        # Slots are office-local wall-clock times
        if at.tzinfo is not None:
            raise InvalidSlot("Appointment time must be a local time without a UTC offset")

        start = datetime.combine(day, at)
        day_open = datetime.combine(day, opens)
        if at.second or at.microsecond:
            raise InvalidSlot("Appointment time must be on a whole minute")
        if start < day_open or start + self.slot_duration > datetime.combine(day, closes):
            raise InvalidSlot(
                f"Appointments are available between {opens.strftime('%H:%M')} and {closes.strftime('%H:%M')}"
            )
        if (start - day_open) % self.slot_duration:
            raise InvalidSlot(f"Appointments start every {self.slot_minutes} minutes")
        if start < self.earliest_start():
            hours = int(self.min_notice.total_seconds() // 3600)
            raise InvalidSlot(f"Appointments require at least {hours} hours notice")
