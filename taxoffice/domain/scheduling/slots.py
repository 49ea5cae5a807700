"""Slot generation"""

from dataclasses import dataclass
from datetime import date, datetime, time

from .policy import BusinessHoursPolicy


@dataclass(frozen=True, order=True)
class Slot:
    date: date
    time: time

    @property
    def label(self) -> str:
        return self.time.strftime("%H:%M:%S")


def generate_slots(policy: BusinessHoursPolicy, day: date) -> list[Slot]:
    """
    Enumerate the bookable slots of a day in chronological order.

    Slots run from opening time in fixed steps; a slot must end by closing
    time, so a window of 09:00-17:00 with 30 minute slots ends at 16:30.
    Slots inside the minimum notice period are left out.

    Raises:
        InvalidDate / NonWorkingDay: when the policy rejects the date
    """
    opens, closes = policy.day_window(day)
    step = policy.slot_duration
    earliest = policy.earliest_start()

    slots = []
    cursor = datetime.combine(day, opens)
    end = datetime.combine(day, closes)
    while cursor + step <= end:
        if cursor >= earliest:
            slots.append(Slot(day, cursor.time()))
        cursor += step

    return slots
