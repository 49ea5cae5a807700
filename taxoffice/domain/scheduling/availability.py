"""Availability index and per-slot locking"""

import logging
import threading
from collections.abc import Iterable, Mapping
from contextlib import contextmanager
from datetime import date, time
from typing import Optional

from .errors import BookingError, SlotTaken
from .policy import BusinessHoursPolicy
from .slots import Slot, generate_slots

logger = logging.getLogger(__name__)


class SlotLocks:
    """
    Keyed lock registry with one lock per (date, time).

    Bookings for different slots never wait on each other. Entries are
    reference-counted and dropped once nobody holds or waits on them, so the
    registry does not grow with the number of slots ever booked.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[tuple[date, time], list] = {}  # key -> [lock, users]

    @contextmanager
    def hold(self, day: date, at: time):
        key = (day, at)
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1

        entry[0].acquire()
        try:
            yield
        finally:
            entry[0].release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


# Shared by every booking transaction in this process
slot_locks = SlotLocks()


class AvailabilityIndex:
    """Booked slots per date on top of a policy snapshot"""

    def __init__(
        self,
        policy: BusinessHoursPolicy,
        booked: Optional[Mapping[date, Iterable[time]]] = None,
    ):
        self.policy = policy
        self._lock = threading.Lock()
        self._booked: dict[date, set[time]] = {
            day: set(times) for day, times in (booked or {}).items()
        }

    def booked_times(self, day: date) -> frozenset:
        with self._lock:
            return frozenset(self._booked.get(day, ()))

    def is_free(self, day: date, at: time) -> bool:
        """True when (day, at) is a bookable slot that nobody holds"""
        try:
            self.policy.check_slot(day, at)
        except BookingError:
            return False
        with self._lock:
            return at not in self._booked.get(day, ())

    def free_slots(self, day: date) -> list[Slot]:
        """
        Free slots of a day in chronological order.

        Raises:
            InvalidDate / NonWorkingDay: when the policy rejects the date
        """
        slots = generate_slots(self.policy, day)
        with self._lock:
            taken = set(self._booked.get(day, ()))
        return [slot for slot in slots if slot.time not in taken]

    def mark_booked(self, day: date, at: time) -> None:
        """Claim a slot, raising SlotTaken if someone already holds it"""
        with self._lock:
            times = self._booked.setdefault(day, set())
            if at in times:
                raise SlotTaken()
            times.add(at)
        logger.debug(f"📌 Slot {day} {at} marked booked")

    def mark_cancelled(self, day: date, at: time) -> None:
        with self._lock:
            times = self._booked.get(day)
            if times is None:
                return
            times.discard(at)
            if not times:
                del self._booked[day]
