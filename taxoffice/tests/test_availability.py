from __future__ import annotations

import threading
import time as timer
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, time

import pytest

from taxoffice.domain.scheduling.availability import AvailabilityIndex, SlotLocks
from taxoffice.domain.scheduling.errors import NonWorkingDay, SlotTaken
from taxoffice.domain.scheduling.policy import BusinessHoursPolicy

MONDAY = date(2024, 6, 10)


def _index(booked=None) -> AvailabilityIndex:
    policy = BusinessHoursPolicy.weekly(
        range(5), time(9, 0), time(17, 0), clock=lambda: datetime(2024, 6, 10, 7, 0)
    )
    return AvailabilityIndex(policy, booked)


def test_booked_slot_is_not_free() -> None:
    index = _index()
    index.mark_booked(MONDAY, time(10, 0))

    free = index.free_slots(MONDAY)

    assert len(free) == 15
    assert time(10, 0) not in [s.time for s in free]
    assert not index.is_free(MONDAY, time(10, 0))


def test_booking_a_taken_slot_raises() -> None:
    index = _index({MONDAY: [time(10, 0)]})

    with pytest.raises(SlotTaken):
        index.mark_booked(MONDAY, time(10, 0))


def test_cancelling_frees_the_slot() -> None:
    index = _index({MONDAY: [time(10, 0)]})

    index.mark_cancelled(MONDAY, time(10, 0))

    assert index.is_free(MONDAY, time(10, 0))
    assert index.booked_times(MONDAY) == frozenset()
    assert len(index.free_slots(MONDAY)) == 16


def test_cancelling_unknown_slot_is_noop() -> None:
    index = _index()
    index.mark_cancelled(MONDAY, time(11, 0))
    assert len(index.free_slots(MONDAY)) == 16


def test_slot_outside_hours_is_never_free() -> None:
    index = _index()

    assert not index.is_free(MONDAY, time(17, 0))
    assert not index.is_free(date(2024, 6, 15), time(10, 0))


def test_free_slots_on_closed_day_raises() -> None:
    with pytest.raises(NonWorkingDay):
        _index().free_slots(date(2024, 6, 15))


def test_concurrent_claims_have_one_winner() -> None:
    index = _index()
    barrier = threading.Barrier(16)

    def claim() -> bool:
        barrier.wait()
        try:
            index.mark_booked(MONDAY, time(14, 0))
            return True
        except SlotTaken:
            return False

    with ThreadPoolExecutor(max_workers=16) as pool:
        results = list(pool.map(lambda _: claim(), range(16)))

    assert results.count(True) == 1
    assert index.booked_times(MONDAY) == frozenset({time(14, 0)})


def test_slot_locks_are_released_after_use() -> None:
    locks = SlotLocks()

    with locks.hold(MONDAY, time(9, 0)):
        with locks.hold(MONDAY, time(9, 30)):
            assert len(locks) == 2

    assert len(locks) == 0


def test_same_slot_lock_serialises_holders() -> None:
    locks = SlotLocks()
    inside = []
    overlaps = []

    def work() -> None:
        with locks.hold(MONDAY, time(9, 0)):
            if inside:
                overlaps.append(True)
            inside.append(True)
            timer.sleep(0.01)
            inside.pop()

    threads = [threading.Thread(target=work) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert overlaps == []
    assert len(locks) == 0
