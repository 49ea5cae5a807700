from __future__ import annotations

from datetime import date, datetime, time, timedelta

import pytest

from taxoffice.domain.scheduling.errors import InvalidDate, NonWorkingDay
from taxoffice.domain.scheduling.policy import BusinessHoursPolicy
from taxoffice.domain.scheduling.slots import Slot, generate_slots

MONDAY = date(2024, 6, 10)


def _policy(now: datetime = datetime(2024, 6, 10, 7, 0), **kwargs) -> BusinessHoursPolicy:
    return BusinessHoursPolicy.weekly(range(5), time(9, 0), time(17, 0), clock=lambda: now, **kwargs)


def test_full_day_has_sixteen_half_hour_slots() -> None:
    slots = generate_slots(_policy(), MONDAY)

    assert len(slots) == 16
    assert slots[0] == Slot(MONDAY, time(9, 0))
    assert slots[-1] == Slot(MONDAY, time(16, 30))
    assert slots == sorted(slots)


def test_slot_that_would_overrun_close_is_dropped() -> None:
    slots = generate_slots(_policy(slot_minutes=45), MONDAY)

    assert len(slots) == 10
    assert slots[-1].time == time(15, 45)


def test_slots_already_started_are_omitted() -> None:
    slots = generate_slots(_policy(now=datetime(2024, 6, 10, 10, 10)), MONDAY)

    assert slots[0].time == time(10, 30)
    assert len(slots) == 13


def test_minimum_notice_pushes_first_slot() -> None:
    policy = _policy(now=datetime(2024, 6, 10, 10, 10), min_notice=timedelta(hours=2))

    slots = generate_slots(policy, MONDAY)

    assert slots[0].time == time(12, 30)
    assert len(slots) == 9


def test_tomorrow_is_unaffected_by_notice_today() -> None:
    policy = _policy(now=datetime(2024, 6, 10, 16, 0), min_notice=timedelta(hours=2))

    assert len(generate_slots(policy, date(2024, 6, 11))) == 16


def test_closed_day_raises() -> None:
    with pytest.raises(NonWorkingDay):
        generate_slots(_policy(), date(2024, 6, 16))


def test_past_day_raises() -> None:
    with pytest.raises(InvalidDate):
        generate_slots(_policy(), date(2024, 6, 3))


def test_slot_label() -> None:
    assert Slot(MONDAY, time(9, 30)).label == "09:30:00"
