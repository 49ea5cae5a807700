"""Scheduling schemas - Pydantic models for availability endpoints"""

from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class DaySlotsResponse(BaseModel):
    """Free slots for one date"""

    date: date
    slots: list[time]


class AvailableDateResponse(BaseModel):
    date: date
    day_of_week: int
    slots: list[time]


class NextSlotResponse(BaseModel):
    date: date
    time: time


class SlotCheckRequest(BaseModel):
    date: date
    time: time


class SlotCheckResponse(BaseModel):
    date: date
    time: time
    available: bool


class AvailabilityStatsResponse(BaseModel):
    total_slots: int
    booked_slots: int
    available_slots: int
    utilization_rate: float


class WeekdayHours(BaseModel):
    """Office hours for one weekday (0=Monday ... 6=Sunday)"""

    day_of_week: int = Field(ge=0, le=6)
    is_working_day: bool
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def local_time(cls, v):
        if v is not None and v.tzinfo is not None:
            raise ValueError("Office hours are local times without a UTC offset")
        return v

    @model_validator(mode="after")
    def check_window(self):
        if self.is_working_day:
            if self.start_time is None or self.end_time is None:
                raise ValueError("Working days need a start and end time")
            if self.start_time >= self.end_time:
                raise ValueError("Start time must be before end time")
        return self


class WeekdayHoursResponse(WeekdayHours):
    class Config:
        from_attributes = True


class WeeklyHoursUpdate(BaseModel):
    days: list[WeekdayHours] = Field(min_length=1, max_length=7)

    @field_validator("days")
    @classmethod
    def unique_days(cls, v):
        weekdays = [d.day_of_week for d in v]
        if len(weekdays) != len(set(weekdays)):
            raise ValueError("Each weekday may appear only once")
        return v


class BlockedDateCreate(BaseModel):
    blocked_date: date
    reason: Optional[str] = Field(default=None, max_length=255)


class BlockedDateResponse(BaseModel):
    id: int
    blocked_date: date
    reason: Optional[str]
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
