"""Scheduling routers - public availability queries and admin office-hours management"""

import logging
from collections.abc import Callable
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...database import get_db
from ...models import AdminUser
from ...rate_limiter import api_rate_limit
from .schemas import (
    AvailabilityStatsResponse,
    AvailableDateResponse,
    BlockedDateCreate,
    BlockedDateResponse,
    DaySlotsResponse,
    NextSlotResponse,
    SlotCheckRequest,
    SlotCheckResponse,
    WeekdayHoursResponse,
    WeeklyHoursUpdate,
)
from .service import AvailabilityService, get_clock

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/availability", tags=["Availability"], dependencies=[Depends(api_rate_limit)]
)
admin_router = APIRouter(
    prefix="/api/admin/availability",
    tags=["Admin Availability"],
    dependencies=[Depends(api_rate_limit)],
)


def get_availability_service(
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> AvailabilityService:
    """Dependency injection for AvailabilityService"""
    return AvailabilityService(db, clock=clock)


# ============================================================================
# PUBLIC
# ============================================================================


@router.get("", response_model=DaySlotsResponse)
async def get_free_slots(
    day: date = Query(..., alias="date", description="YYYY-MM-DD"),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Free slots for a date"""
    slots = service.free_slots(day)
    return DaySlotsResponse(date=day, slots=[s.time for s in slots])


@router.get("/dates", response_model=list[AvailableDateResponse])
async def get_available_dates(service: AvailabilityService = Depends(get_availability_service)):
    """Working dates in the booking window that still have free slots"""
    return service.available_dates()


@router.get("/next", response_model=Optional[NextSlotResponse])
async def get_next_slot(service: AvailabilityService = Depends(get_availability_service)):
    """Earliest free slot, or null when the window is fully booked"""
    slot = service.next_available_slot()
    if slot is None:
        return None
    return NextSlotResponse(date=slot.date, time=slot.time)


@router.post("/check", response_model=SlotCheckResponse)
async def check_slot(
    data: SlotCheckRequest,
    service: AvailabilityService = Depends(get_availability_service),
):
    available = service.is_slot_available(data.date, data.time)
    return SlotCheckResponse(date=data.date, time=data.time, available=available)


# ============================================================================
# ADMIN
# ============================================================================


@admin_router.get("/settings", response_model=list[WeekdayHoursResponse])
async def get_settings(
    current_admin: AdminUser = Depends(get_current_admin),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Weekly office hours, one row per weekday"""
    return service.get_weekly_settings()


@admin_router.put("/settings", response_model=list[WeekdayHoursResponse])
async def update_settings(
    data: WeeklyHoursUpdate,
    current_admin: AdminUser = Depends(get_current_admin),
    service: AvailabilityService = Depends(get_availability_service),
):
    return service.update_weekly_settings(data.days, current_admin.username)


@admin_router.get("/blocked-dates", response_model=list[BlockedDateResponse])
async def list_blocked_dates(
    current_admin: AdminUser = Depends(get_current_admin),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Upcoming blocked dates"""
    return service.list_blocked_dates()


@admin_router.post("/blocked-dates", response_model=BlockedDateResponse, status_code=201)
async def add_blocked_date(
    data: BlockedDateCreate,
    current_admin: AdminUser = Depends(get_current_admin),
    service: AvailabilityService = Depends(get_availability_service),
):
    return service.block_date(data.blocked_date, data.reason, current_admin.username)


@admin_router.delete("/blocked-dates/{blocked_id}")
async def remove_blocked_date(
    blocked_id: int,
    current_admin: AdminUser = Depends(get_current_admin),
    service: AvailabilityService = Depends(get_availability_service),
):
    service.unblock_date(blocked_id, current_admin.username)
    return {"message": "Blocked date removed"}


@admin_router.get("/stats", response_model=AvailabilityStatsResponse)
async def get_availability_stats(
    current_admin: AdminUser = Depends(get_current_admin),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Slot capacity and utilisation over the booking window"""
    return service.availability_stats()
