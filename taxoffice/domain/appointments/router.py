"""Appointment routers - public booking/cancellation and the admin appointment surface

Endpoints that take a slot lock are plain ``def`` so FastAPI runs them in its
thread pool instead of blocking the event loop.
"""

import logging
from collections.abc import Callable
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...database import get_db
from ...models import AdminUser
from ...rate_limiter import api_rate_limit, booking_rate_limit, cancellation_rate_limit
from ..scheduling.service import get_clock
from .schemas import (
    AdminAppointmentResponse,
    AppointmentCreate,
    AppointmentDetailResponse,
    AppointmentFilter,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatsResponse,
    AppointmentStatus,
    AppointmentUpdate,
    CancelRequest,
    ServiceType,
    StatusUpdate,
)
from .service import AppointmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/appointments", tags=["Appointments"])
admin_router = APIRouter(
    prefix="/api/admin/appointments",
    tags=["Admin Appointments"],
    dependencies=[Depends(api_rate_limit)],
)


def get_appointment_service(
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db, clock=clock)


# ============================================================================
# PUBLIC
# ============================================================================


@router.post("", response_model=AppointmentResponse, status_code=201)
def create_appointment(
    data: AppointmentCreate,
    service: AppointmentService = Depends(get_appointment_service),
    _: None = Depends(booking_rate_limit),
):
    """Book an appointment; the response carries the cancellation token"""
    return service.book(data)


@router.get("/{token}", response_model=AppointmentResponse)
async def get_appointment_by_token(
    token: str,
    service: AppointmentService = Depends(get_appointment_service),
    _: None = Depends(cancellation_rate_limit),
):
    return service.get_by_token(token)


@router.post("/{token}/cancel", response_model=AppointmentResponse)
def cancel_appointment_by_token(
    token: str,
    data: Optional[CancelRequest] = Body(default=None),
    service: AppointmentService = Depends(get_appointment_service),
    _: None = Depends(cancellation_rate_limit),
):
    """Client cancellation; frees the slot"""
    return service.cancel_by_token(token, reason=data.reason if data else None)


# ============================================================================
# ADMIN
# ============================================================================


@admin_router.get("", response_model=AppointmentListResponse)
async def list_appointments(
    from_date: Optional[date] = Query(None, alias="from"),
    to_date: Optional[date] = Query(None, alias="to"),
    status: Optional[AppointmentStatus] = Query(None),
    service_type: Optional[ServiceType] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_admin: AdminUser = Depends(get_current_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Appointments ordered by date and time, with filters and pagination"""
    filters = AppointmentFilter(
        from_date=from_date,
        to_date=to_date,
        status=status,
        service_type=service_type,
        search=search,
        page=page,
        limit=limit,
    )
    return service.list_appointments(filters)


@admin_router.get("/stats", response_model=AppointmentStatsResponse)
async def get_appointment_stats(
    current_admin: AdminUser = Depends(get_current_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.appointment_stats()


@admin_router.get("/{appointment_id}", response_model=AppointmentDetailResponse)
async def get_appointment(
    appointment_id: int,
    current_admin: AdminUser = Depends(get_current_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Appointment with its status history (newest first)"""
    return service.get_appointment(appointment_id)


@admin_router.put("/{appointment_id}", response_model=AdminAppointmentResponse)
def update_appointment(
    appointment_id: int,
    data: AppointmentUpdate,
    current_admin: AdminUser = Depends(get_current_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Edit client details or move the appointment to another slot"""
    return service.reschedule(appointment_id, data, current_admin.username)


@admin_router.put("/{appointment_id}/status", response_model=AdminAppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    data: StatusUpdate,
    current_admin: AdminUser = Depends(get_current_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.update_status(appointment_id, data, current_admin.username)


@admin_router.post("/{appointment_id}/cancel", response_model=AdminAppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    data: Optional[CancelRequest] = Body(default=None),
    current_admin: AdminUser = Depends(get_current_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.cancel(
        appointment_id,
        current_admin.username,
        reason=data.reason if data else None,
        expected_version=data.version if data else None,
    )
