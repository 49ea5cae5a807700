"""Appointment domain schemas - Pydantic models for validation"""

import enum
from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...shared.validators import validate_email, validate_greek_phone, validate_person_name
from ...utils.sanitization import clean_text


class ServiceType(str, enum.Enum):
    TAX_RETURN = "Φορολογική Δήλωση"
    ACCOUNTING = "Λογιστική Υποστήριξη"
    BUSINESS_STARTUP = "Έναρξη Επιχείρησης"
    PAYROLL = "Μισθοδοσία"
    GENERAL_CONSULTING = "Γενική Συμβουλευτική"


class AppointmentStatus(str, enum.Enum):
    BOOKED = "booked"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    DECLINED = "declined"
    CANCELLED = "cancelled"


# Statuses an admin can set through the status endpoint; cancellation has its own
ADMIN_SETTABLE_STATUSES = {
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.DECLINED,
    AppointmentStatus.COMPLETED,
}


class ClientFields(BaseModel):
    """Validators shared by the create and update schemas"""

    @field_validator("client_name", check_fields=False)
    @classmethod
    def check_name(cls, v):
        return validate_person_name(v)

    @field_validator("client_email", check_fields=False)
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("client_phone", check_fields=False)
    @classmethod
    def check_phone(cls, v):
        return validate_greek_phone(v)

    @field_validator("notes", check_fields=False)
    @classmethod
    def check_notes(cls, v):
        return clean_text(v, max_length=1000)


class AppointmentCreate(ClientFields):
    """Public booking request"""

    client_name: str
    client_email: str
    client_phone: str
    appointment_date: date
    appointment_time: time
    service_type: ServiceType
    notes: Optional[str] = None


class AppointmentUpdate(ClientFields):
    """Admin edit - client details and/or a move to another slot"""

    client_name: Optional[str] = None
    client_email: Optional[str] = None
    client_phone: Optional[str] = None
    appointment_date: Optional[date] = None
    appointment_time: Optional[time] = None
    service_type: Optional[ServiceType] = None
    notes: Optional[str] = None
    version: Optional[int] = None  # version the editor saw; mismatch means someone else changed it


class StatusUpdate(BaseModel):
    status: AppointmentStatus
    decline_reason: Optional[str] = None
    version: Optional[int] = None

    @field_validator("status")
    @classmethod
    def check_status(cls, v):
        if v not in ADMIN_SETTABLE_STATUSES:
            raise ValueError("Status must be one of: confirmed, declined, completed")
        return v

    @model_validator(mode="after")
    def check_reason(self):
        if self.status == AppointmentStatus.DECLINED:
            reason = (self.decline_reason or "").strip()
            if not 10 <= len(reason) <= 500:
                raise ValueError("A decline reason of 10-500 characters is required")
            self.decline_reason = reason
        return self


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)
    version: Optional[int] = None


class AppointmentResponse(BaseModel):
    """Appointment as shown to the client who booked it"""

    id: int
    client_name: str
    client_email: str
    client_phone: str
    appointment_date: date
    appointment_time: time
    service_type: str
    notes: Optional[str]
    status: str
    cancellation_token: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AdminAppointmentResponse(AppointmentResponse):
    decline_reason: Optional[str] = None
    version: int
    updated_at: Optional[datetime] = None


class HistoryEntryResponse(BaseModel):
    id: int
    old_status: Optional[str]
    new_status: str
    changed_by: str
    changed_at: Optional[datetime]
    notes: Optional[str]

    class Config:
        from_attributes = True


class AppointmentDetailResponse(AdminAppointmentResponse):
    history: list[HistoryEntryResponse] = []


class AppointmentListResponse(BaseModel):
    items: list[AdminAppointmentResponse]
    total: int
    page: int
    limit: int
    pages: int


class AppointmentFilter(BaseModel):
    """Admin list filters; from/to are inclusive"""

    from_date: Optional[date] = None
    to_date: Optional[date] = None
    status: Optional[AppointmentStatus] = None
    service_type: Optional[ServiceType] = None
    search: Optional[str] = Field(default=None, max_length=100)
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)


class AppointmentStatsResponse(BaseModel):
    by_status: dict[str, int]
    today: int
    upcoming_week: int
    this_month: int
