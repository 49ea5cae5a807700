from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, time

from taxoffice.domain.appointments.schemas import AppointmentCreate, ServiceType


@dataclass
class AppointmentData:
    appointment_date: date = date(2024, 6, 10)
    appointment_time: time = time(10, 0)
    client_name: str = "Γιώργος Παπαδόπουλος"
    client_email: str = "giorgos@example.gr"
    client_phone: str = "6912345678"
    service_type: ServiceType = ServiceType.TAX_RETURN
    notes: str | None = None

    def payload(self) -> dict:
        """JSON body for POST /api/appointments"""
        body = asdict(self)
        body["appointment_date"] = self.appointment_date.isoformat()
        body["appointment_time"] = self.appointment_time.strftime("%H:%M")
        body["service_type"] = self.service_type.value
        return body

    def create(self) -> AppointmentCreate:
        return AppointmentCreate(**asdict(self))


@dataclass
class AdminData:
    username: str = "office_admin"
    email: str = "admin@taxoffice.gr"
    password: str = "correct-horse-battery"
