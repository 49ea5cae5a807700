import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

# Statuses that hold a slot; declined and cancelled appointments free it
OCCUPYING_STATUSES = ("booked", "confirmed", "completed")

_OCCUPYING_SQL = "status IN ('booked', 'confirmed', 'completed')"


def generate_cancellation_token():
    """Generate the opaque token clients use to view and cancel a booking"""
    return str(uuid.uuid4())


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    client_name = Column(String(255), nullable=False)
    client_email = Column(String(255), nullable=False, index=True)
    client_phone = Column(String(50), nullable=False)
    appointment_date = Column(Date, nullable=False)
    appointment_time = Column(Time, nullable=False)
    service_type = Column(String(255), nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(
        String(20), nullable=False, default="booked", index=True
    )  # booked, confirmed, completed, declined, cancelled
    decline_reason = Column(Text, nullable=True)
    cancellation_token = Column(
        String(36), unique=True, nullable=False, default=generate_cancellation_token
    )
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    history = relationship(
        "AppointmentHistory",
        back_populates="appointment",
        order_by="AppointmentHistory.id.desc()",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("idx_appointment_date_time", "appointment_date", "appointment_time"),
        # One occupying appointment per slot, enforced by the database
        Index(
            "uq_appointment_occupied_slot",
            "appointment_date",
            "appointment_time",
            unique=True,
            postgresql_where=text(_OCCUPYING_SQL),
            sqlite_where=text(_OCCUPYING_SQL),
        ),
    )


class AppointmentHistory(Base):
    __tablename__ = "appointment_history"

    id = Column(Integer, primary_key=True, index=True)
    appointment_id = Column(
        Integer, ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    old_status = Column(String(20), nullable=True)
    new_status = Column(String(20), nullable=False)
    changed_by = Column(String(20), nullable=False)  # client, admin, system
    changed_at = Column(DateTime, server_default=func.now(), index=True)
    notes = Column(Text, nullable=True)

    appointment = relationship("Appointment", back_populates="history")


class AvailabilitySetting(Base):
    __tablename__ = "availability_settings"

    id = Column(Integer, primary_key=True)
    day_of_week = Column(Integer, unique=True, nullable=False)  # 0=Monday ... 6=Sunday
    is_working_day = Column(Boolean, default=False, nullable=False)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class BlockedDate(Base):
    __tablename__ = "blocked_dates"

    id = Column(Integer, primary_key=True, index=True)
    blocked_date = Column(Date, unique=True, nullable=False)
    reason = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    deleted_at = Column(DateTime, nullable=True)  # Soft delete keeps the audit trail


class AdminUser(Base):
    __tablename__ = "admin_users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    last_login = Column(DateTime, nullable=True)

    sessions = relationship("AdminSession", back_populates="admin", cascade="all, delete-orphan")


class AdminSession(Base):
    __tablename__ = "admin_sessions"

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, ForeignKey("admin_users.id", ondelete="CASCADE"), nullable=False)
    token_hash = Column(String(64), unique=True, index=True, nullable=False)  # sha256 hex
    created_at = Column(DateTime, server_default=func.now())
    expires_at = Column(DateTime, nullable=False, index=True)
    last_seen_at = Column(DateTime, nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)

    admin = relationship("AdminUser", back_populates="sessions")


class EmailQueue(Base):
    __tablename__ = "email_queue"

    id = Column(Integer, primary_key=True, index=True)
    email_type = Column(String(100), nullable=False, index=True)
    recipient = Column(String(255), nullable=False)
    data = Column(JSON, nullable=False)
    subject = Column(String(500), nullable=True)
    status = Column(String(20), default="pending", nullable=False, index=True)  # pending, sent, failed
    attempts = Column(Integer, default=0, nullable=False)
    error_message = Column(Text, nullable=True)
    next_attempt_at = Column(DateTime, nullable=True, index=True)
    created_at = Column(DateTime, server_default=func.now())
    sent_at = Column(DateTime, nullable=True)
