"""Booking domain errors.

Every error carries the HTTP status it maps to and a stable machine-readable
code; the app renders them in one exception handler.
"""


class BookingError(Exception):
    status_code = 400
    code = "booking_error"
    default_message = "Booking request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidDate(BookingError):
    code = "invalid_date"
    default_message = "Date is outside the booking window"


class NonWorkingDay(InvalidDate):
    code = "non_working_day"
    default_message = "The office is closed on this date"


class InvalidSlot(BookingError):
    code = "invalid_slot"
    default_message = "Requested time is not a bookable slot"


class InvalidFilter(BookingError):
    code = "invalid_filter"
    default_message = "Invalid filter"


class SlotTaken(BookingError):
    status_code = 409
    code = "slot_taken"
    default_message = "This time slot is no longer available. Please choose another time."


class AppointmentNotFound(BookingError):
    status_code = 404
    code = "appointment_not_found"
    default_message = "Appointment not found"


class AlreadyCancelled(BookingError):
    code = "already_cancelled"
    default_message = "Appointment is already cancelled"


class InvalidStatusTransition(BookingError):
    status_code = 409
    code = "invalid_status_transition"
    default_message = "Appointment cannot move to the requested status"


class ConcurrentModification(BookingError):
    status_code = 409
    code = "concurrent_modification"
    default_message = "Appointment was modified by another user. Please try again."


class BlockedDateNotFound(BookingError):
    status_code = 404
    code = "blocked_date_not_found"
    default_message = "Blocked date not found"


class DateAlreadyBlocked(BookingError):
    status_code = 409
    code = "date_already_blocked"
    default_message = "This date is already blocked"
