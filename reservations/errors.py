"""
Typed rejections raised by the reservation engine.

Each kind carries a stable machine-readable ``code`` and the HTTP status the
request layer answers with, so clients can tell "pick another slot" apart
from "someone else is mid-checkout" and "your own hold expired".
"""


class BookingError(Exception):
    code = "booking_error"
    status_code = 400
    default_message = "Booking request rejected"

    def __init__(self, message=None, **details):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details

    def to_dict(self):
        body = {"error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class NotFound(BookingError):
    code = "not_found"
    status_code = 404
    default_message = "Not found"


class InvalidState(BookingError):
    code = "invalid_state"
    status_code = 409
    default_message = "Operation not allowed in the current state"


class PastSlot(BookingError):
    code = "past_slot"
    status_code = 400
    default_message = "Slot is in the past"


class CutoffViolation(BookingError):
    code = "cutoff_violation"
    status_code = 422
    default_message = "Slot starts too soon to be booked"


class SlotTaken(BookingError):
    code = "slot_taken"
    status_code = 409
    default_message = "This time slot is already booked for the selected date"


class SlotReserved(BookingError):
    code = "slot_reserved"
    status_code = 423
    default_message = "This time slot is currently held by another checkout"


class Expired(BookingError):
    code = "hold_expired"
    status_code = 410
    default_message = "Your hold has expired"


class AlreadyCancelled(BookingError):
    code = "already_cancelled"
    status_code = 409
    default_message = "Booking is already cancelled"


class PastBooking(BookingError):
    code = "past_booking"
    status_code = 400
    default_message = "Booking has already started"


class ConcurrencyConflict(BookingError):
    code = "concurrency_conflict"
    status_code = 503
    default_message = "Slot is busy, please retry"
    retry_after = 1
