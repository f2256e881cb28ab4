from .errors import BookingError
from .availability import resolve_availability
from .lifecycle import (
    create_hold,
    confirm_hold,
    cancel_booking,
    list_user_bookings,
    list_service_bookings,
    run_expiry_sweep,
    run_completion_sweep,
)
