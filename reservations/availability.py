from datetime import date as date_type

from models.booking import PENDING, CONFIRMED
from models.slot import SLOT_AVAILABLE
from reservations import catalog, clock, ledger
from reservations.errors import NotFound, PastSlot

AVAILABLE = "available"
BOOKED = "booked"
RESERVED = "reserved"
PAST = "past"
UNAVAILABLE = "unavailable"


def _slot_status(slot, booking_date, now, confirmed_ids, held_ids):
    if slot.id in confirmed_ids:
        return BOOKED
    if slot.id in held_ids:
        return RESERVED
    if booking_date == now.date() and ledger.slot_start(booking_date, slot) <= now + ledger.booking_cutoff():
        return PAST
    if slot.status == SLOT_AVAILABLE:
        return AVAILABLE
    return UNAVAILABLE


def resolve_availability(service_id: int, booking_date: date_type):
    """
    Live status of every slot of a service on one date.

    Read-only: pending rows whose hold has lapsed count as vacant here even
    before the janitor has flipped them to expired.
    """
    now = clock.now()
    if booking_date < now.date():
        raise PastSlot("Cannot check availability for a past date")

    service = catalog.get_service(service_id)
    if not service.is_active:
        raise NotFound("Service not found or inactive")

    slots = catalog.list_slots(service_id)
    rows = ledger.reservations_for_dates([s.id for s in slots], booking_date, PENDING, CONFIRMED)

    confirmed_ids = {r.slot_id for r in rows if r.booking_status == CONFIRMED}
    held_ids = {
        r.slot_id for r in rows
        if r.booking_status == PENDING and not ledger.is_hold_stale(r, now)
    }

    return [
        {
            "slot_id": s.id,
            "start_time": s.start_time.strftime("%H:%M"),
            "end_time": s.end_time.strftime("%H:%M"),
            "status": _slot_status(s, booking_date, now, confirmed_ids, held_ids),
        }
        for s in slots
    ]
