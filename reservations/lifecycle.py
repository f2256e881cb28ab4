"""
Booking lifecycle state machine.

    pending -> confirmed -> completed
    pending -> expired
    confirmed -> cancelled

Every transition runs through ``ledger.run_keyed`` so it is serialized with
all other work on the same slot/date. The janitor sweeps reuse the same
per-row transitions as the request path.
"""
import logging
from datetime import date as date_type
from decimal import Decimal
from functools import partial

from flask import current_app

from models.booking import (
    Reservation,
    PENDING,
    CONFIRMED,
    CANCELLED,
    EXPIRED,
    COMPLETED,
    PAYMENT_COMPLETED,
    PAYMENT_REFUNDED,
)
from models.service import Service
from models.slot import SLOT_AVAILABLE, TimeSlot
from reservations import catalog, clock, ledger
from reservations.errors import (
    AlreadyCancelled,
    ConcurrencyConflict,
    CutoffViolation,
    Expired,
    InvalidState,
    NotFound,
    PastBooking,
    PastSlot,
    SlotReserved,
    SlotTaken,
)

logger = logging.getLogger(__name__)

SCOPE_UPCOMING = "upcoming"
SCOPE_HISTORY = "history"
SCOPES = (SCOPE_UPCOMING, SCOPE_HISTORY)

REFUND_POLICY = "full"


def format_money(value) -> str:
    return f"{Decimal(value):.2f}"


def booking_view(r: Reservation):
    """Flat, JSON-ready view of a reservation with its slot and service."""
    slot = r.slot
    view = {
        "booking_id": r.id,
        "user_id": r.user_id,
        "service_id": r.service_id,
        "service_name": r.service.name if r.service else None,
        "slot_id": r.slot_id,
        "booking_date": r.booking_date.isoformat(),
        "start_time": slot.start_time.strftime("%H:%M") if slot else None,
        "end_time": slot.end_time.strftime("%H:%M") if slot else None,
        "total_amount": format_money(r.total_amount),
        "payment_method": r.payment_method,
        "booking_status": r.booking_status,
        "payment_status": r.payment_status,
        "created_at": r.created_at.isoformat(),
        "updated_at": r.updated_at.isoformat() if r.updated_at else None,
        "cancelled_at": r.cancelled_at.isoformat() if r.cancelled_at else None,
        "expires_at": None,
    }
    if r.booking_status == PENDING:
        view["expires_at"] = ledger.hold_expires_at(r).isoformat()
    return view


# ---------- create (hold) ----------

def _check_bookable(service, slot, booking_date, now):
    if not service.is_active:
        raise InvalidState("Service is not active")
    if slot.status != SLOT_AVAILABLE:
        raise InvalidState("Time slot is not available for booking")

    start = ledger.slot_start(booking_date, slot)
    if start <= now:
        raise PastSlot("Cannot book a slot that has already started")
    if start - now < ledger.booking_cutoff():
        minutes = current_app.config.get("BOOKING_CUTOFF_MINUTES", 60)
        raise CutoffViolation(f"Bookings close {minutes} minutes before the slot starts")


def create_hold(user_id: int, service_id: int, slot_id: int, booking_date: date_type, payment_method: str):
    # catalog existence first: the lock row references the slot
    catalog.get_slot(service_id, slot_id)

    def work():
        now = clock.now()
        service = catalog.get_service(service_id)
        slot = catalog.get_slot(service_id, slot_id)
        _check_bookable(service, slot, booking_date, now)

        if ledger.rows_for_key(slot_id, booking_date, CONFIRMED):
            raise SlotTaken()

        for held in ledger.rows_for_key(slot_id, booking_date, PENDING):
            if not ledger.is_hold_stale(held, now):
                raise SlotReserved(retry_after=ledger.hold_expires_at(held).isoformat())
            # lapsed hold the janitor has not reached yet
            ledger.transition(held, EXPIRED, now)
            logger.info("Expired stale hold %s on slot %s %s before new hold", held.id, slot_id, booking_date)

        row = ledger.insert_hold(user_id, service, slot, booking_date, payment_method, now)
        logger.info("Hold %s created by user %s on slot %s %s", row.id, user_id, slot_id, booking_date)
        return {
            "booking_id": row.id,
            "total_amount": row.total_amount,
            "expires_at": ledger.hold_expires_at(row),
        }

    return ledger.run_keyed(slot_id, booking_date, work)


# ---------- confirm ----------

def confirm_hold(booking_id: int, user_id: int):
    found = ledger.get_reservation(booking_id)
    if not found or found.user_id != user_id:
        raise NotFound("Booking not found")
    slot_id, booking_date = found.slot_id, found.booking_date

    def work():
        now = clock.now()
        booking = ledger.get_reservation(booking_id, for_update=True)
        if booking is None or booking.user_id != user_id:
            raise NotFound("Booking not found")
        if booking.booking_status == EXPIRED:
            raise Expired(booking_id=booking_id)
        if booking.booking_status != PENDING:
            raise InvalidState(f"Booking is {booking.booking_status}, only pending holds can be confirmed")

        if ledger.is_hold_stale(booking, now):
            ledger.transition(booking, EXPIRED, now)
            logger.info("Hold %s expired at confirm time", booking_id)
            return Expired(booking_id=booking_id)

        if ledger.slot_start(booking.booking_date, booking.slot) - now < ledger.booking_cutoff():
            ledger.transition(booking, EXPIRED, now)
            logger.info("Hold %s released: slot inside booking cutoff", booking_id)
            return CutoffViolation("Slot now starts too soon; your hold was released", booking_id=booking_id)

        ledger.transition(booking, CONFIRMED, now, payment_status=PAYMENT_COMPLETED)
        logger.info("Booking %s confirmed by user %s", booking_id, user_id)
        return {"booking_id": booking.id, "status": CONFIRMED}

    return ledger.run_keyed(slot_id, booking_date, work)


# ---------- cancel ----------

def _may_cancel(booking, actor_id, is_privileged):
    if booking.user_id == actor_id:
        return True
    return bool(is_privileged) and booking.service is not None and booking.service.owner_user_id == actor_id


def cancel_booking(booking_id: int, actor_id: int, is_privileged: bool = False):
    found = ledger.get_reservation(booking_id)
    if not found:
        raise NotFound("Booking not found")
    slot_id, booking_date = found.slot_id, found.booking_date

    def work():
        now = clock.now()
        booking = ledger.get_reservation(booking_id, for_update=True)
        if booking is None or not _may_cancel(booking, actor_id, is_privileged):
            raise NotFound("Booking not found")

        if booking.booking_status == CANCELLED:
            raise AlreadyCancelled()
        if booking.booking_status == EXPIRED:
            raise InvalidState("Cannot cancel an expired hold")
        if booking.booking_status != CONFIRMED:
            raise InvalidState(f"Booking is {booking.booking_status}, only confirmed bookings can be cancelled")

        if ledger.slot_start(booking.booking_date, booking.slot) < now:
            raise PastBooking()

        refund_amount = booking.total_amount
        changes = {"cancelled_at": now}
        if booking.payment_status == PAYMENT_COMPLETED:
            changes["payment_status"] = PAYMENT_REFUNDED
        ledger.transition(booking, CANCELLED, now, **changes)

        logger.info("Booking %s cancelled by %s (privileged=%s)", booking_id, actor_id, bool(is_privileged))
        return {
            "booking_id": booking.id,
            "refund_amount": refund_amount,
            "refund_policy": REFUND_POLICY,
        }

    return ledger.run_keyed(slot_id, booking_date, work)


# ---------- listings ----------

def _is_upcoming(r, now):
    if r.booking_status == CONFIRMED:
        live = True
    elif r.booking_status == PENDING:
        live = not ledger.is_hold_stale(r, now)
    else:
        live = False
    return live and ledger.slot_start(r.booking_date, r.slot) >= now


def list_user_bookings(user_id: int, scope: str = SCOPE_UPCOMING):
    if scope not in SCOPES:
        raise ValueError(f"scope must be one of {', '.join(SCOPES)}")

    now = clock.now()
    rows = ledger.reservations_for_user(user_id)
    if scope == SCOPE_UPCOMING:
        picked = [r for r in rows if _is_upcoming(r, now)]
        picked.sort(key=lambda r: ledger.slot_start(r.booking_date, r.slot))
    else:
        picked = [r for r in rows if not _is_upcoming(r, now)]
    return [booking_view(r) for r in picked]


def list_service_bookings(owner_user_id: int, status: str = None, booking_date: date_type = None):
    """Bookings across every service the owner runs, newest first."""
    q = (
        Reservation.query
        .join(Service, Reservation.service_id == Service.id)
        .join(TimeSlot, Reservation.slot_id == TimeSlot.id)
        .filter(Service.owner_user_id == owner_user_id)
    )
    if status:
        q = q.filter(Reservation.booking_status == status)
    if booking_date:
        q = q.filter(Reservation.booking_date == booking_date)

    limit = current_app.config.get("ADMIN_BOOKINGS_LIMIT", 200)
    rows = q.order_by(Reservation.created_at.desc()).limit(limit).all()
    return [booking_view(r) for r in rows]


# ---------- janitor sweeps ----------

def _expire_if_stale(booking_id):
    now = clock.now()
    booking = ledger.get_reservation(booking_id, for_update=True)
    if booking is None or booking.booking_status != PENDING or not ledger.is_hold_stale(booking, now):
        return False
    ledger.transition(booking, EXPIRED, now)
    return True


def _complete_if_finished(booking_id):
    now = clock.now()
    booking = ledger.get_reservation(booking_id, for_update=True)
    if booking is None or booking.booking_status != CONFIRMED:
        return False
    if ledger.slot_end(booking.booking_date, booking.slot) > now:
        return False
    ledger.transition(booking, COMPLETED, now)
    return True


def _sweep(keys, step, label):
    changed = 0
    for booking_id, slot_id, booking_date in keys:
        try:
            if ledger.run_keyed(slot_id, booking_date, partial(step, booking_id)):
                changed += 1
        except ConcurrencyConflict:
            # next tick picks it up again
            logger.warning("%s sweep skipped booking %s after repeated conflicts", label, booking_id)
    if changed:
        logger.info("%s sweep changed %d bookings", label, changed)
    return changed


def run_expiry_sweep() -> int:
    """Flip every lapsed pending hold to expired. Safe to repeat."""
    return _sweep(ledger.stale_hold_keys(clock.now()), _expire_if_stale, "Expiry")


def run_completion_sweep() -> int:
    """Flip every confirmed booking whose slot has ended to completed. Safe to repeat."""
    return _sweep(ledger.finished_booking_keys(clock.now()), _complete_if_finished, "Completion")
