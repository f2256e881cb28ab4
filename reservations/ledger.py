"""
Reservation ledger: storage access for booking records and the atomic
key-scoped transition primitive every writer goes through.

A key is a ``(slot_id, booking_date)`` pair. ``run_keyed`` serializes all
read-check-write sequences on one key by locking its ``SlotLock`` row; work
on different keys never waits on each other.
"""
import logging
import time
from datetime import datetime, timedelta, date as date_type

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from models import db
from models.booking import (
    Reservation,
    PENDING,
    CONFIRMED,
    CANCELLED,
    EXPIRED,
    COMPLETED,
    PAYMENT_PENDING,
)
from models.slot import TimeSlot
from models.slot_lock import SlotLock
from reservations.errors import BookingError, ConcurrencyConflict, InvalidState

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    PENDING: {CONFIRMED, EXPIRED},
    CONFIRMED: {CANCELLED, COMPLETED},
}

# postgres serialization_failure / deadlock_detected
_RETRYABLE_PGCODES = {"40001", "40P01"}


# ---------- hold / slot timing ----------

def hold_window() -> timedelta:
    return timedelta(minutes=current_app.config.get("HOLD_MINUTES", 15))


def booking_cutoff() -> timedelta:
    return timedelta(minutes=current_app.config.get("BOOKING_CUTOFF_MINUTES", 60))


def hold_expires_at(reservation: Reservation) -> datetime:
    return reservation.created_at + hold_window()


def is_hold_stale(reservation: Reservation, now: datetime) -> bool:
    return now - reservation.created_at > hold_window()


def slot_start(booking_date: date_type, slot: TimeSlot) -> datetime:
    return datetime.combine(booking_date, slot.start_time)


def slot_end(booking_date: date_type, slot: TimeSlot) -> datetime:
    return datetime.combine(booking_date, slot.end_time)


# ---------- atomic key-scoped transitions ----------

def _is_retryable(exc) -> bool:
    if isinstance(exc, (IntegrityError, StaleDataError)):
        return True
    if isinstance(exc, OperationalError):
        orig = getattr(exc, "orig", None)
        if getattr(orig, "pgcode", None) in _RETRYABLE_PGCODES:
            return True
        return "database is locked" in str(orig).lower()
    return False


def lock_key(slot_id: int, booking_date: date_type) -> SlotLock:
    """Get-or-create the lock row for the key and hold it FOR UPDATE until commit."""
    lock = (
        SlotLock.query
        .filter_by(slot_id=slot_id, booking_date=booking_date)
        .with_for_update()
        .first()
    )
    if lock is None:
        # a concurrent creator makes this flush fail; run_keyed retries and finds it
        lock = SlotLock(slot_id=slot_id, booking_date=booking_date)
        db.session.add(lock)
        db.session.flush()
    return lock


def run_keyed(slot_id: int, booking_date: date_type, work):
    """
    Run ``work()`` as one transaction holding the lock for the key.

    ``work`` returns the operation result. It may also return a
    BookingError instance: the transaction is committed first (so a side
    effect such as flipping a stale hold to expired persists) and the error
    is raised afterwards. Raising a BookingError rolls everything back.

    Storage conflicts retry the whole sequence; after the last attempt the
    caller gets ConcurrencyConflict.
    """
    max_attempts = max(int(current_app.config.get("BOOKING_MAX_RETRIES", 5)), 1)
    backoff = float(current_app.config.get("BOOKING_RETRY_BACKOFF_SECONDS", 0.05))

    for attempt in range(1, max_attempts + 1):
        try:
            lock_key(slot_id, booking_date)
            outcome = work()
            db.session.commit()
        except BookingError:
            db.session.rollback()
            raise
        except (IntegrityError, StaleDataError, OperationalError) as exc:
            db.session.rollback()
            if not _is_retryable(exc):
                raise
            logger.warning(
                "Conflict on slot %s date %s (attempt %d/%d): %s",
                slot_id, booking_date, attempt, max_attempts, exc.__class__.__name__,
            )
            if attempt < max_attempts:
                time.sleep(backoff * attempt)
            continue
        except Exception:
            db.session.rollback()
            raise

        if isinstance(outcome, BookingError):
            raise outcome
        return outcome

    raise ConcurrencyConflict(slot_id=slot_id, booking_date=booking_date.isoformat())


def transition(reservation: Reservation, new_status: str, at: datetime, **changes):
    """Apply a lifecycle transition; terminal rows never move again."""
    current = reservation.booking_status
    if reservation.is_terminal:
        raise InvalidState(f"Booking is {current} and can no longer change")
    if new_status not in ALLOWED_TRANSITIONS.get(current, ()):
        raise InvalidState(f"Cannot move booking from {current} to {new_status}")

    reservation.booking_status = new_status
    reservation.updated_at = at
    for field, value in changes.items():
        setattr(reservation, field, value)
    db.session.flush()
    return reservation


# ---------- reads ----------

def get_reservation(booking_id: int, for_update: bool = False):
    if not for_update:
        return db.session.get(Reservation, booking_id)
    # reload past the identity map: the row may have changed before we took the lock
    return (
        Reservation.query
        .filter_by(id=booking_id)
        .populate_existing()
        .with_for_update()
        .first()
    )


def rows_for_key(slot_id: int, booking_date: date_type, *statuses):
    return (
        Reservation.query
        .filter(
            Reservation.slot_id == slot_id,
            Reservation.booking_date == booking_date,
            Reservation.booking_status.in_(statuses),
        )
        .populate_existing()
        .all()
    )


def insert_hold(user_id, service, slot, booking_date, payment_method, at: datetime) -> Reservation:
    row = Reservation(
        user_id=user_id,
        service_id=service.id,
        slot_id=slot.id,
        booking_date=booking_date,
        total_amount=service.price,
        payment_method=payment_method,
        booking_status=PENDING,
        payment_status=PAYMENT_PENDING,
        created_at=at,
        updated_at=at,
    )
    db.session.add(row)
    db.session.flush()
    return row


def stale_hold_keys(now: datetime):
    """(id, slot_id, booking_date) of pending rows whose hold has lapsed."""
    threshold = now - hold_window()
    return (
        db.session.query(Reservation.id, Reservation.slot_id, Reservation.booking_date)
        .filter(Reservation.booking_status == PENDING, Reservation.created_at < threshold)
        .order_by(Reservation.id.asc())
        .all()
    )


def finished_booking_keys(now: datetime):
    """(id, slot_id, booking_date) of confirmed rows whose slot has ended."""
    rows = (
        db.session.query(
            Reservation.id, Reservation.slot_id, Reservation.booking_date, TimeSlot.end_time,
        )
        .join(TimeSlot, Reservation.slot_id == TimeSlot.id)
        .filter(Reservation.booking_status == CONFIRMED, Reservation.booking_date <= now.date())
        .order_by(Reservation.id.asc())
        .all()
    )
    return [
        (r.id, r.slot_id, r.booking_date)
        for r in rows
        if datetime.combine(r.booking_date, r.end_time) <= now
    ]


def reservations_for_user(user_id: int):
    return (
        Reservation.query
        .join(TimeSlot, Reservation.slot_id == TimeSlot.id)
        .filter(Reservation.user_id == user_id)
        .order_by(Reservation.booking_date.desc(), TimeSlot.start_time.desc())
        .all()
    )


def reservations_for_dates(slot_ids, booking_date: date_type, *statuses):
    if not slot_ids:
        return []
    return (
        Reservation.query
        .filter(
            Reservation.slot_id.in_(slot_ids),
            Reservation.booking_date == booking_date,
            Reservation.booking_status.in_(statuses),
        )
        .all()
    )
