from datetime import timedelta

import pytest

from models import db
from models.service import Service, SERVICE_INACTIVE
from reservations import lifecycle
from reservations.availability import resolve_availability
from reservations.errors import NotFound, PastSlot

from conftest import ALICE, BOB, TODAY, TOMORROW

pytestmark = pytest.mark.usefixtures("ctx")


def _statuses(service_id, day):
    return {row["slot_id"]: row["status"] for row in resolve_availability(service_id, day)}


def test_all_active_slots_available_tomorrow(court):
    statuses = _statuses(court.service_id, TOMORROW)

    for hour, slot_id in court.slots.items():
        assert statuses[slot_id] == "available", hour
    assert statuses[court.disabled_slot_id] == "unavailable"


def test_rows_are_ordered_by_start_time(court):
    rows = resolve_availability(court.service_id, TOMORROW)

    starts = [r["start_time"] for r in rows]
    assert starts == sorted(starts)
    assert rows[0] == {
        "slot_id": court.slots[7],
        "start_time": "07:00",
        "end_time": "08:00",
        "status": "available",
    }


def test_live_hold_reserves_and_confirmed_books(court):
    lifecycle.create_hold(ALICE, court.service_id, court.slots[9], TOMORROW, "card")
    held = lifecycle.create_hold(BOB, court.service_id, court.slots[10], TOMORROW, "card")
    lifecycle.confirm_hold(held["booking_id"], BOB)

    statuses = _statuses(court.service_id, TOMORROW)
    assert statuses[court.slots[9]] == "reserved"
    assert statuses[court.slots[10]] == "booked"
    assert statuses[court.slots[11]] == "available"


def test_lapsed_hold_reads_as_vacant_before_any_sweep(court, clock):
    lifecycle.create_hold(ALICE, court.service_id, court.slots[9], TOMORROW, "card")

    clock.advance(minutes=15)
    assert _statuses(court.service_id, TOMORROW)[court.slots[9]] == "reserved"

    clock.advance(minutes=1)
    assert _statuses(court.service_id, TOMORROW)[court.slots[9]] == "available"


def test_today_slots_inside_cutoff_are_past(court):
    # clock is 08:00; cutoff is one hour
    statuses = _statuses(court.service_id, TODAY)

    assert statuses[court.slots[7]] == "past"
    assert statuses[court.slots[8]] == "past"
    assert statuses[court.slots[9]] == "past"  # starts exactly at now + 1h
    assert statuses[court.slots[10]] == "available"
    assert statuses[court.disabled_slot_id] == "unavailable"


def test_booked_takes_precedence_over_past(court, clock):
    held = lifecycle.create_hold(ALICE, court.service_id, court.slots[10], TODAY, "cash")
    lifecycle.confirm_hold(held["booking_id"], ALICE)

    clock.advance(hours=2, minutes=30)
    assert _statuses(court.service_id, TODAY)[court.slots[10]] == "booked"


def test_past_date_is_rejected(court):
    with pytest.raises(PastSlot):
        resolve_availability(court.service_id, TODAY - timedelta(days=1))


def test_unknown_or_inactive_service_is_not_found(court):
    with pytest.raises(NotFound):
        resolve_availability(999, TOMORROW)

    db.session.get(Service, court.service_id).status = SERVICE_INACTIVE
    db.session.commit()
    with pytest.raises(NotFound):
        resolve_availability(court.service_id, TOMORROW)
