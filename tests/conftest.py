"""
Shared fixtures.

Every test gets its own SQLite file (the engine is exercised with real
BEGIN IMMEDIATE locking) and a FixedClock pinned to NOW. Since SQLite
transactions take the write lock up front, a session that stays inside a
transaction blocks other sessions: tests that call Celery tasks or spawn
threads end their own transaction first (``db.session.commit()``).
"""
from datetime import datetime, time, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from app import create_app
from models import db
from models.service import Service
from models.slot import TimeSlot, SLOT_DISABLED
from reservations.clock import FixedClock

NOW = datetime(2026, 3, 10, 8, 0)
TODAY = NOW.date()
TOMORROW = TODAY + timedelta(days=1)

OWNER_ID = 900
OTHER_OWNER_ID = 901
ALICE = 1
BOB = 2
CAROL = 3

HOURS = (7, 8, 9, 10, 11, 18)


def as_user(user_id, roles=""):
    return {"X-User-Id": str(user_id), "X-User-Roles": roles}


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def app(tmp_path, clock):
    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite:///" + str(tmp_path / "courtbook-test.db"),
            "BOOKING_RETRY_BACKOFF_SECONDS": 0.01,
            "CELERY": {"broker_url": "memory://", "task_ignore_result": True},
        },
        clock=clock,
    )
    with app.app_context():
        db.create_all()
    yield app


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield
        db.session.rollback()


@pytest.fixture
def court(app):
    """A $30/h court owned by OWNER_ID, plus a second court owned by someone else."""
    with app.app_context():
        service = Service(name="Full Court", price=Decimal("30.00"), owner_user_id=OWNER_ID)
        other = Service(name="Half Court", price=Decimal("18.50"), owner_user_id=OTHER_OWNER_ID)
        db.session.add_all([service, other])
        db.session.flush()

        slots = {}
        for hour in HOURS:
            slot = TimeSlot(service_id=service.id, start_time=time(hour, 0), end_time=time(hour + 1, 0))
            db.session.add(slot)
            slots[hour] = slot
        disabled = TimeSlot(
            service_id=service.id, start_time=time(20, 0), end_time=time(21, 0), status=SLOT_DISABLED,
        )
        other_slot = TimeSlot(service_id=other.id, start_time=time(9, 0), end_time=time(10, 0))
        db.session.add_all([disabled, other_slot])
        db.session.flush()

        ids = SimpleNamespace(
            service_id=service.id,
            other_service_id=other.id,
            slots={hour: slot.id for hour, slot in slots.items()},
            disabled_slot_id=disabled.id,
            other_slot_id=other_slot.id,
        )
        db.session.commit()
    return ids


@pytest.fixture
def client(app):
    return app.test_client()
