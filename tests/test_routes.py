from datetime import timedelta

from models import db
from models.audit_log import AuditLog
from models.booking import Reservation
from reservations import lifecycle
from reservations.errors import ConcurrencyConflict

from conftest import ALICE, BOB, NOW, OTHER_OWNER_ID, OWNER_ID, TODAY, TOMORROW, as_user


def _hold(client, court, user=ALICE, hour=9, day=TOMORROW):
    return client.post(
        "/bookings",
        json={
            "service_id": court.service_id,
            "slot_id": court.slots[hour],
            "booking_date": day.isoformat(),
            "payment_method": "card",
        },
        headers=as_user(user),
    )


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}
    assert resp.headers["X-Content-Type-Options"] == "nosniff"


def test_catalog_listing(client, court):
    services = client.get("/services").get_json()
    assert {"id": court.service_id, "name": "Full Court", "description": None, "price": "30.00"} in services

    slots = client.get(f"/services/{court.service_id}/slots").get_json()
    assert len(slots) == 7
    assert slots[-1]["status"] == "disabled"

    assert client.get("/services/999/slots").status_code == 404


def test_availability_endpoint(client, court):
    _hold(client, court, hour=9)

    resp = client.get(f"/services/{court.service_id}/availability?date={TOMORROW.isoformat()}")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["date"] == TOMORROW.isoformat()
    statuses = {s["slot_id"]: s["status"] for s in body["slots"]}
    assert statuses[court.slots[9]] == "reserved"
    assert statuses[court.slots[10]] == "available"


def test_availability_input_errors(client, court):
    base = f"/services/{court.service_id}/availability"
    assert client.get(base).status_code == 400
    assert client.get(base + "?date=10/03/2026").status_code == 400

    resp = client.get(base + "?date=" + (TODAY - timedelta(days=1)).isoformat())
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "past_slot"


def test_booking_requires_identity(client, court):
    resp = client.post("/bookings", json={})
    assert resp.status_code == 401


def test_booking_validates_payload(client, court):
    resp = client.post("/bookings", json={"service_id": court.service_id}, headers=as_user(ALICE))
    assert resp.status_code == 400

    resp = client.post(
        "/bookings",
        json={"service_id": "x", "slot_id": 1, "booking_date": "tomorrow", "payment_method": "card"},
        headers=as_user(ALICE),
    )
    assert resp.status_code == 400


def test_booking_rejects_malformed_bodies(client, court):
    resp = client.post("/bookings", json=[1, 2], headers=as_user(ALICE))
    assert resp.status_code == 400

    resp = client.post(
        "/bookings",
        json={
            "service_id": court.service_id,
            "slot_id": court.slots[9],
            "booking_date": TOMORROW.isoformat(),
            "payment_method": 5,
        },
        headers=as_user(ALICE),
    )
    assert resp.status_code == 400
    assert "payment_method" in resp.get_json()["error"]

    resp = client.post(
        "/bookings",
        json={"service_id": [1], "slot_id": {}, "booking_date": 20260311, "payment_method": "card"},
        headers=as_user(ALICE),
    )
    assert resp.status_code == 400


def test_admin_cancel_rejects_malformed_bodies(client, court):
    booking_id = _hold(client, court).get_json()["booking_id"]
    client.post(f"/bookings/{booking_id}/confirm", headers=as_user(ALICE))
    owner = as_user(OWNER_ID, "ADMIN")

    assert client.post(f"/admin/bookings/{booking_id}/cancel", json=["x"], headers=owner).status_code == 400
    resp = client.post(f"/admin/bookings/{booking_id}/cancel", json={"reason": 7}, headers=owner)
    assert resp.status_code == 400
    assert "reason" in resp.get_json()["error"]

    # nothing was cancelled by the rejected requests
    assert client.post(f"/admin/bookings/{booking_id}/cancel", headers=owner).status_code == 200


def test_super_admin_owner_cancels_through_admin_route(client, court):
    booking_id = _hold(client, court).get_json()["booking_id"]
    client.post(f"/bookings/{booking_id}/confirm", headers=as_user(ALICE))

    resp = client.post(f"/admin/bookings/{booking_id}/cancel", headers=as_user(OWNER_ID, "SUPER_ADMIN"))
    assert resp.status_code == 200
    assert resp.get_json()["refund_policy"] == "full"


def test_scenario_hold_conflict_confirm(client, court):
    resp = _hold(client, court, ALICE)
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["total_amount"] == "30.00"
    assert body["expires_at"] == (NOW + timedelta(minutes=15)).isoformat()

    conflict = _hold(client, court, BOB)
    assert conflict.status_code == 423
    assert conflict.get_json()["code"] == "slot_reserved"

    confirm = client.post(f"/bookings/{body['booking_id']}/confirm", headers=as_user(ALICE))
    assert confirm.status_code == 200
    assert confirm.get_json() == {"booking_id": body["booking_id"], "status": "confirmed"}

    taken = _hold(client, court, BOB)
    assert taken.status_code == 409
    assert taken.get_json()["code"] == "slot_taken"


def test_expired_hold_on_confirm(client, court, clock):
    booking_id = _hold(client, court).get_json()["booking_id"]
    clock.advance(minutes=16)

    resp = client.post(f"/bookings/{booking_id}/confirm", headers=as_user(ALICE))
    assert resp.status_code == 410
    assert resp.get_json()["code"] == "hold_expired"

    assert _hold(client, court, BOB).status_code == 201


def test_cutoff_and_not_found_codes(client, court, clock):
    clock.set(NOW.replace(minute=30))
    resp = _hold(client, court, hour=9, day=TODAY)
    assert resp.status_code == 422
    assert resp.get_json()["code"] == "cutoff_violation"

    resp = client.post("/bookings/4242/confirm", headers=as_user(ALICE))
    assert resp.status_code == 404
    assert resp.get_json()["code"] == "not_found"


def test_cancel_and_my_bookings(client, court):
    booking_id = _hold(client, court).get_json()["booking_id"]
    client.post(f"/bookings/{booking_id}/confirm", headers=as_user(ALICE))

    upcoming = client.get("/bookings/me", headers=as_user(ALICE)).get_json()
    assert [b["booking_id"] for b in upcoming] == [booking_id]
    assert upcoming[0]["booking_status"] == "confirmed"
    assert upcoming[0]["start_time"] == "09:00"

    assert client.post(f"/bookings/{booking_id}/cancel", headers=as_user(BOB)).status_code == 404

    resp = client.post(f"/bookings/{booking_id}/cancel", headers=as_user(ALICE))
    assert resp.status_code == 200
    assert resp.get_json() == {"booking_id": booking_id, "refund_amount": "30.00", "refund_policy": "full"}

    again = client.post(f"/bookings/{booking_id}/cancel", headers=as_user(ALICE))
    assert again.status_code == 409
    assert again.get_json()["code"] == "already_cancelled"

    history = client.get("/bookings/me?scope=history", headers=as_user(ALICE)).get_json()
    assert history[0]["payment_status"] == "refunded"
    assert client.get("/bookings/me?scope=all", headers=as_user(ALICE)).status_code == 400


def test_admin_lists_and_cancels_own_court_bookings(client, court, app):
    booking_id = _hold(client, court).get_json()["booking_id"]
    client.post(f"/bookings/{booking_id}/confirm", headers=as_user(ALICE))

    assert client.get("/admin/bookings", headers=as_user(ALICE)).status_code == 403

    owner = as_user(OWNER_ID, "ADMIN")
    rows = client.get("/admin/bookings?status=confirmed", headers=owner).get_json()
    assert [r["booking_id"] for r in rows] == [booking_id]
    assert client.get("/admin/bookings?status=bogus", headers=owner).status_code == 400

    stranger = as_user(OTHER_OWNER_ID, "ADMIN")
    assert client.get("/admin/bookings", headers=stranger).get_json() == []
    assert client.post(f"/admin/bookings/{booking_id}/cancel", headers=stranger).status_code == 404

    resp = client.post(f"/admin/bookings/{booking_id}/cancel", json={"reason": "court maintenance"}, headers=owner)
    assert resp.status_code == 200
    assert resp.get_json()["refund_amount"] == "30.00"

    with app.app_context():
        assert db.session.get(Reservation, booking_id).booking_status == "cancelled"
        actions = [a.action for a in AuditLog.query.order_by(AuditLog.id).all()]
        assert actions[:2] == ["BOOKING_HOLD", "BOOKING_CONFIRM"]
        assert "ADMIN_BOOKING_CANCEL" in actions


def test_concurrency_conflict_maps_to_retryable_503(client, court, monkeypatch):
    def busy(*args, **kwargs):
        raise ConcurrencyConflict()

    monkeypatch.setattr(lifecycle, "create_hold", busy)

    resp = _hold(client, court)
    assert resp.status_code == 503
    assert resp.headers["Retry-After"] == "1"
    assert resp.get_json()["code"] == "concurrency_conflict"


def test_cli_seed_and_sweep(app, clock):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["seed-catalog", "42", "--price", "25.00"])
    assert "created" in result.output
    assert "16 slots" in result.output
    assert "already exists" in runner.invoke(args=["seed-catalog", "42"]).output

    result = runner.invoke(args=["sweep"])
    assert result.exit_code == 0
    assert "expired 0 stale holds" in result.output
    assert "completed 0 past bookings" in result.output
