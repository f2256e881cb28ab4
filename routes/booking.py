from datetime import date

from flask import Blueprint, request, jsonify, g
from reservations import lifecycle
from reservations.lifecycle import SCOPES, SCOPE_UPCOMING, format_money
from utils.auth_context import login_required
from utils.audit import log_event

booking_bp = Blueprint("booking", __name__, url_prefix="/bookings")

def parse_booking_date(value):
    # Expect ISO format like "2026-01-20"
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)

def json_object():
    """Request body as a dict; None when it is missing or not a JSON object."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    return data if isinstance(data, dict) else None

def text_field(data, name):
    """Stripped string value; None when present but not a string."""
    value = data.get(name)
    if value is None:
        return ""
    return value.strip() if isinstance(value, str) else None

# ---------- PLAYERS: hold a slot (DOUBLE-BOOKING SAFE) ----------
@booking_bp.post("")
@login_required
def create_booking():
    data = json_object()
    if data is None:
        return jsonify(error="Request body must be a JSON object"), 400
    service_id = data.get("service_id")
    slot_id = data.get("slot_id")
    booking_date = data.get("booking_date")
    payment_method = text_field(data, "payment_method")
    if payment_method is None:
        return jsonify(error="payment_method must be a string"), 400

    if not service_id or not slot_id or not booking_date or not payment_method:
        return jsonify(error="service_id, slot_id, booking_date, payment_method are required"), 400

    try:
        service_id = int(service_id)
        slot_id = int(slot_id)
        day = parse_booking_date(booking_date)
    except (TypeError, ValueError):
        return jsonify(error="Invalid ids or date. Use YYYY-MM-DD for booking_date"), 400

    hold = lifecycle.create_hold(g.user.id, service_id, slot_id, day, payment_method[:40])

    log_event(
        "BOOKING_HOLD",
        user_id=g.user.id,
        entity="booking",
        entity_id=hold["booking_id"],
        metadata={"slot_id": slot_id, "booking_date": day.isoformat()},
    )
    return jsonify(
        booking_id=hold["booking_id"],
        total_amount=format_money(hold["total_amount"]),
        expires_at=hold["expires_at"].isoformat(),
    ), 201


# ---------- PLAYERS: confirm a hold within the window ----------
@booking_bp.post("/<int:booking_id>/confirm")
@login_required
def confirm_booking(booking_id: int):
    result = lifecycle.confirm_hold(booking_id, g.user.id)
    log_event("BOOKING_CONFIRM", user_id=g.user.id, entity="booking", entity_id=booking_id)
    return jsonify(result), 200


# ---------- PLAYERS: cancel own confirmed booking (full refund) ----------
@booking_bp.post("/<int:booking_id>/cancel")
@login_required
def cancel_booking(booking_id: int):
    result = lifecycle.cancel_booking(booking_id, g.user.id, is_privileged=False)
    log_event(
        "BOOKING_CANCEL",
        user_id=g.user.id,
        entity="booking",
        entity_id=booking_id,
        metadata={"refund_amount": format_money(result["refund_amount"])},
    )
    return jsonify(
        booking_id=result["booking_id"],
        refund_amount=format_money(result["refund_amount"]),
        refund_policy=result["refund_policy"],
    ), 200


# ---------- PLAYERS: view my bookings ----------
@booking_bp.get("/me")
@login_required
def my_bookings():
    scope = (request.args.get("scope") or SCOPE_UPCOMING).strip().lower()
    if scope not in SCOPES:
        return jsonify(error="scope must be upcoming or history"), 400
    return jsonify(lifecycle.list_user_bookings(g.user.id, scope)), 200
