from flask import Blueprint, jsonify, g, request
from reservations import lifecycle
from reservations.lifecycle import format_money
from security.rbac import require_roles, is_privileged
from routes.booking import parse_booking_date, json_object, text_field
from utils.audit import log_event

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")

BOOKING_STATUSES = {"pending", "confirmed", "cancelled", "expired", "completed"}


@admin_bp.get("/bookings")
@require_roles("ADMIN")
def admin_service_bookings():
    status = (request.args.get("status") or "").strip().lower() or None
    date_str = request.args.get("date")  # YYYY-MM-DD

    if status and status not in BOOKING_STATUSES:
        return jsonify(error="Unknown booking status"), 400

    day = None
    if date_str:
        try:
            day = parse_booking_date(date_str)
        except ValueError:
            return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400

    rows = lifecycle.list_service_bookings(g.user.id, status=status, booking_date=day)
    log_event("ADMIN_BOOKINGS_VIEW", user_id=g.user.id)
    return jsonify(rows), 200


# ---------- ADMIN: cancel a booking on a service they own ----------
@admin_bp.post("/bookings/<int:booking_id>/cancel")
@require_roles("ADMIN")
def admin_cancel_booking(booking_id: int):
    data = json_object()
    if data is None:
        return jsonify(error="Request body must be a JSON object"), 400
    reason = text_field(data, "reason")
    if reason is None:
        return jsonify(error="reason must be a string"), 400
    reason = reason or "Admin cancellation"

    result = lifecycle.cancel_booking(booking_id, g.user.id, is_privileged=is_privileged())

    log_event(
        "ADMIN_BOOKING_CANCEL",
        user_id=g.user.id,
        entity="booking",
        entity_id=booking_id,
        metadata={"reason": reason, "refund_amount": format_money(result["refund_amount"])},
    )
    return jsonify(
        message="Cancelled by admin",
        booking_id=result["booking_id"],
        refund_amount=format_money(result["refund_amount"]),
        refund_policy=result["refund_policy"],
    ), 200
