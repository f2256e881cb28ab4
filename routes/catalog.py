from flask import Blueprint, request, jsonify
from reservations import catalog
from reservations.availability import resolve_availability
from routes.booking import parse_booking_date

catalog_bp = Blueprint("catalog", __name__, url_prefix="/services")


@catalog_bp.get("")
def list_services():
    services = catalog.list_active_services()
    return jsonify([
        {
            "id": s.id,
            "name": s.name,
            "description": s.description,
            "price": f"{s.price:.2f}",
        }
        for s in services
    ]), 200


@catalog_bp.get("/<int:service_id>/slots")
def list_slots(service_id: int):
    slots = catalog.list_slots(service_id)
    return jsonify([
        {
            "slot_id": s.id,
            "start_time": s.start_time.strftime("%H:%M"),
            "end_time": s.end_time.strftime("%H:%M"),
            "status": s.status,
        }
        for s in slots
    ]), 200


@catalog_bp.get("/<int:service_id>/availability")
def availability(service_id: int):
    date_str = request.args.get("date")
    if not date_str:
        return jsonify(error="Please provide a date (YYYY-MM-DD)"), 400
    try:
        day = parse_booking_date(date_str)
    except ValueError:
        return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400

    return jsonify(
        service_id=service_id,
        date=day.isoformat(),
        slots=resolve_availability(service_id, day),
    ), 200
