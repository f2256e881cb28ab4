from models import db
from models.service import Service, SERVICE_ACTIVE
from models.slot import TimeSlot
from reservations.errors import NotFound


def get_service(service_id: int) -> Service:
    service = db.session.get(Service, service_id)
    if not service:
        raise NotFound("Service not found")
    return service


def get_slot(service_id: int, slot_id: int) -> TimeSlot:
    """Slot lookup scoped to its service; a slot from another service is NotFound."""
    slot = db.session.get(TimeSlot, slot_id)
    if not slot or slot.service_id != service_id:
        raise NotFound("Time slot not found for this service")
    return slot


def list_slots(service_id: int):
    get_service(service_id)
    return (
        TimeSlot.query
        .filter_by(service_id=service_id)
        .order_by(TimeSlot.start_time.asc())
        .all()
    )


def list_active_services():
    return (
        Service.query
        .filter_by(status=SERVICE_ACTIVE)
        .order_by(Service.id.asc())
        .all()
    )
