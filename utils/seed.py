from datetime import time
from decimal import Decimal

from models import db
from models.service import Service
from models.slot import TimeSlot

DEFAULT_SERVICE = {
    "name": "Full Court",
    "description": "Indoor full basketball court, hourly",
    "price": Decimal("30.00"),
}

# 06:00 to 22:00, one-hour slots
DEFAULT_HOURS = range(6, 22)

def seed_catalog(owner_user_id: int, name=None, price=None):
    """Create a service with hourly slots unless one with that name exists. Idempotent."""
    name = name or DEFAULT_SERVICE["name"]
    service = Service.query.filter_by(name=name, owner_user_id=owner_user_id).first()
    if service:
        return service, 0

    service = Service(
        name=name,
        description=DEFAULT_SERVICE["description"],
        price=Decimal(price) if price is not None else DEFAULT_SERVICE["price"],
        owner_user_id=owner_user_id,
    )
    db.session.add(service)
    db.session.flush()

    created = 0
    for hour in DEFAULT_HOURS:
        db.session.add(TimeSlot(service_id=service.id, start_time=time(hour, 0), end_time=time(hour + 1, 0)))
        created += 1
    db.session.commit()
    return service, created
