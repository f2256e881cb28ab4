from datetime import datetime
from models.db import db

SLOT_AVAILABLE = "available"
SLOT_DISABLED = "disabled"

class TimeSlot(db.Model):
    __tablename__ = "time_slots"

    id = db.Column(db.Integer, primary_key=True)

    service_id = db.Column(db.Integer, db.ForeignKey("services.id"), nullable=False, index=True)

    # time of day only; the calendar date lives on the booking
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)

    status = db.Column(db.String(20), nullable=False, default=SLOT_AVAILABLE)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    service = db.relationship("Service", back_populates="slots")

    __table_args__ = (
        db.UniqueConstraint("service_id", "start_time", "end_time", name="uq_service_timeslot"),
        db.CheckConstraint("start_time < end_time", name="ck_timeslot_order"),
    )
