from datetime import datetime
from models.db import db

class SlotLock(db.Model):
    """One row per contended (slot, date); locked FOR UPDATE by every keyed transition."""
    __tablename__ = "slot_locks"

    id = db.Column(db.Integer, primary_key=True)
    slot_id = db.Column(db.Integer, db.ForeignKey("time_slots.id"), nullable=False)
    booking_date = db.Column(db.Date, nullable=False)

    locked_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("slot_id", "booking_date", name="uq_slot_lock_key"),
    )
