from datetime import datetime
from models.db import db

# booking_status values
PENDING = "pending"
CONFIRMED = "confirmed"
CANCELLED = "cancelled"
EXPIRED = "expired"
COMPLETED = "completed"

TERMINAL_STATUSES = frozenset({CANCELLED, EXPIRED, COMPLETED})

# payment_status values
PAYMENT_PENDING = "pending"
PAYMENT_COMPLETED = "completed"
PAYMENT_REFUNDED = "refunded"

class Reservation(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    # identity lives upstream, so no FK on user_id
    user_id = db.Column(db.Integer, nullable=False, index=True)
    service_id = db.Column(db.Integer, db.ForeignKey("services.id"), nullable=False, index=True)
    slot_id = db.Column(db.Integer, db.ForeignKey("time_slots.id"), nullable=False, index=True)
    booking_date = db.Column(db.Date, nullable=False, index=True)

    total_amount = db.Column(db.Numeric(10, 2), nullable=False)
    payment_method = db.Column(db.String(40), nullable=False)

    booking_status = db.Column(db.String(20), nullable=False, default=PENDING)
    payment_status = db.Column(db.String(20), nullable=False, default=PAYMENT_PENDING)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    cancelled_at = db.Column(db.DateTime, nullable=True)

    version = db.Column(db.Integer, nullable=False)

    service = db.relationship("Service")
    slot = db.relationship("TimeSlot")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        # Hard business-rule: one confirmed and one pending row per slot/date
        db.Index(
            "uq_bookings_slot_date_confirmed", "slot_id", "booking_date",
            unique=True,
            sqlite_where=db.text("booking_status = 'confirmed'"),
            postgresql_where=db.text("booking_status = 'confirmed'"),
        ),
        db.Index(
            "uq_bookings_slot_date_pending", "slot_id", "booking_date",
            unique=True,
            sqlite_where=db.text("booking_status = 'pending'"),
            postgresql_where=db.text("booking_status = 'pending'"),
        ),
    )

    @property
    def is_terminal(self):
        return self.booking_status in TERMINAL_STATUSES
