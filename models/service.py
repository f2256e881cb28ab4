from datetime import datetime
from models.db import db

SERVICE_ACTIVE = "active"
SERVICE_INACTIVE = "inactive"

class Service(db.Model):
    __tablename__ = "services"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # hourly price; copied onto each booking at hold time
    price = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    status = db.Column(db.String(20), nullable=False, default=SERVICE_ACTIVE)
    owner_user_id = db.Column(db.Integer, nullable=False, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    slots = db.relationship("TimeSlot", back_populates="service", order_by="TimeSlot.start_time")

    @property
    def is_active(self):
        return self.status == SERVICE_ACTIVE
