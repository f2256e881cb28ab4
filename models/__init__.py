from .db import db
from .audit_log import AuditLog
from .service import Service
from .slot import TimeSlot
from .slot_lock import SlotLock
from .booking import Reservation
