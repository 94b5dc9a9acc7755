from datetime import datetime
from models.db import db

BOOKING_STATUSES = ("planning", "tentative", "confirmed", "cancelled")
ACTIVE_STATUSES = ("planning", "tentative", "confirmed")

class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    room_id = db.Column(db.Integer, db.ForeignKey("rooms.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id"), nullable=False, index=True)
    contact_id = db.Column(db.Integer, db.ForeignKey("customer_contacts.id"), nullable=True)
    editor_id = db.Column(db.Integer, db.ForeignKey("editors.id"), nullable=True, index=True)

    booking_date = db.Column(db.Date, nullable=False, index=True)
    from_time = db.Column(db.Time, nullable=False)
    to_time = db.Column(db.Time, nullable=False)
    actual_from_time = db.Column(db.Time, nullable=True)
    actual_to_time = db.Column(db.Time, nullable=True)
    break_hours = db.Column(db.Integer, nullable=False, default=0)
    total_hours = db.Column(db.Float, nullable=False, default=0)  # snapshot, multiple of 0.5

    status = db.Column(db.String(20), nullable=False, default="planning")
    # status values: planning, tentative, confirmed, cancelled (terminal)

    cancel_reason = db.Column(db.String(255), nullable=True)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    room = db.relationship("Room")
    editor = db.relationship("Editor")
    customer = db.relationship("Customer")
    project = db.relationship("Project")
    logs = db.relationship("BookingLog", back_populates="booking", order_by="BookingLog.id")

    __table_args__ = (
        db.CheckConstraint(
            "status IN ('planning', 'tentative', 'confirmed', 'cancelled')", name="ck_booking_status"
        ),
        db.CheckConstraint(
            "(status = 'cancelled') = (cancelled_at IS NOT NULL)", name="ck_booking_cancelled_at"
        ),
        db.Index("ix_bookings_room_day", "room_id", "booking_date"),
    )

    @property
    def is_cancelled(self) -> bool:
        return self.status == "cancelled"

class BookingLog(db.Model):
    """Append-only; one row per lifecycle transition."""
    __tablename__ = "booking_logs"

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    action = db.Column(db.String(20), nullable=False)  # Created, Updated, Cancelled
    changes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    booking = db.relationship("Booking", back_populates="logs")
