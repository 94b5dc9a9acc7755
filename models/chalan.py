from datetime import datetime
from models.db import db

class Chalan(db.Model):
    __tablename__ = "chalans"

    id = db.Column(db.Integer, primary_key=True)
    chalan_number = db.Column(db.String(20), nullable=False)  # CH{YY}{MM}-{SEQ}

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id"), nullable=False, index=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=True)

    chalan_date = db.Column(db.Date, nullable=False, index=True)
    total_amount = db.Column(db.Integer, nullable=False, default=0)  # smallest currency unit

    is_cancelled = db.Column(db.Boolean, default=False, nullable=False)
    cancel_reason = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    customer = db.relationship("Customer")
    project = db.relationship("Project")
    items = db.relationship(
        "ChalanItem", back_populates="chalan", cascade="all, delete-orphan", order_by="ChalanItem.id"
    )
    revisions = db.relationship(
        "ChalanRevision", back_populates="chalan", order_by="ChalanRevision.revision_number"
    )

    __table_args__ = (
        # Concurrent creates computing the same "next" number collide here and retry
        db.UniqueConstraint("chalan_number", name="uq_chalans_number"),
        # At most one live chalan per booking; cancelled chalans release the booking
        db.Index(
            "uq_chalans_active_booking",
            "booking_id",
            unique=True,
            sqlite_where=db.text("is_cancelled = 0"),
            postgresql_where=db.text("is_cancelled = false"),
        ),
    )

class ChalanItem(db.Model):
    __tablename__ = "chalan_items"

    id = db.Column(db.Integer, primary_key=True)
    chalan_id = db.Column(db.Integer, db.ForeignKey("chalans.id"), nullable=False, index=True)
    description = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    rate = db.Column(db.Integer, nullable=False, default=0)
    amount = db.Column(db.Integer, nullable=False, default=0)  # stored as given by the caller

    chalan = db.relationship("Chalan", back_populates="items")

class ChalanRevision(db.Model):
    """Append-only; revision_number is 1-based and gapless per chalan."""
    __tablename__ = "chalan_revisions"

    id = db.Column(db.Integer, primary_key=True)
    chalan_id = db.Column(db.Integer, db.ForeignKey("chalans.id"), nullable=False, index=True)
    revision_number = db.Column(db.Integer, nullable=False)
    changes = db.Column(db.Text, nullable=True)
    revised_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    chalan = db.relationship("Chalan", back_populates="revisions")

    __table_args__ = (
        db.UniqueConstraint("chalan_id", "revision_number", name="uq_chalan_revision_number"),
    )
