from datetime import datetime
from models.db import db

ROOM_TYPES = ("sound", "music", "vfx", "client_office", "editing", "dubbing", "mixing")

class Room(db.Model):
    __tablename__ = "rooms"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    room_type = db.Column(db.String(20), nullable=False, default="editing")
    capacity = db.Column(db.Integer, nullable=True, default=1)

    # exempts the room from overlap conflicts (read at check time, never copied onto bookings)
    ignore_conflict = db.Column(db.Boolean, default=False, nullable=False)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
