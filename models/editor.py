from datetime import datetime
from models.db import db

EDITOR_TYPES = ("video", "audio", "vfx", "colorist", "di")

class Editor(db.Model):
    __tablename__ = "editors"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    editor_type = db.Column(db.String(20), nullable=False, default="video")
    phone = db.Column(db.String(30), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    join_date = db.Column(db.Date, nullable=True)
    leave_date = db.Column(db.Date, nullable=True)

    ignore_conflict = db.Column(db.Boolean, default=False, nullable=False)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    leaves = db.relationship("EditorLeave", back_populates="editor", order_by="EditorLeave.from_date")

class EditorLeave(db.Model):
    __tablename__ = "editor_leaves"

    id = db.Column(db.Integer, primary_key=True)
    editor_id = db.Column(db.Integer, db.ForeignKey("editors.id"), nullable=False, index=True)

    # inclusive on both ends
    from_date = db.Column(db.Date, nullable=False)
    to_date = db.Column(db.Date, nullable=False)
    reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    editor = db.relationship("Editor", back_populates="leaves")

    def covers(self, day) -> bool:
        return self.from_date <= day <= self.to_date
