"""Overlap detection between a proposed slot and the day's active bookings.

Detection is advisory: callers decide whether a conflict blocks the write.
Override flags live on the Room/Editor rows and are read at check time.
Suppression is OR'd across the pair: an ``ignore_conflict`` flag on either
the proposed resource or the existing booking's resource silences it.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.orm import joinedload

from models import db
from models.booking import Booking, ACTIVE_STATUSES
from models.editor import Editor, EditorLeave
from models.room import Room
from services.errors import NotFound
from services.timecalc import to_time as as_time
from services.validation import parse_date

logger = logging.getLogger(__name__)


@dataclass
class Conflict:
    type: str  # "room" or "editor"
    booking_id: int
    message: str

    def to_dict(self) -> dict:
        return {"type": self.type, "booking_id": self.booking_id, "message": self.message}


@dataclass
class ConflictReport:
    conflicts: List[Conflict] = field(default_factory=list)
    editor_on_leave: bool = False
    leave: Optional[EditorLeave] = None

    @property
    def has_conflict(self) -> bool:
        return len(self.conflicts) > 0

    @property
    def leave_info(self) -> Optional[dict]:
        if self.leave is None:
            return None
        return {
            "from_date": self.leave.from_date.isoformat(),
            "to_date": self.leave.to_date.isoformat(),
            "reason": self.leave.reason,
        }

    def to_dict(self) -> dict:
        out = {
            "has_conflict": self.has_conflict,
            "conflicts": [c.to_dict() for c in self.conflicts],
            "editor_on_leave": self.editor_on_leave,
        }
        if self.leave is not None:
            out["leave_info"] = self.leave_info
        return out


def overlaps(from_a, to_a, from_b, to_b) -> bool:
    # half-open: touching endpoints (12:00-12:00) do not overlap
    return from_a < to_b and from_b < to_a


def find_leave(editor_id: int, day) -> Optional[EditorLeave]:
    leaves = (
        EditorLeave.query
        .filter_by(editor_id=editor_id)
        .order_by(EditorLeave.from_date.asc(), EditorLeave.id.asc())
        .all()
    )
    for leave in leaves:
        if leave.covers(day):
            return leave
    return None


def active_bookings_on(day, exclude_booking_id=None):
    q = (
        Booking.query
        .options(joinedload(Booking.room), joinedload(Booking.editor))
        .filter(Booking.booking_date == day, Booking.status.in_(ACTIVE_STATUSES))
    )
    if exclude_booking_id:
        q = q.filter(Booking.id != exclude_booking_id)
    return q.order_by(Booking.from_time.asc(), Booking.id.asc()).all()


def detect_conflicts(room_id, booking_date, from_time, to_time, editor_id=None, exclude_booking_id=None) -> ConflictReport:
    day = parse_date(booking_date, "booking_date")
    start = as_time(from_time)
    end = as_time(to_time)

    room = db.session.get(Room, room_id)
    if room is None:
        raise NotFound("Room not found")
    room_override = room.ignore_conflict

    report = ConflictReport()

    editor_override = False
    if editor_id:
        editor = db.session.get(Editor, editor_id)
        if editor is None:
            raise NotFound("Editor not found")
        editor_override = editor.ignore_conflict

        leave = find_leave(editor_id, day)
        if leave is not None:
            report.editor_on_leave = True
            report.leave = leave

    for existing in active_bookings_on(day, exclude_booking_id):
        if not overlaps(start, end, existing.from_time, existing.to_time):
            continue

        if existing.room_id == room_id:
            other_override = existing.room.ignore_conflict if existing.room else False
            if not room_override and not other_override:
                name = existing.room.name if existing.room else existing.room_id
                report.conflicts.append(Conflict("room", existing.id, f'Room "{name}" is already booked'))

        if editor_id and existing.editor_id == editor_id:
            other_override = existing.editor.ignore_conflict if existing.editor else False
            if not editor_override and not other_override:
                name = existing.editor.name if existing.editor else existing.editor_id
                report.conflicts.append(Conflict("editor", existing.id, f'Editor "{name}" is already assigned'))

    if report.has_conflict or report.editor_on_leave:
        logger.info(
            "Conflict check room=%s editor=%s date=%s %s-%s: %d conflict(s), on_leave=%s",
            room_id, editor_id, day, start, end, len(report.conflicts), report.editor_on_leave,
        )
    return report


def find_conflicting_pairs(date_from, date_to, room_id=None, editor_id=None):
    """
    Every pair of active same-day bookings in [date_from, date_to] that overlap
    and share a room or an editor, after applying the override flags.
    Returns (first, second, types) tuples, types being a subset of ["room", "editor"].
    """
    start_day = parse_date(date_from, "from")
    end_day = parse_date(date_to, "to")

    q = (
        Booking.query
        .options(joinedload(Booking.room), joinedload(Booking.editor))
        .filter(
            Booking.booking_date >= start_day,
            Booking.booking_date <= end_day,
            Booking.status.in_(ACTIVE_STATUSES),
        )
    )
    if room_id:
        q = q.filter(Booking.room_id == room_id)
    if editor_id:
        q = q.filter(Booking.editor_id == editor_id)
    rows = q.order_by(Booking.booking_date.asc(), Booking.from_time.asc(), Booking.id.asc()).all()

    pairs = []
    for i, first in enumerate(rows):
        for second in rows[i + 1:]:
            if first.booking_date != second.booking_date:
                continue
            if not overlaps(first.from_time, first.to_time, second.from_time, second.to_time):
                continue
            types = []
            if _shares_room(first, second):
                types.append("room")
            if _shares_editor(first, second):
                types.append("editor")
            if types:
                pairs.append((first, second, types))
    return pairs


def _shares_room(a: Booking, b: Booking) -> bool:
    if a.room_id != b.room_id:
        return False
    return not (a.room and a.room.ignore_conflict)


def _shares_editor(a: Booking, b: Booking) -> bool:
    if not a.editor_id or a.editor_id != b.editor_id:
        return False
    return not (a.editor and a.editor.ignore_conflict)
