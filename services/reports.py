from datetime import datetime, time

from sqlalchemy import func

from models import db
from models.booking import Booking, BookingLog, ACTIVE_STATUSES
from models.chalan import Chalan, ChalanRevision
from models.customer import Project
from models.editor import Editor
from models.user import User
from services.validation import parse_date

HISTORY_LIMIT = 200


def editor_report(date_from, date_to, editor_id=None):
    """Per editor: active bookings in range, summed billable hours, distinct projects."""
    start_day = parse_date(date_from, "from")
    end_day = parse_date(date_to, "to")

    q = Editor.query
    if editor_id:
        q = q.filter(Editor.id == editor_id)
    else:
        q = q.filter(Editor.is_active.is_(True))

    rows = []
    for editor in q.order_by(Editor.name.asc()).all():
        bookings = (
            Booking.query
            .filter(
                Booking.editor_id == editor.id,
                Booking.booking_date >= start_day,
                Booking.booking_date <= end_day,
                Booking.status.in_(ACTIVE_STATUSES),
            )
            .order_by(Booking.booking_date.asc(), Booking.from_time.asc())
            .all()
        )
        rows.append({
            "editor": editor,
            "bookings": bookings,
            "total_hours": sum(b.total_hours or 0 for b in bookings),
            "project_count": len({b.project_id for b in bookings}),
        })
    return rows


def history(date_from=None, date_to=None, entity_type=None, action=None):
    """Booking log entries and chalan revisions merged newest first."""
    start = datetime.combine(parse_date(date_from, "from"), time.min) if date_from else None
    end = datetime.combine(parse_date(date_to, "to"), time.max) if date_to else None
    usernames = {}

    def _username(user_id):
        if user_id is None:
            return None
        if user_id not in usernames:
            user = db.session.get(User, user_id)
            usernames[user_id] = user.username if user else None
        return usernames[user_id]

    results = []

    if not entity_type or entity_type == "booking":
        q = BookingLog.query.join(Booking, BookingLog.booking_id == Booking.id)
        if start:
            q = q.filter(BookingLog.created_at >= start)
        if end:
            q = q.filter(BookingLog.created_at <= end)
        if action:
            q = q.filter(func.lower(BookingLog.action) == action.lower())
        for log in q.order_by(BookingLog.created_at.desc()).limit(HISTORY_LIMIT).all():
            project = db.session.get(Project, log.booking.project_id)
            results.append({
                "id": log.id,
                "entity_type": "booking",
                "entity_id": log.booking_id,
                "entity_name": project.name if project else f"Booking #{log.booking_id}",
                "action": log.action.lower(),
                "changes": log.changes,
                "user_id": log.user_id,
                "username": _username(log.user_id),
                "created_at": log.created_at,
            })

    if (not entity_type or entity_type == "chalan") and (not action or action == "revision"):
        q = ChalanRevision.query.join(Chalan, ChalanRevision.chalan_id == Chalan.id)
        if start:
            q = q.filter(ChalanRevision.created_at >= start)
        if end:
            q = q.filter(ChalanRevision.created_at <= end)
        for rev in q.order_by(ChalanRevision.created_at.desc()).limit(HISTORY_LIMIT).all():
            results.append({
                "id": rev.id,
                "entity_type": "chalan",
                "entity_id": rev.chalan_id,
                "entity_name": rev.chalan.chalan_number,
                "action": "revision",
                "changes": rev.changes,
                "user_id": rev.revised_by,
                "username": _username(rev.revised_by),
                "created_at": rev.created_at,
            })

    results.sort(key=lambda r: r["created_at"], reverse=True)
    return results[:HISTORY_LIMIT]
