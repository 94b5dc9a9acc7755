from flask import Blueprint, request, jsonify

from models import db
from models.booking import Booking, BOOKING_STATUSES
from services.bookings import (
    cancel_booking as cancel_booking_service,
    create_repeated_bookings,
    get_booking_logs,
    update_booking as update_booking_service,
)
from services.conflicts import detect_conflicts
from services.errors import NotFound, ValidationError
from services.resolution import resolve_conflict as resolve_conflict_service
from services.timecalc import format_clock
from services.validation import as_bool, as_int, json_object, parse_date
from utils.auth_context import login_required, current_user_id

booking_bp = Blueprint("booking", __name__, url_prefix="/bookings")

LIST_LIMIT = 500


def booking_to_json(b: Booking) -> dict:
    return {
        "id": b.id,
        "room_id": b.room_id,
        "room_name": b.room.name if b.room else None,
        "customer_id": b.customer_id,
        "customer_name": b.customer.name if b.customer else None,
        "project_id": b.project_id,
        "project_name": b.project.name if b.project else None,
        "contact_id": b.contact_id,
        "editor_id": b.editor_id,
        "editor_name": b.editor.name if b.editor else None,
        "booking_date": b.booking_date.isoformat(),
        "from_time": format_clock(b.from_time),
        "to_time": format_clock(b.to_time),
        "actual_from_time": format_clock(b.actual_from_time),
        "actual_to_time": format_clock(b.actual_to_time),
        "break_hours": b.break_hours,
        "total_hours": b.total_hours,
        "status": b.status,
        "cancel_reason": b.cancel_reason,
        "cancelled_at": b.cancelled_at.isoformat() if b.cancelled_at else None,
        "notes": b.notes,
        "created_at": b.created_at.isoformat() if b.created_at else None,
        "updated_at": b.updated_at.isoformat() if b.updated_at else None,
    }


def log_to_json(log) -> dict:
    return {
        "id": log.id,
        "booking_id": log.booking_id,
        "user_id": log.user_id,
        "action": log.action,
        "changes": log.changes,
        "created_at": log.created_at.isoformat(),
    }


def _get_or_404(booking_id: int) -> Booking:
    booking = db.session.get(Booking, booking_id)
    if booking is None:
        raise NotFound("Booking not found")
    return booking


def _warnings(report) -> dict:
    out = {"conflicts": [c.to_dict() for c in report.conflicts]}
    if report.editor_on_leave:
        out["editor_on_leave"] = True
        out["leave_info"] = report.leave_info
    return out


@booking_bp.get("")
@login_required
def list_bookings():
    q = Booking.query
    if request.args.get("from"):
        q = q.filter(Booking.booking_date >= parse_date(request.args["from"], "from"))
    if request.args.get("to"):
        q = q.filter(Booking.booking_date <= parse_date(request.args["to"], "to"))
    for key in ("room_id", "customer_id", "editor_id"):
        value = request.args.get(key, type=int)
        if value:
            q = q.filter(getattr(Booking, key) == value)

    status = (request.args.get("status") or "").strip().lower()
    if status:
        if status not in BOOKING_STATUSES:
            raise ValidationError(f"status must be one of {', '.join(BOOKING_STATUSES)}")
        q = q.filter(Booking.status == status)

    rows = (
        q.order_by(Booking.booking_date.asc(), Booking.from_time.asc(), Booking.id.asc())
        .limit(LIST_LIMIT)
        .all()
    )
    return jsonify([booking_to_json(b) for b in rows]), 200


@booking_bp.get("/<int:booking_id>")
@login_required
def get_booking(booking_id: int):
    return jsonify(booking_to_json(_get_or_404(booking_id))), 200


@booking_bp.get("/<int:booking_id>/logs")
@login_required
def booking_logs(booking_id: int):
    return jsonify([log_to_json(l) for l in get_booking_logs(booking_id)]), 200


# ---------- advisory conflict check ----------
@booking_bp.post("/check-conflicts")
@login_required
def check_conflicts():
    data = json_object(request.get_json(silent=True))
    room_id = as_int(data.get("room_id"), "room_id", required=True, minimum=1)
    editor_id = as_int(data.get("editor_id"), "editor_id", minimum=1)
    exclude_id = as_int(data.get("exclude_booking_id"), "exclude_booking_id", minimum=1)
    for key in ("booking_date", "from_time", "to_time"):
        if not data.get(key):
            raise ValidationError(f"{key} is required")

    report = detect_conflicts(
        room_id,
        data["booking_date"],
        data["from_time"],
        data["to_time"],
        editor_id=editor_id,
        exclude_booking_id=exclude_id,
    )
    return jsonify(report.to_dict()), 200


# ---------- checked create (optionally repeated) ----------
@booking_bp.post("")
@login_required
def create_booking():
    data = json_object(request.get_json(silent=True))
    repeat_days = data.get("repeat_days") or 0
    allow_conflicts = as_bool(data.get("allow_conflicts", False))
    fields = {k: v for k, v in data.items() if k not in ("repeat_days", "allow_conflicts")}

    results = create_repeated_bookings(
        fields, repeat_days=repeat_days, user_id=current_user_id(), allow_conflicts=allow_conflicts
    )

    bookings = []
    for booking, report in results:
        row = booking_to_json(booking)
        row["warnings"] = _warnings(report)
        bookings.append(row)

    if len(bookings) == 1:
        return jsonify(bookings[0]), 201
    return jsonify(bookings=bookings, count=len(bookings)), 201


@booking_bp.patch("/<int:booking_id>")
@login_required
def update_booking(booking_id: int):
    data = json_object(request.get_json(silent=True))
    allow_conflicts = as_bool(data.pop("allow_conflicts", False))

    booking, report = update_booking_service(
        booking_id, data, user_id=current_user_id(), check_conflicts=True, allow_conflicts=allow_conflicts
    )
    out = booking_to_json(booking)
    if report is not None:
        out["warnings"] = _warnings(report)
    return jsonify(out), 200


@booking_bp.post("/<int:booking_id>/cancel")
@login_required
def cancel_booking(booking_id: int):
    data = json_object(request.get_json(silent=True))
    booking = cancel_booking_service(booking_id, data.get("reason"), user_id=current_user_id())
    return jsonify(booking_to_json(booking)), 200


@booking_bp.post("/resolve-conflict")
@login_required
def resolve_conflict():
    data = json_object(request.get_json(silent=True))
    cancelled = resolve_conflict_service(
        data.get("keep_booking_id"), data.get("cancel_booking_id"), user_id=current_user_id()
    )
    kept = _get_or_404(as_int(data.get("keep_booking_id"), "keep_booking_id", required=True))
    return jsonify(kept=booking_to_json(kept), cancelled=booking_to_json(cancelled)), 200
