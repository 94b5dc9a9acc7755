from flask import Blueprint, request, jsonify

from services.conflicts import find_conflicting_pairs
from services.errors import ValidationError
from services.reports import editor_report, history
from services.timecalc import format_clock
from utils.auth_context import login_required

reports_bp = Blueprint("reports", __name__, url_prefix="/reports")


def _summary(b) -> dict:
    return {
        "id": b.id,
        "room_id": b.room_id,
        "room_name": b.room.name if b.room else None,
        "editor_id": b.editor_id,
        "editor_name": b.editor.name if b.editor else None,
        "project_id": b.project_id,
        "booking_date": b.booking_date.isoformat(),
        "from_time": format_clock(b.from_time),
        "to_time": format_clock(b.to_time),
        "total_hours": b.total_hours,
        "status": b.status,
    }


def _required_range():
    date_from = request.args.get("from")
    date_to = request.args.get("to")
    if not date_from or not date_to:
        raise ValidationError("from and to are required")
    return date_from, date_to


@reports_bp.get("/conflicts")
@login_required
def conflict_report():
    date_from, date_to = _required_range()
    pairs = find_conflicting_pairs(
        date_from,
        date_to,
        room_id=request.args.get("room_id", type=int),
        editor_id=request.args.get("editor_id", type=int),
    )

    out = []
    for first, second, types in pairs:
        out.append({
            "booking_date": first.booking_date.isoformat(),
            "types": types,
            "bookings": [_summary(first), _summary(second)],
        })
    return jsonify(out), 200


@reports_bp.get("/editors")
@login_required
def editors_report():
    date_from, date_to = _required_range()
    rows = editor_report(date_from, date_to, editor_id=request.args.get("editor_id", type=int))
    return jsonify([
        {
            "editor_id": r["editor"].id,
            "editor_name": r["editor"].name,
            "booking_count": len(r["bookings"]),
            "total_hours": r["total_hours"],
            "project_count": r["project_count"],
            "bookings": [_summary(b) for b in r["bookings"]],
        }
        for r in rows
    ]), 200


@reports_bp.get("/history")
@login_required
def history_report():
    rows = history(
        date_from=request.args.get("from"),
        date_to=request.args.get("to"),
        entity_type=(request.args.get("entity_type") or "").strip().lower() or None,
        action=(request.args.get("action") or "").strip().lower() or None,
    )
    for row in rows:
        row["created_at"] = row["created_at"].isoformat()
    return jsonify(rows), 200
