from flask import Blueprint, request, jsonify, g

from models import db
from models.editor import Editor, EditorLeave
from security.rbac import require_roles
from services.errors import NotFound, ValidationError
from services.validation import as_int, json_object, optional_text, parse_date
from utils.audit import log_event
from utils.auth_context import login_required

leaves_bp = Blueprint("leaves", __name__, url_prefix="/editor-leaves")


def leave_to_json(leave: EditorLeave) -> dict:
    return {
        "id": leave.id,
        "editor_id": leave.editor_id,
        "editor_name": leave.editor.name if leave.editor else None,
        "from_date": leave.from_date.isoformat(),
        "to_date": leave.to_date.isoformat(),
        "reason": leave.reason,
    }


def _check_range(from_date, to_date):
    if to_date < from_date:
        raise ValidationError("to_date must be on or after from_date")


@leaves_bp.get("")
@login_required
def list_leaves():
    q = EditorLeave.query
    editor_id = request.args.get("editor_id", type=int)
    if editor_id:
        q = q.filter_by(editor_id=editor_id)
    # leaves overlapping the window
    if request.args.get("from"):
        q = q.filter(EditorLeave.to_date >= parse_date(request.args["from"], "from"))
    if request.args.get("to"):
        q = q.filter(EditorLeave.from_date <= parse_date(request.args["to"], "to"))

    rows = q.order_by(EditorLeave.from_date.asc(), EditorLeave.id.asc()).all()
    return jsonify([leave_to_json(r) for r in rows]), 200


@leaves_bp.post("")
@require_roles("ADMIN")
def create_leave():
    data = json_object(request.get_json(silent=True))
    editor_id = as_int(data.get("editor_id"), "editor_id", required=True, minimum=1)
    if not db.session.get(Editor, editor_id):
        raise NotFound("Editor not found")

    from_date = parse_date(data.get("from_date"), "from_date")
    to_date = parse_date(data.get("to_date"), "to_date")
    _check_range(from_date, to_date)

    leave = EditorLeave(
        editor_id=editor_id,
        from_date=from_date,
        to_date=to_date,
        reason=optional_text(data.get("reason"), "reason", max_len=255),
    )
    db.session.add(leave)
    db.session.flush()
    log_event("LEAVE_CREATE", user_id=g.user.id, entity="editor_leave", entity_id=leave.id,
              metadata={"editor_id": editor_id})
    db.session.commit()
    return jsonify(leave_to_json(leave)), 201


@leaves_bp.patch("/<int:leave_id>")
@require_roles("ADMIN")
def update_leave(leave_id: int):
    data = json_object(request.get_json(silent=True))
    leave = db.session.get(EditorLeave, leave_id)
    if not leave:
        raise NotFound("Leave not found")

    if "from_date" in data:
        leave.from_date = parse_date(data.get("from_date"), "from_date")
    if "to_date" in data:
        leave.to_date = parse_date(data.get("to_date"), "to_date")
    if "reason" in data:
        leave.reason = optional_text(data.get("reason"), "reason", max_len=255)
    _check_range(leave.from_date, leave.to_date)

    log_event("LEAVE_UPDATE", user_id=g.user.id, entity="editor_leave", entity_id=leave.id, metadata=data)
    db.session.commit()
    return jsonify(leave_to_json(leave)), 200


@leaves_bp.delete("/<int:leave_id>")
@require_roles("ADMIN")
def delete_leave(leave_id: int):
    leave = db.session.get(EditorLeave, leave_id)
    if not leave:
        raise NotFound("Leave not found")

    db.session.delete(leave)
    log_event("LEAVE_DELETE", user_id=g.user.id, entity="editor_leave", entity_id=leave_id)
    db.session.commit()
    return jsonify(message="Leave deleted"), 200
