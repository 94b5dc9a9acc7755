from flask import Blueprint, request, jsonify, g

from models import db
from models.customer import Customer, CustomerContact, Project, PROJECT_TYPES
from models.editor import Editor, EDITOR_TYPES
from models.room import Room, ROOM_TYPES
from security.rbac import require_roles
from services.errors import NotFound, ValidationError
from services.validation import as_bool, as_int, json_object, optional_text, parse_date, require_text
from utils.audit import log_event
from utils.auth_context import login_required

masters_bp = Blueprint("masters", __name__)


def room_to_json(r: Room) -> dict:
    return {
        "id": r.id,
        "name": r.name,
        "room_type": r.room_type,
        "capacity": r.capacity,
        "ignore_conflict": r.ignore_conflict,
        "is_active": r.is_active,
    }


def editor_to_json(e: Editor) -> dict:
    return {
        "id": e.id,
        "name": e.name,
        "editor_type": e.editor_type,
        "phone": e.phone,
        "email": e.email,
        "join_date": e.join_date.isoformat() if e.join_date else None,
        "leave_date": e.leave_date.isoformat() if e.leave_date else None,
        "ignore_conflict": e.ignore_conflict,
        "is_active": e.is_active,
    }


def customer_to_json(c: Customer) -> dict:
    return {
        "id": c.id,
        "name": c.name,
        "company_name": c.company_name,
        "phone": c.phone,
        "email": c.email,
        "gst_number": c.gst_number,
        "is_active": c.is_active,
        "contacts": [
            {
                "id": ct.id,
                "name": ct.name,
                "phone": ct.phone,
                "email": ct.email,
                "designation": ct.designation,
                "is_primary": ct.is_primary,
            }
            for ct in c.contacts
        ],
    }


def project_to_json(p: Project) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "customer_id": p.customer_id,
        "project_type": p.project_type,
        "description": p.description,
        "has_chalan_created": p.has_chalan_created,
        "is_active": p.is_active,
    }


def _choice(value, field: str, choices, default=None):
    value = (value or default or "").strip().lower()
    if value not in choices:
        raise ValidationError(f"{field} must be one of {', '.join(choices)}")
    return value


def _apply_flags(row, data: dict):
    for flag in ("ignore_conflict", "is_active"):
        if flag in data:
            setattr(row, flag, as_bool(data[flag]))


# ---------- rooms ----------
@masters_bp.get("/rooms")
@login_required
def list_rooms():
    q = Room.query
    if not as_bool(request.args.get("include_inactive", "false")):
        q = q.filter_by(is_active=True)
    return jsonify([room_to_json(r) for r in q.order_by(Room.name.asc()).all()]), 200


@masters_bp.post("/rooms")
@require_roles("ADMIN")
def create_room():
    data = json_object(request.get_json(silent=True))
    room = Room(
        name=require_text(data.get("name"), "name", max_len=120),
        room_type=_choice(data.get("room_type"), "room_type", ROOM_TYPES, default="editing"),
        capacity=as_int(data.get("capacity"), "capacity", minimum=1) or 1,
    )
    _apply_flags(room, data)
    db.session.add(room)
    db.session.flush()
    log_event("ROOM_CREATE", user_id=g.user.id, entity="room", entity_id=room.id)
    db.session.commit()
    return jsonify(room_to_json(room)), 201


@masters_bp.patch("/rooms/<int:room_id>")
@require_roles("ADMIN")
def update_room(room_id: int):
    data = json_object(request.get_json(silent=True))
    room = db.session.get(Room, room_id)
    if not room:
        raise NotFound("Room not found")

    if "name" in data:
        room.name = require_text(data.get("name"), "name", max_len=120)
    if "room_type" in data:
        room.room_type = _choice(data.get("room_type"), "room_type", ROOM_TYPES)
    if "capacity" in data:
        room.capacity = as_int(data.get("capacity"), "capacity", minimum=1)
    _apply_flags(room, data)

    log_event("ROOM_UPDATE", user_id=g.user.id, entity="room", entity_id=room.id, metadata=data)
    db.session.commit()
    return jsonify(room_to_json(room)), 200


# ---------- editors ----------
@masters_bp.get("/editors")
@login_required
def list_editors():
    q = Editor.query
    if not as_bool(request.args.get("include_inactive", "false")):
        q = q.filter_by(is_active=True)
    return jsonify([editor_to_json(e) for e in q.order_by(Editor.name.asc()).all()]), 200


@masters_bp.post("/editors")
@require_roles("ADMIN")
def create_editor():
    data = json_object(request.get_json(silent=True))
    editor = Editor(
        name=require_text(data.get("name"), "name", max_len=120),
        editor_type=_choice(data.get("editor_type"), "editor_type", EDITOR_TYPES, default="video"),
        phone=optional_text(data.get("phone"), "phone", max_len=30),
        email=optional_text(data.get("email"), "email", max_len=255),
        join_date=parse_date(data["join_date"], "join_date") if data.get("join_date") else None,
        leave_date=parse_date(data["leave_date"], "leave_date") if data.get("leave_date") else None,
    )
    _apply_flags(editor, data)
    db.session.add(editor)
    db.session.flush()
    log_event("EDITOR_CREATE", user_id=g.user.id, entity="editor", entity_id=editor.id)
    db.session.commit()
    return jsonify(editor_to_json(editor)), 201


@masters_bp.patch("/editors/<int:editor_id>")
@require_roles("ADMIN")
def update_editor(editor_id: int):
    data = json_object(request.get_json(silent=True))
    editor = db.session.get(Editor, editor_id)
    if not editor:
        raise NotFound("Editor not found")

    if "name" in data:
        editor.name = require_text(data.get("name"), "name", max_len=120)
    if "editor_type" in data:
        editor.editor_type = _choice(data.get("editor_type"), "editor_type", EDITOR_TYPES)
    for key in ("phone", "email"):
        if key in data:
            setattr(editor, key, optional_text(data.get(key), key, max_len=255))
    for key in ("join_date", "leave_date"):
        if key in data:
            setattr(editor, key, parse_date(data[key], key) if data[key] else None)
    _apply_flags(editor, data)

    log_event("EDITOR_UPDATE", user_id=g.user.id, entity="editor", entity_id=editor.id, metadata=data)
    db.session.commit()
    return jsonify(editor_to_json(editor)), 200


# ---------- customers / projects ----------
@masters_bp.get("/customers")
@login_required
def list_customers():
    rows = Customer.query.filter_by(is_active=True).order_by(Customer.name.asc()).all()
    return jsonify([customer_to_json(c) for c in rows]), 200


@masters_bp.post("/customers")
@require_roles("ADMIN")
def create_customer():
    data = json_object(request.get_json(silent=True))
    customer = Customer(
        name=require_text(data.get("name"), "name", max_len=160),
        company_name=optional_text(data.get("company_name"), "company_name", max_len=160),
        address=optional_text(data.get("address"), "address"),
        phone=optional_text(data.get("phone"), "phone", max_len=30),
        email=optional_text(data.get("email"), "email", max_len=255),
        gst_number=optional_text(data.get("gst_number"), "gst_number", max_len=30),
    )
    for raw in data.get("contacts") or []:
        customer.contacts.append(CustomerContact(
            name=require_text(raw.get("name"), "contact name", max_len=120),
            phone=optional_text(raw.get("phone"), "contact phone", max_len=30),
            email=optional_text(raw.get("email"), "contact email", max_len=255),
            designation=optional_text(raw.get("designation"), "designation", max_len=80),
            is_primary=as_bool(raw.get("is_primary", False)),
        ))
    db.session.add(customer)
    db.session.flush()
    log_event("CUSTOMER_CREATE", user_id=g.user.id, entity="customer", entity_id=customer.id)
    db.session.commit()
    return jsonify(customer_to_json(customer)), 201


@masters_bp.get("/projects")
@login_required
def list_projects():
    q = Project.query.filter_by(is_active=True)
    customer_id = request.args.get("customer_id", type=int)
    if customer_id:
        q = q.filter_by(customer_id=customer_id)
    return jsonify([project_to_json(p) for p in q.order_by(Project.name.asc()).all()]), 200


@masters_bp.post("/projects")
@require_roles("ADMIN")
def create_project():
    data = json_object(request.get_json(silent=True))
    customer_id = as_int(data.get("customer_id"), "customer_id", required=True)
    if not db.session.get(Customer, customer_id):
        raise NotFound("Customer not found")

    project = Project(
        name=require_text(data.get("name"), "name", max_len=160),
        customer_id=customer_id,
        project_type=_choice(data.get("project_type"), "project_type", PROJECT_TYPES, default="movie"),
        description=optional_text(data.get("description"), "description"),
    )
    db.session.add(project)
    db.session.flush()
    log_event("PROJECT_CREATE", user_id=g.user.id, entity="project", entity_id=project.id)
    db.session.commit()
    return jsonify(project_to_json(project)), 201
