from flask import Blueprint, request, jsonify

from models import db
from models.chalan import Chalan
from services.chalans import (
    cancel_chalan as cancel_chalan_service,
    create_chalan as create_chalan_service,
    create_revision,
    get_revisions,
    update_chalan as update_chalan_service,
)
from services.errors import NotFound
from services.validation import json_object, parse_date
from utils.auth_context import login_required, current_user_id

chalan_bp = Blueprint("chalans", __name__, url_prefix="/chalans")

DELETE_REASON = "Deleted"


def revision_to_json(rev) -> dict:
    return {
        "id": rev.id,
        "chalan_id": rev.chalan_id,
        "revision_number": rev.revision_number,
        "changes": rev.changes,
        "revised_by": rev.revised_by,
        "created_at": rev.created_at.isoformat(),
    }


def chalan_to_json(c: Chalan, with_revisions: bool = False) -> dict:
    out = {
        "id": c.id,
        "chalan_number": c.chalan_number,
        "customer_id": c.customer_id,
        "customer_name": c.customer.name if c.customer else None,
        "project_id": c.project_id,
        "project_name": c.project.name if c.project else None,
        "booking_id": c.booking_id,
        "chalan_date": c.chalan_date.isoformat(),
        "total_amount": c.total_amount,
        "is_cancelled": c.is_cancelled,
        "cancel_reason": c.cancel_reason,
        "notes": c.notes,
        "created_at": c.created_at.isoformat() if c.created_at else None,
        "items": [
            {
                "id": i.id,
                "description": i.description,
                "quantity": i.quantity,
                "rate": i.rate,
                "amount": i.amount,
            }
            for i in c.items
        ],
    }
    if with_revisions:
        out["revisions"] = [revision_to_json(r) for r in c.revisions]
    return out


def _get_or_404(chalan_id: int) -> Chalan:
    chalan = db.session.get(Chalan, chalan_id)
    if chalan is None:
        raise NotFound("Chalan not found")
    return chalan


@chalan_bp.get("")
@login_required
def list_chalans():
    q = Chalan.query
    if request.args.get("from"):
        q = q.filter(Chalan.chalan_date >= parse_date(request.args["from"], "from"))
    if request.args.get("to"):
        q = q.filter(Chalan.chalan_date <= parse_date(request.args["to"], "to"))
    customer_id = request.args.get("customer_id", type=int)
    if customer_id:
        q = q.filter(Chalan.customer_id == customer_id)

    rows = q.order_by(Chalan.chalan_date.desc(), Chalan.id.desc()).all()
    return jsonify([chalan_to_json(c) for c in rows]), 200


@chalan_bp.get("/<int:chalan_id>")
@login_required
def get_chalan(chalan_id: int):
    return jsonify(chalan_to_json(_get_or_404(chalan_id), with_revisions=True)), 200


@chalan_bp.get("/<int:chalan_id>/revisions")
@login_required
def list_revisions(chalan_id: int):
    return jsonify([revision_to_json(r) for r in get_revisions(chalan_id)]), 200


@chalan_bp.get("/by-booking/<int:booking_id>")
@login_required
def chalan_for_booking(booking_id: int):
    chalan = (
        Chalan.query
        .filter(Chalan.booking_id == booking_id, Chalan.is_cancelled.is_(False))
        .order_by(Chalan.id.desc())
        .first()
    )
    if chalan is None:
        raise NotFound("No chalan for this booking")
    return jsonify(chalan_to_json(chalan)), 200


@chalan_bp.post("")
@login_required
def create_chalan():
    data = json_object(request.get_json(silent=True))
    items = data.get("items")
    fields = {k: v for k, v in data.items() if k != "items"}

    chalan = create_chalan_service(fields, items=items, user_id=current_user_id())
    return jsonify(chalan_to_json(chalan, with_revisions=True)), 201


@chalan_bp.patch("/<int:chalan_id>")
@login_required
def update_chalan(chalan_id: int):
    data = json_object(request.get_json(silent=True))
    items = data.get("items")
    change_text = data.get("changes")
    fields = {k: v for k, v in data.items() if k not in ("items", "changes")}

    chalan = update_chalan_service(
        chalan_id, fields, items=items, user_id=current_user_id(), change_text=change_text
    )
    return jsonify(chalan_to_json(chalan, with_revisions=True)), 200


@chalan_bp.post("/<int:chalan_id>/cancel")
@login_required
def cancel_chalan(chalan_id: int):
    data = json_object(request.get_json(silent=True))
    chalan = cancel_chalan_service(chalan_id, data.get("reason"), user_id=current_user_id())
    return jsonify(chalan_to_json(chalan, with_revisions=True)), 200


@chalan_bp.delete("/<int:chalan_id>")
@login_required
def delete_chalan(chalan_id: int):
    # chalans are never hard-deleted
    cancel_chalan_service(chalan_id, DELETE_REASON, user_id=current_user_id())
    return jsonify(message="Chalan cancelled"), 200


@chalan_bp.post("/<int:chalan_id>/revise")
@login_required
def revise_chalan(chalan_id: int):
    data = json_object(request.get_json(silent=True))
    revision = create_revision(chalan_id, data.get("changes"), user_id=current_user_id())
    return jsonify(revision_to_json(revision)), 201
