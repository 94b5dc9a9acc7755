"""Chalan numbering and the append-only revision ledger.

Numbers are CH{YY}{MM}-{SEQ}: YY/MM from the chalan's own date, SEQ the
highest existing suffix for that prefix plus one, zero-padded to two
digits. Nothing reserves a number up front; the unique constraint on
chalan_number catches concurrent creators and the loser recomputes.
Revision numbers follow the same recompute-and-retry pattern per chalan.

A cancelled chalan is terminal: no edits, no revisions, no second cancel.
"""
import logging

from flask import current_app
from sqlalchemy.exc import IntegrityError

from models import db, atomic
from models.booking import Booking
from models.chalan import Chalan, ChalanItem, ChalanRevision
from models.customer import Customer, Project
from services import clock
from services.errors import (
    AlreadyCancelled,
    DuplicateChalanForBooking,
    ImmutableRecord,
    NotFound,
    NumberingRace,
    ValidationError,
)
from services.validation import as_int, optional_text, parse_date, require_text
from utils.audit import log_event

logger = logging.getLogger(__name__)

CHALAN_PREFIX = "CH"


def chalan_prefix(chalan_date) -> str:
    day = parse_date(chalan_date, "chalan_date")
    return f"{CHALAN_PREFIX}{day:%y%m}-"


def next_chalan_number(chalan_date) -> str:
    prefix = chalan_prefix(chalan_date)
    rows = (
        db.session.query(Chalan.chalan_number)
        .filter(Chalan.chalan_number.like(prefix + "%"))
        .all()
    )

    max_seq = 0
    for (number,) in rows:
        seq = number.split("-", 1)[1] if "-" in number else ""
        if seq.isascii() and seq.isdigit():
            max_seq = max(max_seq, int(seq))
    return f"{prefix}{max_seq + 1:02d}"


def _with_numbering_retry(operation, label: str):
    """Run operation() in its own transaction, retrying on unique-constraint collisions."""
    attempts = max(1, int(current_app.config.get("NUMBERING_MAX_ATTEMPTS", 5)))
    for attempt in range(1, attempts + 1):
        try:
            with atomic():
                return operation()
        except IntegrityError as exc:
            logger.warning("%s numbering collided (attempt %d/%d): %s", label, attempt, attempts, exc.orig)
    raise NumberingRace(f"Could not allocate a {label} number, please retry")


def ensure_booking_unbilled(booking_id: int, exclude_chalan_id=None):
    q = Chalan.query.filter(Chalan.booking_id == booking_id, Chalan.is_cancelled.is_(False))
    if exclude_chalan_id:
        q = q.filter(Chalan.id != exclude_chalan_id)
    existing = q.order_by(Chalan.id.asc()).first()
    if existing is not None:
        raise DuplicateChalanForBooking(booking_id, existing.id)


def clean_items(items) -> list:
    if not isinstance(items, list):
        raise ValidationError("items must be a list")

    recompute = current_app.config.get("CHALAN_RECOMPUTE_ITEM_AMOUNTS", False)
    out = []
    for index, raw in enumerate(items, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"item {index} must be an object")
        quantity = as_int(raw.get("quantity"), f"item {index} quantity")
        rate = as_int(raw.get("rate"), f"item {index} rate")
        amount = as_int(raw.get("amount"), f"item {index} amount")
        quantity = 1 if quantity is None else quantity
        rate = rate or 0
        if recompute:
            amount = quantity * rate
        out.append({
            "description": require_text(raw.get("description"), f"item {index} description", max_len=255),
            "quantity": quantity,
            "rate": rate,
            "amount": amount or 0,
        })
    return out


def clean_chalan_fields(data: dict, partial: bool = False) -> dict:
    if not isinstance(data, dict):
        raise ValidationError("Chalan payload must be an object")

    out = {}
    for key in ("customer_id", "project_id"):
        if key in data or not partial:
            out[key] = as_int(data.get(key), key, required=True, minimum=1)
    if "booking_id" in data:
        out["booking_id"] = as_int(data.get("booking_id"), "booking_id", minimum=1)
    if "chalan_date" in data or not partial:
        out["chalan_date"] = parse_date(data.get("chalan_date"), "chalan_date")
    if "notes" in data:
        out["notes"] = optional_text(data.get("notes"), "notes")
    return out


def _check_references(values: dict) -> Project:
    if db.session.get(Customer, values["customer_id"]) is None:
        raise NotFound("Customer not found")
    project = db.session.get(Project, values["project_id"])
    if project is None:
        raise NotFound("Project not found")
    if project.customer_id != values["customer_id"]:
        raise ValidationError("Project does not belong to the customer")

    if values.get("booking_id"):
        booking = db.session.get(Booking, values["booking_id"])
        if booking is None:
            raise NotFound("Booking not found")
        if booking.is_cancelled:
            raise ValidationError("Cannot bill a cancelled booking")
    return project


def _lock_chalan(chalan_id: int) -> Chalan:
    chalan = db.session.get(Chalan, chalan_id, with_for_update=True)
    if chalan is None:
        raise NotFound("Chalan not found")
    return chalan


def _append_revision(chalan: Chalan, changes: str, user_id=None) -> ChalanRevision:
    current = (
        db.session.query(db.func.max(ChalanRevision.revision_number))
        .filter(ChalanRevision.chalan_id == chalan.id)
        .scalar()
    ) or 0
    revision = ChalanRevision(
        chalan_id=chalan.id,
        revision_number=current + 1,
        changes=changes,
        revised_by=user_id,
        created_at=clock.now(),
    )
    db.session.add(revision)
    db.session.flush()
    return revision


def create_chalan(data: dict, items=None, user_id=None) -> Chalan:
    fields = clean_chalan_fields(data)
    line_items = clean_items(items if items is not None else [])

    def _insert():
        project = _check_references(fields)
        if fields.get("booking_id"):
            ensure_booking_unbilled(fields["booking_id"])

        chalan = Chalan(
            chalan_number=next_chalan_number(fields["chalan_date"]),
            total_amount=sum(item["amount"] for item in line_items),
            created_at=clock.now(),
            **fields,
        )
        chalan.items = [ChalanItem(**item) for item in line_items]
        db.session.add(chalan)
        project.has_chalan_created = True
        db.session.flush()

        log_event(
            "CHALAN_CREATE",
            user_id=user_id,
            entity="chalan",
            entity_id=chalan.id,
            metadata={"chalan_number": chalan.chalan_number, "booking_id": chalan.booking_id},
        )
        return chalan

    chalan = _with_numbering_retry(_insert, "chalan")
    logger.info("Chalan %s created (%d item(s), total %s)", chalan.chalan_number, len(line_items), chalan.total_amount)
    return chalan


def update_chalan(chalan_id: int, changes: dict, items=None, user_id=None, change_text=None) -> Chalan:
    """
    Patch scalar fields and/or replace the whole item set, appending one
    revision for the edit. The chalan number never changes, even when the
    date moves to another month.
    """
    fields = clean_chalan_fields(changes or {}, partial=True)
    line_items = clean_items(items) if items is not None else None
    change_text = optional_text(change_text, "changes")
    if not fields and line_items is None:
        raise ValidationError("Nothing to update")

    def _apply():
        chalan = _lock_chalan(chalan_id)
        if chalan.is_cancelled:
            raise ImmutableRecord("Cannot update a cancelled chalan")

        merged = {
            "customer_id": fields.get("customer_id", chalan.customer_id),
            "project_id": fields.get("project_id", chalan.project_id),
            "booking_id": fields.get("booking_id", chalan.booking_id),
        }
        project = _check_references(merged)
        if merged["booking_id"] and merged["booking_id"] != chalan.booking_id:
            ensure_booking_unbilled(merged["booking_id"], exclude_chalan_id=chalan.id)

        summary = []
        for key, value in fields.items():
            old = getattr(chalan, key)
            if old != value:
                summary.append(f"{key}: {old} -> {value}")
                setattr(chalan, key, value)

        if line_items is not None:
            chalan.items = [ChalanItem(**item) for item in line_items]
            new_total = sum(item["amount"] for item in line_items)
            summary.append(f"items replaced ({len(line_items)}), total {chalan.total_amount} -> {new_total}")
            chalan.total_amount = new_total

        project.has_chalan_created = True
        _append_revision(chalan, change_text or "Updated: " + ("; ".join(summary) or "no field changes"), user_id)
        return chalan

    chalan = _with_numbering_retry(_apply, "revision")
    logger.info("Chalan %s updated", chalan.chalan_number)
    return chalan


def cancel_chalan(chalan_id: int, reason, user_id=None) -> Chalan:
    reason = require_text(reason, "reason", message="Reason is required", max_len=255)

    def _cancel():
        chalan = _lock_chalan(chalan_id)
        if chalan.is_cancelled:
            raise AlreadyCancelled("Chalan is already cancelled")
        _append_revision(chalan, f"Cancelled. Reason: {reason}", user_id)
        chalan.is_cancelled = True
        chalan.cancel_reason = reason
        return chalan

    chalan = _with_numbering_retry(_cancel, "revision")
    logger.info("Chalan %s cancelled: %s", chalan.chalan_number, reason)
    return chalan


def create_revision(chalan_id: int, changes, user_id=None) -> ChalanRevision:
    changes = require_text(changes, "changes", message="Changes description is required")

    def _revise():
        chalan = _lock_chalan(chalan_id)
        if chalan.is_cancelled:
            raise ImmutableRecord("Cannot revise a cancelled chalan")
        return _append_revision(chalan, changes, user_id)

    revision = _with_numbering_retry(_revise, "revision")
    logger.info("Chalan %s revision %s recorded", chalan_id, revision.revision_number)
    return revision


def get_revisions(chalan_id: int):
    if db.session.get(Chalan, chalan_id) is None:
        raise NotFound("Chalan not found")
    return (
        ChalanRevision.query
        .filter_by(chalan_id=chalan_id)
        .order_by(ChalanRevision.revision_number.asc())
        .all()
    )
