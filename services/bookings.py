"""Booking lifecycle: create, update, cancel.

planning / tentative / confirmed are freely re-settable through update;
cancelled is terminal and only reachable through cancel_booking. Every
transition writes exactly one BookingLog row in the same transaction as
the booking change.

create_booking / update_booking do not look at other bookings. The
*_checked variants lock the room (and editor) row, run the conflict
detector and write inside one transaction, so two concurrent requests for
the same resource cannot both pass the check.
"""
import logging
from datetime import timedelta

from flask import current_app
from sqlalchemy import update

from models import db, atomic
from models.booking import Booking, BookingLog, ACTIVE_STATUSES
from models.customer import Customer, CustomerContact, Project
from models.editor import Editor
from models.room import Room
from services import clock
from services.billing import compute_billable_hours
from services.conflicts import detect_conflicts
from services.errors import (
    AlreadyCancelled,
    BookingConflict,
    ImmutableRecord,
    NotFound,
    PastBookingImmutable,
    ValidationError,
)
from services.timecalc import format_clock, to_time
from services.validation import as_int, optional_text, parse_date, require_text

logger = logging.getLogger(__name__)

REQUIRED_ID_FIELDS = ("room_id", "customer_id", "project_id")
OPTIONAL_ID_FIELDS = ("contact_id", "editor_id")
TIME_FIELDS = ("from_time", "to_time", "actual_from_time", "actual_to_time")
BILLING_FIELDS = TIME_FIELDS + ("break_hours",)
SLOT_FIELDS = ("room_id", "editor_id", "booking_date", "from_time", "to_time")


def clean_booking_fields(data: dict, partial: bool = False) -> dict:
    """Validate and coerce request fields. With partial=True only keys present are returned."""
    if not isinstance(data, dict):
        raise ValidationError("Booking payload must be an object")

    out = {}

    def wanted(key):
        return key in data or not partial

    for key in REQUIRED_ID_FIELDS:
        if wanted(key):
            out[key] = as_int(data.get(key), key, required=True, minimum=1)
    for key in OPTIONAL_ID_FIELDS:
        if key in data:
            out[key] = as_int(data.get(key), key, minimum=1)

    if wanted("booking_date"):
        out["booking_date"] = parse_date(data.get("booking_date"), "booking_date")

    for key in ("from_time", "to_time"):
        if wanted(key):
            if not data.get(key):
                raise ValidationError(f"{key} is required")
            out[key] = to_time(data[key])
    for key in ("actual_from_time", "actual_to_time"):
        if key in data:
            out[key] = to_time(data[key]) if data[key] else None

    if "break_hours" in data:
        out["break_hours"] = as_int(data.get("break_hours"), "break_hours", minimum=0) or 0

    if "status" in data:
        status = (data.get("status") or "").strip().lower()
        if status == "cancelled":
            raise ValidationError("Use the cancel operation to cancel a booking")
        if status not in ACTIVE_STATUSES:
            raise ValidationError(f"status must be one of {', '.join(ACTIVE_STATUSES)}")
        out["status"] = status

    if "notes" in data:
        out["notes"] = optional_text(data.get("notes"), "notes")

    return out


def _check_references(values: dict):
    if db.session.get(Room, values["room_id"]) is None:
        raise NotFound("Room not found")
    customer = db.session.get(Customer, values["customer_id"])
    if customer is None:
        raise NotFound("Customer not found")
    project = db.session.get(Project, values["project_id"])
    if project is None:
        raise NotFound("Project not found")
    if project.customer_id != customer.id:
        raise ValidationError("Project does not belong to the customer")
    if values.get("editor_id") and db.session.get(Editor, values["editor_id"]) is None:
        raise NotFound("Editor not found")
    if values.get("contact_id"):
        contact = db.session.get(CustomerContact, values["contact_id"])
        if contact is None or contact.customer_id != customer.id:
            raise NotFound("Contact not found")


def _lock_row(model, row_id):
    # A self-assignment UPDATE takes the row lock on Postgres and the database
    # write lock on SQLite, where FOR UPDATE is not emitted.
    stmt = (
        update(model)
        .where(model.id == row_id)
        .values(ignore_conflict=model.ignore_conflict)
        .execution_options(synchronize_session=False)
    )
    return db.session.execute(stmt).rowcount


def _lock_resources(room_id, editor_id=None):
    # Serializes checked writes per room/editor for the rest of the transaction
    if not _lock_row(Room, room_id):
        raise NotFound("Room not found")
    if editor_id and not _lock_row(Editor, editor_id):
        raise NotFound("Editor not found")


def _blocking(report, allow_conflicts: bool) -> bool:
    if not report.has_conflict or allow_conflicts:
        return False
    return current_app.config.get("BLOCK_ON_CONFLICT", True)


def _raise_conflict(report):
    raise BookingConflict("Booking conflicts with existing bookings", **report.to_dict())


def _write_log(booking_id: int, user_id, action: str, changes: str):
    db.session.add(BookingLog(
        booking_id=booking_id,
        user_id=user_id,
        action=action,
        changes=changes,
        created_at=clock.now(),
    ))


def _billable(values: dict) -> float:
    return compute_billable_hours(
        values["from_time"],
        values["to_time"],
        values.get("actual_from_time"),
        values.get("actual_to_time"),
        values.get("break_hours") or 0,
    )


def _insert(fields: dict, user_id) -> Booking:
    _check_references(fields)

    stamp = clock.now()
    booking = Booking(**fields)
    booking.status = fields.get("status") or "planning"
    booking.break_hours = fields.get("break_hours") or 0
    booking.total_hours = _billable(fields)
    booking.created_at = stamp
    booking.updated_at = stamp
    db.session.add(booking)
    db.session.flush()

    _write_log(booking.id, user_id, "Created", f"Booking created for {booking.booking_date.isoformat()}")
    return booking


def create_booking(data: dict, user_id=None) -> Booking:
    """Persist a booking without consulting the conflict detector."""
    fields = clean_booking_fields(data)
    with atomic():
        booking = _insert(fields, user_id)
    logger.info("Booking %s created for %s (%.1fh)", booking.id, booking.booking_date, booking.total_hours)
    return booking


def _create_checked(fields: dict, user_id, allow_conflicts: bool):
    with atomic():
        _lock_resources(fields["room_id"], fields.get("editor_id"))
        report = detect_conflicts(
            fields["room_id"],
            fields["booking_date"],
            fields["from_time"],
            fields["to_time"],
            editor_id=fields.get("editor_id"),
        )
        if _blocking(report, allow_conflicts):
            _raise_conflict(report)
        booking = _insert(fields, user_id)

    logger.info("Booking %s created for %s (%.1fh)", booking.id, booking.booking_date, booking.total_hours)
    if report.has_conflict:
        logger.warning("Booking %s created with %d conflict(s) allowed", booking.id, len(report.conflicts))
    return booking, report


def create_checked_booking(data: dict, user_id=None, allow_conflicts: bool = False):
    """Detect + create in one transaction. Returns (booking, ConflictReport)."""
    return _create_checked(clean_booking_fields(data), user_id, allow_conflicts)


def create_repeated_bookings(data: dict, repeat_days=0, user_id=None, allow_conflicts: bool = False):
    """
    Expand "repeat for N days" into N+1 independent checked creates on
    consecutive dates. All days are checked up front so a blocking conflict
    on any day rejects the request before the first write.
    """
    max_days = current_app.config.get("MAX_REPEAT_DAYS", 31)
    repeat_days = as_int(repeat_days, "repeat_days", minimum=0) or 0
    if repeat_days > max_days:
        raise ValidationError(f"repeat_days must be <= {max_days}")

    fields = clean_booking_fields(data)
    days = [fields["booking_date"] + timedelta(days=i) for i in range(repeat_days + 1)]

    rejected = []
    for day in days:
        report = detect_conflicts(
            fields["room_id"], day, fields["from_time"], fields["to_time"], editor_id=fields.get("editor_id")
        )
        if _blocking(report, allow_conflicts):
            rejected.append({"booking_date": day.isoformat(), **report.to_dict()})
    if rejected:
        raise BookingConflict("Booking conflicts with existing bookings", has_conflict=True, days=rejected)

    results = []
    for day in days:
        results.append(_create_checked(dict(fields, booking_date=day), user_id, allow_conflicts))
    return results


def _describe(value):
    if value is None:
        return "-"
    if hasattr(value, "strftime") and hasattr(value, "hour") and not hasattr(value, "year"):
        return format_clock(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def update_booking(booking_id: int, changes: dict, user_id=None, check_conflicts: bool = False,
                   allow_conflicts: bool = False):
    """
    Patch a non-cancelled booking. Returns (booking, ConflictReport or None).
    total_hours is recomputed from the merged values whenever a time or the
    break changes.
    """
    fields = clean_booking_fields(changes, partial=True)
    if not fields:
        raise ValidationError("Nothing to update")

    report = None
    with atomic():
        booking = db.session.get(Booking, booking_id, with_for_update=True)
        if booking is None:
            raise NotFound("Booking not found")
        if booking.is_cancelled:
            raise ImmutableRecord("Cannot update a cancelled booking")

        merged = {
            key: fields[key] if key in fields else getattr(booking, key)
            for key in REQUIRED_ID_FIELDS + OPTIONAL_ID_FIELDS + BILLING_FIELDS + ("booking_date",)
        }
        _check_references(merged)

        if check_conflicts and any(key in fields for key in SLOT_FIELDS):
            _lock_resources(merged["room_id"], merged.get("editor_id"))
            report = detect_conflicts(
                merged["room_id"],
                merged["booking_date"],
                merged["from_time"],
                merged["to_time"],
                editor_id=merged.get("editor_id"),
                exclude_booking_id=booking.id,
            )
            if _blocking(report, allow_conflicts):
                _raise_conflict(report)

        changed = []
        for key, value in fields.items():
            old = getattr(booking, key)
            if old != value:
                changed.append(f"{key}: {_describe(old)} -> {_describe(value)}")
                setattr(booking, key, value)

        if any(key in fields for key in BILLING_FIELDS):
            booking.total_hours = _billable(merged)
        booking.updated_at = clock.now()

        summary = "Booking updated"
        if changed:
            summary += " (" + "; ".join(changed) + ")"
        _write_log(booking.id, user_id, "Updated", summary)

    logger.info("Booking %s updated: %s", booking.id, ", ".join(changed) or "no field changes")
    return booking, report


def cancel_booking(booking_id: int, reason, user_id=None) -> Booking:
    reason = require_text(reason, "reason", message="Reason is required", max_len=255)

    with atomic():
        booking = db.session.get(Booking, booking_id, with_for_update=True)
        if booking is None:
            raise NotFound("Booking not found")
        if booking.is_cancelled:
            raise AlreadyCancelled("Booking is already cancelled")

        stamp = clock.now()
        if booking.booking_date < stamp.date():
            raise PastBookingImmutable(
                "Cannot cancel past bookings. Only current date and future bookings can be cancelled."
            )

        booking.status = "cancelled"
        booking.cancel_reason = reason
        booking.cancelled_at = stamp
        booking.updated_at = stamp
        _write_log(booking.id, user_id, "Cancelled", f"Reason: {reason}")

    logger.info("Booking %s cancelled: %s", booking.id, reason)
    return booking


def get_booking_logs(booking_id: int):
    if db.session.get(Booking, booking_id) is None:
        raise NotFound("Booking not found")
    return (
        BookingLog.query
        .filter_by(booking_id=booking_id)
        .order_by(BookingLog.created_at.asc(), BookingLog.id.asc())
        .all()
    )
