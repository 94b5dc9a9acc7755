import logging

from models import db
from models.booking import Booking
from services.bookings import cancel_booking
from services.errors import NotFound, ValidationError
from services.validation import as_int

logger = logging.getLogger(__name__)

CONFLICT_RESOLUTION_REASON = "Cancelled due to Conflict Resolution"


def resolve_conflict(keep_booking_id, cancel_booking_id, user_id=None) -> Booking:
    """
    Keep one booking of a conflicting pair and cancel the other.

    The kept booking is left exactly as it is (no auto-confirm). Resolving
    against an already-cancelled loser raises AlreadyCancelled.
    """
    keep_id = as_int(keep_booking_id, "keep_booking_id", required=True, minimum=1)
    cancel_id = as_int(cancel_booking_id, "cancel_booking_id", required=True, minimum=1)
    if keep_id == cancel_id:
        raise ValidationError("keep_booking_id and cancel_booking_id must differ")

    kept = db.session.get(Booking, keep_id)
    if kept is None:
        raise NotFound("Booking to keep not found")
    if kept.is_cancelled:
        raise ValidationError("Booking to keep is already cancelled")

    cancelled = cancel_booking(cancel_id, CONFLICT_RESOLUTION_REASON, user_id=user_id)
    logger.info("Conflict resolved: kept booking %s, cancelled booking %s", keep_id, cancel_id)
    return cancelled
