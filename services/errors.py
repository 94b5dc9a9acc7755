class SchedulingError(Exception):
    """Base class for every rejection raised by the engine.

    ``status_code`` is what the API answers with; ``payload`` is merged into
    the JSON error body next to ``error``.
    """
    status_code = 400

    def __init__(self, message: str, **payload):
        super().__init__(message)
        self.message = message
        self.payload = payload

    def to_dict(self) -> dict:
        body = dict(self.payload)
        body["error"] = self.message
        return body


class ValidationError(SchedulingError):
    status_code = 400


class InvalidTimeFormat(ValidationError):
    pass


class NotFound(SchedulingError):
    status_code = 404


class ImmutableRecord(SchedulingError):
    status_code = 409


class AlreadyCancelled(SchedulingError):
    status_code = 409


class PastBookingImmutable(SchedulingError):
    status_code = 403


class BookingConflict(SchedulingError):
    status_code = 409


class DuplicateChalanForBooking(SchedulingError):
    status_code = 409

    def __init__(self, booking_id: int, chalan_id: int):
        super().__init__(
            f"Booking {booking_id} already has a chalan",
            booking_id=booking_id,
            chalan_id=chalan_id,
        )
        self.chalan_id = chalan_id


class NumberingRace(SchedulingError):
    status_code = 503
