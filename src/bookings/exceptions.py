"""
Error taxonomy for the booking credential lifecycle.

Every error carries a machine-readable ``kind`` so the HTTP layer can map it
to a status code without string matching.
"""

from typing import Optional


class BookingError(Exception):
    kind = "booking_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class BookingValidationError(BookingError):
    """Caller input is malformed (dates, guest counts, amounts)."""

    kind = "validation_error"

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["field"] = self.field
        return data


class BookingNotFound(BookingError):
    kind = "not_found"

    def __init__(self, message: str = "Booking not found", token: Optional[str] = None, booking_id: Optional[int] = None):
        super().__init__(message)
        self.token = token
        self.booking_id = booking_id


class InvalidTransition(BookingError):
    kind = "invalid_transition"

    def __init__(self, current, target):
        current_value = getattr(current, "value", current)
        target_value = getattr(target, "value", target)
        super().__init__(f"Cannot move booking from '{current_value}' to '{target_value}'")
        self.current = current
        self.target = target


class TokenSpaceExhausted(BookingError):
    """Every attempt collided; the token length or entropy source is misconfigured."""

    kind = "token_space_exhausted"

    def __init__(self, attempts: int):
        super().__init__(f"Could not allocate a unique booking token after {attempts} attempts")
        self.attempts = attempts


class EntropySourceUnavailable(BookingError):
    kind = "entropy_source_unavailable"


class EncodingFailure(BookingError):
    """QR rendering failed. Absorbed by the lifecycle manager."""

    kind = "encoding_failure"


class StoreUnavailable(BookingError):
    """Storage fault; the caller may retry the whole request."""

    kind = "store_unavailable"
