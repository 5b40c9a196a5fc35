"""
Booking & Ticketing Module

Issues time-bound, uniquely tokenized admission credentials for monument
visits and verifies them at the gate.

Key Components:
- token_service.py: fixed-length random booking tokens
- qr_service.py: QR code data URLs carrying the booking's display fields
- store.py: booking storage with token uniqueness and status transitions
- booking_service.py: creation, verification, transitions and expiry sweep
- router.py: FastAPI endpoints for booking and verification (imported by main)
- schemas.py: Pydantic models for credentials and verification results
"""

from .booking_service import BookingService
from .qr_service import QRCodeEncoder
from .store import BookingStore, InMemoryBookingStore, SqlBookingStore
from .token_service import TokenGenerator
from .exceptions import (
    BookingError, BookingValidationError, BookingNotFound, InvalidTransition,
    TokenSpaceExhausted, EntropySourceUnavailable, EncodingFailure, StoreUnavailable
)
from .schemas import (
    BookingStatus, Credential, GuestCounts, VerificationReason, VerificationResult
)

__all__ = [
    "BookingService",
    "QRCodeEncoder",
    "BookingStore",
    "InMemoryBookingStore",
    "SqlBookingStore",
    "TokenGenerator",
    "BookingError",
    "BookingValidationError",
    "BookingNotFound",
    "InvalidTransition",
    "TokenSpaceExhausted",
    "EntropySourceUnavailable",
    "EncodingFailure",
    "StoreUnavailable",
    "BookingStatus",
    "Credential",
    "GuestCounts",
    "VerificationReason",
    "VerificationResult",
]
