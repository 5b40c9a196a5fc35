from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime, date
from decimal import Decimal
from enum import Enum

class BookingStatus(str, Enum):
    """Booking status enumeration"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    EXPIRED = "expired"

TERMINAL_STATUSES = frozenset({
    BookingStatus.COMPLETED,
    BookingStatus.CANCELLED,
    BookingStatus.EXPIRED,
})

ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED, BookingStatus.EXPIRED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.EXPIRED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.EXPIRED: frozenset(),
}

class VerificationReason(str, Enum):
    """Primary reason reported by a token verification"""
    VALID = "valid"
    EXPIRED = "expired"
    STATUS_MISMATCH = "status_mismatch"
    NOT_FOUND = "not_found"

class GuestCounts(BaseModel):
    """Head count per ticket category"""
    adults: int = 1
    children: int = 0
    foreigners: int = 0

    @property
    def total(self) -> int:
        return self.adults + self.children + self.foreigners

class CredentialCandidate(BaseModel):
    """A validated booking waiting for the store to assign id and token"""
    owner_ref: str
    visited_entity_ref: str
    visited_entity_name: Optional[str] = None
    visit_date: date
    guests: GuestCounts
    total_amount: Decimal
    expiry_date: date
    status: BookingStatus = BookingStatus.CONFIRMED

class Credential(BaseModel):
    """A persisted booking bound to its unique token"""
    id: int
    owner_ref: str
    visited_entity_ref: str
    visited_entity_name: Optional[str] = None
    visit_date: date
    guests: GuestCounts
    total_amount: Decimal
    token: str
    status: BookingStatus
    qr_code_url: Optional[str] = None
    expiry_date: date
    created_at: datetime

class QRPayload(BaseModel):
    """Convenience copy of the display fields printed into the QR image"""
    booking_id: int
    token: str
    monument_name: str
    visit_date: date
    total_amount: Decimal
    guests: int

    def to_json_dict(self) -> dict:
        return {
            "bookingId": self.booking_id,
            "token": self.token,
            "monumentName": self.monument_name,
            "visitDate": self.visit_date.isoformat(),
            "totalAmount": str(self.total_amount),
            "guests": self.guests,
        }

class VerificationResult(BaseModel):
    """Outcome of verifying a presented token"""
    valid: bool
    reason: VerificationReason
    message: str
    is_expired: bool = False
    status: Optional[BookingStatus] = None
    booking: Optional[Credential] = None

# Request / Response Models
class BookingCreateRequest(BaseModel):
    """Request to book a monument visit"""
    monument_id: int
    visit_date: date
    number_of_adults: int = 1
    number_of_children: int = 0
    number_of_foreigners: int = 0
    total_amount: Optional[Decimal] = Field(
        None, description="Caller-computed amount; quoted from the catalog when omitted"
    )

    @property
    def guests(self) -> GuestCounts:
        return GuestCounts(
            adults=self.number_of_adults,
            children=self.number_of_children,
            foreigners=self.number_of_foreigners,
        )

class BookingCreatedResponse(BaseModel):
    message: str = "Booking created successfully"
    booking: Credential

class SweepResult(BaseModel):
    expired_count: int
    swept_at: datetime
