from typing import Callable, List, Optional, Union
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, InvalidOperation
from zoneinfo import ZoneInfo
import logging

from src.bookings.exceptions import (
    BookingNotFound, BookingValidationError, EncodingFailure, InvalidTransition, StoreUnavailable
)
from src.bookings.qr_service import QRCodeEncoder
from src.bookings.schemas import (
    BookingStatus, Credential, CredentialCandidate, GuestCounts, QRPayload,
    TERMINAL_STATUSES, VerificationReason, VerificationResult
)
from src.bookings.store import BookingStore

logger = logging.getLogger(__name__)

EXPIRY_GRACE = timedelta(days=1)

# bookings.total_amount is Numeric(10, 2)
AMOUNT_QUANTUM = Decimal("0.01")
AMOUNT_LIMIT = Decimal("1e8")

INITIAL_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

class BookingService:
    """Issues, verifies and transitions monument booking credentials.

    Expiry convention: ``visit_date`` is a naive calendar date and
    ``expiry_date = visit_date + 1 day``. The credential expires once
    ``now`` is strictly later than ``expiry_date`` 00:00:00 in the configured
    booking timezone, so midnight itself still admits.
    """

    def __init__(
        self,
        store: BookingStore,
        encoder: QRCodeEncoder,
        clock: Callable[[], datetime] = utc_now,
        tz: Union[str, ZoneInfo] = "UTC",
    ):
        self.store = store
        self.encoder = encoder
        self.clock = clock
        self.tz = ZoneInfo(tz) if isinstance(tz, str) else tz

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------
    def create_credential(
        self,
        owner_ref: str,
        visited_entity_ref: str,
        visit_date,
        guests: GuestCounts,
        total_amount,
        visited_entity_name: Optional[str] = None,
        initial_status: BookingStatus = BookingStatus.CONFIRMED,
    ) -> Credential:
        """Validate, persist under a unique token, then attach the QR code best-effort.

        Bookings are issued ``confirmed``. Pass ``initial_status=PENDING`` for a
        staged flow where an administrator confirms the booking later.
        """

        candidate = self._build_candidate(
            owner_ref, visited_entity_ref, visit_date, guests, total_amount, visited_entity_name,
            initial_status
        )
        credential = self.store.create(candidate)
        logger.info(
            f"Booking {credential.id} issued for {credential.visited_entity_ref} on {credential.visit_date}",
            extra={"booking_id": credential.id, "owner_ref": credential.owner_ref},
        )

        payload = QRPayload(
            booking_id=credential.id,
            token=credential.token,
            monument_name=visited_entity_name or visited_entity_ref,
            visit_date=credential.visit_date,
            total_amount=credential.total_amount,
            guests=credential.guests.total,
        )

        try:
            qr_code_url = self.encoder.encode(payload)
        except EncodingFailure as e:
            logger.warning(f"Booking {credential.id} issued without QR code: {e}")
            return credential

        try:
            return self.store.attach_encoded_payload(credential.id, qr_code_url)
        except (BookingNotFound, StoreUnavailable) as e:
            logger.warning(f"Could not attach QR code to booking {credential.id}: {e}")
            return credential

    def _build_candidate(
        self, owner_ref, visited_entity_ref, visit_date, guests, total_amount, visited_entity_name,
        initial_status=BookingStatus.CONFIRMED
    ) -> CredentialCandidate:
        if initial_status not in INITIAL_STATUSES:
            raise BookingValidationError("status", "Bookings can only be created as pending or confirmed")
        if not owner_ref:
            raise BookingValidationError("owner_ref", "Owner reference is required")
        if not visited_entity_ref:
            raise BookingValidationError("visited_entity_ref", "Monument reference is required")

        visit_day = self._parse_visit_date(visit_date)
        self._validate_guests(guests)
        amount = self._parse_amount(total_amount)

        return CredentialCandidate(
            owner_ref=str(owner_ref),
            visited_entity_ref=str(visited_entity_ref),
            visited_entity_name=visited_entity_name,
            visit_date=visit_day,
            guests=guests,
            total_amount=amount,
            expiry_date=visit_day + EXPIRY_GRACE,
            status=BookingStatus(initial_status),
        )

    @staticmethod
    def _parse_visit_date(value) -> date:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                return date.fromisoformat(value)
            except ValueError:
                pass
            try:
                return datetime.fromisoformat(value).date()
            except ValueError:
                pass
        raise BookingValidationError("visit_date", "Invalid visit date")

    @staticmethod
    def _validate_guests(guests: GuestCounts) -> None:
        for field in ("adults", "children", "foreigners"):
            count = getattr(guests, field)
            if count < 0:
                raise BookingValidationError(f"guests.{field}", f"Invalid number of {field}")
        if guests.adults < 1:
            raise BookingValidationError("guests.adults", "At least 1 adult required")

    @staticmethod
    def _parse_amount(value) -> Decimal:
        if value is None or isinstance(value, bool):
            raise BookingValidationError("total_amount", "Invalid total amount")
        try:
            amount = value if isinstance(value, Decimal) else Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise BookingValidationError("total_amount", "Invalid total amount")
        if not amount.is_finite() or amount < 0:
            raise BookingValidationError("total_amount", "Invalid total amount")
        if amount >= AMOUNT_LIMIT:
            raise BookingValidationError("total_amount", "Total amount is too large")
        if amount != amount.quantize(AMOUNT_QUANTUM):
            raise BookingValidationError("total_amount", "Total amount has more than 2 decimal places")
        return amount

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_by_token(self, token: str) -> Credential:
        return self.store.find_by_token(token)

    def list_by_owner(self, owner_ref: str) -> List[Credential]:
        return self.store.list_by_owner(str(owner_ref))

    def expiry_instant(self, credential: Credential) -> datetime:
        return datetime.combine(credential.expiry_date, time.min, tzinfo=self.tz)

    def is_expired(self, credential: Credential, now: Optional[datetime] = None) -> bool:
        now = self._localize(now or self.clock())
        return now > self.expiry_instant(credential)

    def _localize(self, now: datetime) -> datetime:
        if now.tzinfo is None:
            return now.replace(tzinfo=self.tz)
        return now.astimezone(self.tz)

    def verify_token(self, token: str) -> VerificationResult:
        """Decide whether a presented token admits its holder right now"""

        try:
            credential = self.store.find_by_token(token)
        except BookingNotFound:
            return VerificationResult(
                valid=False,
                reason=VerificationReason.NOT_FOUND,
                message="Invalid booking token",
            )

        is_expired = self.is_expired(credential)
        valid = credential.status == BookingStatus.CONFIRMED and not is_expired

        if valid:
            reason = VerificationReason.VALID
            message = "Valid booking token"
        elif is_expired or credential.status == BookingStatus.EXPIRED:
            reason = VerificationReason.EXPIRED
            message = "Booking token has expired"
        else:
            reason = VerificationReason.STATUS_MISMATCH
            message = f"Booking status: {credential.status.value}"

        return VerificationResult(
            valid=valid,
            reason=reason,
            message=message,
            is_expired=is_expired,
            status=credential.status,
            booking=credential,
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def transition(self, booking_id: int, target: BookingStatus) -> Credential:
        credential = self.store.get(booking_id)

        # A lapsed credential is logically expired even if nobody swept it yet
        if (
            credential.status not in TERMINAL_STATUSES
            and target != BookingStatus.EXPIRED
            and self.is_expired(credential)
        ):
            logger.info(f"Refusing {target.value} on lapsed booking {booking_id}")
            raise InvalidTransition(BookingStatus.EXPIRED, target)

        try:
            updated = self.store.transition_status(booking_id, target)
        except InvalidTransition:
            logger.info(f"Refusing {target.value} on booking {booking_id} in status {credential.status.value}")
            raise

        if updated.status != credential.status:
            logger.info(f"Booking {booking_id} moved {credential.status.value} -> {updated.status.value}")
        return updated

    def confirm(self, booking_id: int) -> Credential:
        return self.transition(booking_id, BookingStatus.CONFIRMED)

    def cancel(self, booking_id: int) -> Credential:
        return self.transition(booking_id, BookingStatus.CANCELLED)

    def complete(self, booking_id: int) -> Credential:
        return self.transition(booking_id, BookingStatus.COMPLETED)

    def sweep_expired(self, now: Optional[datetime] = None) -> int:
        """Persist ``expired`` on every lapsed, non-terminal booking"""

        now = self._localize(now or self.clock())
        expired_count = 0

        for credential in self.store.list_expirable(now.date()):
            if not self.is_expired(credential, now):
                continue
            try:
                if self.store.mark_expired(credential.id):
                    expired_count += 1
            except BookingNotFound:
                continue

        if expired_count:
            logger.info(f"Expired {expired_count} lapsed bookings")
        return expired_count
