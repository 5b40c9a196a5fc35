"""
Durable booking records keyed by token.

The store owns two guarantees: a token is never assigned twice, and status
changes follow ``ALLOWED_TRANSITIONS``. ``SqlBookingStore`` relies on the
UNIQUE index on ``bookings.token`` for the first; ``InMemoryBookingStore``
holds a lock across its check-and-insert.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from typing import Dict, List, Optional
import logging
import threading

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from src.models import Booking
from src.bookings.exceptions import (
    BookingNotFound, InvalidTransition, StoreUnavailable, TokenSpaceExhausted
)
from src.bookings.schemas import (
    ALLOWED_TRANSITIONS, BookingStatus, Credential, CredentialCandidate, GuestCounts,
    TERMINAL_STATUSES
)
from src.bookings.token_service import TokenGenerator

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5

def check_transition(current: BookingStatus, target: BookingStatus) -> bool:
    """Return True if the move changes state, False for an idempotent no-op.

    Raises InvalidTransition when the state machine forbids the move.
    """
    if current == target:
        return False
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransition(current, target)
    return True

class BookingStore(ABC):
    """Storage contract used by the lifecycle manager"""

    def __init__(self, token_generator: TokenGenerator, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        self.token_generator = token_generator
        self.max_attempts = max_attempts

    def create(self, candidate: CredentialCandidate) -> Credential:
        """Persist a candidate under a freshly generated, unique token"""
        for attempt in range(1, self.max_attempts + 1):
            token = self.token_generator.generate()
            credential = self._insert(candidate, token)
            if credential is not None:
                return credential
            logger.warning(f"Booking token collision on attempt {attempt}/{self.max_attempts}")

        logger.error(f"Token space exhausted after {self.max_attempts} attempts")
        raise TokenSpaceExhausted(self.max_attempts)

    @abstractmethod
    def _insert(self, candidate: CredentialCandidate, token: str) -> Optional[Credential]:
        """Atomically insert; return None if ``token`` is already taken"""

    @abstractmethod
    def get(self, booking_id: int) -> Credential:
        ...

    @abstractmethod
    def find_by_token(self, token: str) -> Credential:
        ...

    @abstractmethod
    def attach_encoded_payload(self, booking_id: int, payload: str) -> Credential:
        ...

    @abstractmethod
    def list_by_owner(self, owner_ref: str) -> List[Credential]:
        ...

    @abstractmethod
    def transition_status(self, booking_id: int, target: BookingStatus) -> Credential:
        ...

    @abstractmethod
    def list_expirable(self, expired_before: date) -> List[Credential]:
        """Non-terminal bookings whose expiry date is on or before ``expired_before``"""

    @abstractmethod
    def mark_expired(self, booking_id: int) -> bool:
        """Atomically persist ``expired`` on a non-terminal booking.

        Returns False when the booking was already terminal, e.g. expired by a
        concurrent sweep.
        """

class InMemoryBookingStore(BookingStore):
    """Process-local store, suitable for tests and single-process demos"""

    def __init__(self, token_generator: TokenGenerator, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        super().__init__(token_generator, max_attempts)
        self._lock = threading.Lock()
        self._booking_storage: Dict[int, Credential] = {}
        self._token_index: Dict[str, int] = {}
        self._booking_counter = 0

    def _insert(self, candidate: CredentialCandidate, token: str) -> Optional[Credential]:
        with self._lock:
            if token in self._token_index:
                return None
            self._booking_counter += 1
            credential = Credential(
                id=self._booking_counter,
                token=token,
                created_at=datetime.now(timezone.utc),
                **candidate.model_dump(),
            )
            self._booking_storage[credential.id] = credential
            self._token_index[token] = credential.id
            return credential

    def get(self, booking_id: int) -> Credential:
        credential = self._booking_storage.get(booking_id)
        if credential is None:
            raise BookingNotFound(booking_id=booking_id)
        return credential

    def find_by_token(self, token: str) -> Credential:
        booking_id = self._token_index.get(token)
        if booking_id is None:
            raise BookingNotFound("Invalid booking token", token=token)
        return self._booking_storage[booking_id]

    def attach_encoded_payload(self, booking_id: int, payload: str) -> Credential:
        with self._lock:
            credential = self.get(booking_id)
            updated = credential.model_copy(update={"qr_code_url": payload})
            self._booking_storage[booking_id] = updated
            return updated

    def list_by_owner(self, owner_ref: str) -> List[Credential]:
        with self._lock:
            bookings = [b for b in self._booking_storage.values() if b.owner_ref == owner_ref]
        return sorted(bookings, key=lambda b: (b.created_at, b.id), reverse=True)

    def transition_status(self, booking_id: int, target: BookingStatus) -> Credential:
        with self._lock:
            credential = self.get(booking_id)
            if not check_transition(credential.status, target):
                return credential
            updated = credential.model_copy(update={"status": target})
            self._booking_storage[booking_id] = updated
            return updated

    def list_expirable(self, expired_before: date) -> List[Credential]:
        with self._lock:
            return [
                b for b in self._booking_storage.values()
                if b.status not in TERMINAL_STATUSES and b.expiry_date <= expired_before
            ]

    def mark_expired(self, booking_id: int) -> bool:
        with self._lock:
            credential = self.get(booking_id)
            if credential.status in TERMINAL_STATUSES:
                return False
            self._booking_storage[booking_id] = credential.model_copy(update={"status": BookingStatus.EXPIRED})
            return True

class SqlBookingStore(BookingStore):
    """SQLAlchemy-backed store; the token UNIQUE index enforces uniqueness across processes"""

    def __init__(self, db: Session, token_generator: TokenGenerator, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        super().__init__(token_generator, max_attempts)
        self.db = db

    @staticmethod
    def to_credential(booking: Booking) -> Credential:
        return Credential(
            id=booking.id,
            owner_ref=booking.owner_ref,
            visited_entity_ref=booking.visited_entity_ref,
            visited_entity_name=booking.visited_entity_name,
            visit_date=booking.visit_date,
            guests=GuestCounts(
                adults=booking.number_of_adults,
                children=booking.number_of_children,
                foreigners=booking.number_of_foreigners,
            ),
            total_amount=booking.total_amount,
            token=booking.token,
            status=BookingStatus(booking.status),
            qr_code_url=booking.qr_code_url,
            expiry_date=booking.expiry_date,
            created_at=booking.created_at,
        )

    def _insert(self, candidate: CredentialCandidate, token: str) -> Optional[Credential]:
        booking = Booking(
            owner_ref=candidate.owner_ref,
            visited_entity_ref=candidate.visited_entity_ref,
            visited_entity_name=candidate.visited_entity_name,
            visit_date=candidate.visit_date,
            number_of_adults=candidate.guests.adults,
            number_of_children=candidate.guests.children,
            number_of_foreigners=candidate.guests.foreigners,
            total_amount=candidate.total_amount,
            token=token,
            status=candidate.status.value,
            expiry_date=candidate.expiry_date,
        )

        try:
            self.db.add(booking)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if self._token_taken(token):
                return None
            logger.error(f"Booking insert rejected: {e}")
            raise StoreUnavailable(f"Booking could not be stored: {e.orig}") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Booking insert failed: {e}")
            raise StoreUnavailable("Booking storage is unavailable") from e

        self.db.refresh(booking)
        return self.to_credential(booking)

    def _token_taken(self, token: str) -> bool:
        try:
            return self.db.query(Booking.id).filter(Booking.token == token).first() is not None
        except SQLAlchemyError as e:
            raise StoreUnavailable("Booking storage is unavailable") from e

    def _get_row(self, booking_id: int) -> Booking:
        try:
            booking = self.db.query(Booking).filter(Booking.id == booking_id).first()
        except SQLAlchemyError as e:
            raise StoreUnavailable("Booking storage is unavailable") from e
        if not booking:
            raise BookingNotFound(booking_id=booking_id)
        return booking

    def _commit(self, booking: Booking) -> Credential:
        try:
            self.db.commit()
            self.db.refresh(booking)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Booking update failed: {e}")
            raise StoreUnavailable("Booking storage is unavailable") from e
        return self.to_credential(booking)

    def get(self, booking_id: int) -> Credential:
        return self.to_credential(self._get_row(booking_id))

    def find_by_token(self, token: str) -> Credential:
        try:
            booking = self.db.query(Booking).filter(Booking.token == token).first()
        except SQLAlchemyError as e:
            raise StoreUnavailable("Booking storage is unavailable") from e
        # Collation may be case-insensitive on some backends
        if not booking or booking.token != token:
            raise BookingNotFound("Invalid booking token", token=token)
        return self.to_credential(booking)

    def attach_encoded_payload(self, booking_id: int, payload: str) -> Credential:
        booking = self._get_row(booking_id)
        booking.qr_code_url = payload
        return self._commit(booking)

    def list_by_owner(self, owner_ref: str) -> List[Credential]:
        try:
            bookings = self.db.query(Booking).filter(
                Booking.owner_ref == owner_ref
            ).order_by(Booking.created_at.desc(), Booking.id.desc()).all()
        except SQLAlchemyError as e:
            raise StoreUnavailable("Booking storage is unavailable") from e
        return [self.to_credential(b) for b in bookings]

    def transition_status(self, booking_id: int, target: BookingStatus) -> Credential:
        booking = self._get_row(booking_id)
        if not check_transition(BookingStatus(booking.status), target):
            return self.to_credential(booking)
        booking.status = target.value
        return self._commit(booking)

    def list_expirable(self, expired_before: date) -> List[Credential]:
        terminal = [s.value for s in TERMINAL_STATUSES]
        try:
            bookings = self.db.query(Booking).filter(
                Booking.status.notin_(terminal),
                Booking.expiry_date <= expired_before,
            ).all()
        except SQLAlchemyError as e:
            raise StoreUnavailable("Booking storage is unavailable") from e
        return [self.to_credential(b) for b in bookings]

    def mark_expired(self, booking_id: int) -> bool:
        terminal = [s.value for s in TERMINAL_STATUSES]
        try:
            updated = self.db.query(Booking).filter(
                Booking.id == booking_id,
                Booking.status.notin_(terminal),
            ).update({Booking.status: BookingStatus.EXPIRED.value}, synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Booking expiry update failed: {e}")
            raise StoreUnavailable("Booking storage is unavailable") from e

        if not updated:
            # Distinguish "already terminal" from "no such booking"
            self._get_row(booking_id)
        return updated == 1
