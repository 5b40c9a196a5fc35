from fastapi import Depends
from sqlalchemy.orm import Session

from src.config import settings
from src.database import get_db
from src.bookings.booking_service import BookingService
from src.bookings.qr_service import QRCodeEncoder
from src.bookings.store import SqlBookingStore
from src.bookings.token_service import TokenGenerator

def get_token_generator() -> TokenGenerator:
    return TokenGenerator(length=settings.BOOKING_TOKEN_LENGTH)

def get_qr_encoder() -> QRCodeEncoder:
    return QRCodeEncoder(
        error_correction=settings.QR_ERROR_CORRECTION,
        box_size=settings.QR_BOX_SIZE,
        border=settings.QR_BORDER,
    )

def get_booking_service(
    db: Session = Depends(get_db),
    token_generator: TokenGenerator = Depends(get_token_generator),
    encoder: QRCodeEncoder = Depends(get_qr_encoder),
) -> BookingService:
    store = SqlBookingStore(db, token_generator, max_attempts=settings.BOOKING_TOKEN_MAX_ATTEMPTS)
    return BookingService(store, encoder, tz=settings.BOOKING_TIMEZONE)
