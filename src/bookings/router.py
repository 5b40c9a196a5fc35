from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import List
import logging

from src.database import get_db
from src.auth.dependencies import get_current_user, require_admin
from src.bookings.booking_service import BookingService
from src.bookings.dependencies import get_booking_service
from src.bookings.exceptions import BookingError
from src.bookings.schemas import (
    BookingCreateRequest, BookingCreatedResponse, Credential, SweepResult,
    VerificationReason, VerificationResult
)
from src.monuments.service import MonumentService

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_STATUS_CODES = {
    "validation_error": status.HTTP_400_BAD_REQUEST,
    "not_found": status.HTTP_404_NOT_FOUND,
    "invalid_transition": status.HTTP_409_CONFLICT,
    "store_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
}

def _http_error(e: BookingError) -> HTTPException:
    status_code = ERROR_STATUS_CODES.get(e.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        logger.error(f"Booking operation failed ({e.kind}): {e}")
    return HTTPException(status_code=status_code, detail=e.to_dict())

@router.post("/", response_model=BookingCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    request: BookingCreateRequest,
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Book a monument visit and issue its tokenized credential"""

    monument = MonumentService.get_monument_by_id(db, request.monument_id)
    if not monument:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"kind": "not_found", "message": "Monument not found"}
        )

    guests = request.guests
    total_amount = request.total_amount
    if total_amount is None and min(guests.adults, guests.children, guests.foreigners) >= 0:
        total_amount = MonumentService.quote(monument, guests).total_amount

    try:
        credential = booking_service.create_credential(
            owner_ref=str(current_user.id),
            visited_entity_ref=str(monument.id),
            visit_date=request.visit_date,
            guests=guests,
            total_amount=total_amount,
            visited_entity_name=monument.name,
        )
    except BookingError as e:
        raise _http_error(e)

    return BookingCreatedResponse(booking=credential)

@router.get("/my-bookings", response_model=List[Credential])
def get_my_bookings(
    current_user = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service)
):
    """List the current user's bookings, most recent first"""
    try:
        return booking_service.list_by_owner(str(current_user.id))
    except BookingError as e:
        raise _http_error(e)

@router.get("/verify/{token}", response_model=VerificationResult)
def verify_booking_token(
    token: str,
    booking_service: BookingService = Depends(get_booking_service)
):
    """Verify a presented booking token at the gate"""
    try:
        result = booking_service.verify_token(token)
    except BookingError as e:
        raise _http_error(e)

    if result.reason == VerificationReason.NOT_FOUND:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=jsonable_encoder(result)
        )
    return result

@router.get("/token/{token}", response_model=Credential)
def get_booking_by_token(
    token: str,
    booking_service: BookingService = Depends(get_booking_service)
):
    """Fetch the full booking record for a token (QR scanner view)"""
    try:
        return booking_service.get_by_token(token)
    except BookingError as e:
        raise _http_error(e)

@router.post("/sweep-expired", response_model=SweepResult)
def sweep_expired_bookings(
    admin = Depends(require_admin),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Persist the expired status on every lapsed booking"""
    now = booking_service.clock()
    try:
        expired_count = booking_service.sweep_expired(now)
    except BookingError as e:
        raise _http_error(e)
    return SweepResult(expired_count=expired_count, swept_at=now)

@router.post("/{booking_id}/confirm", response_model=Credential)
def confirm_booking(
    booking_id: int,
    admin = Depends(require_admin),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Confirm a pending booking"""
    try:
        return booking_service.confirm(booking_id)
    except BookingError as e:
        raise _http_error(e)

@router.post("/{booking_id}/cancel", response_model=Credential)
def cancel_booking(
    booking_id: int,
    admin = Depends(require_admin),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Cancel a booking"""
    try:
        return booking_service.cancel(booking_id)
    except BookingError as e:
        raise _http_error(e)

@router.post("/{booking_id}/complete", response_model=Credential)
def complete_booking(
    booking_id: int,
    admin = Depends(require_admin),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Mark a booking as used"""
    try:
        return booking_service.complete(booking_id)
    except BookingError as e:
        raise _http_error(e)
