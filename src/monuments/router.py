from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from src.database import get_db
from src.bookings.schemas import GuestCounts
from src.monuments.schemas import Monument, MonumentSearch, PriceQuote
from src.monuments.service import MonumentService

router = APIRouter()

@router.get("/", response_model=List[Monument])
def get_monuments(
    limit: Optional[int] = Query(None, ge=1, le=100, description="Maximum results"),
    state: Optional[str] = Query(None, description="Filter by state"),
    city: Optional[str] = Query(None, description="Filter by city"),
    search: Optional[str] = Query(None, description="Search name and description"),
    db: Session = Depends(get_db)
):
    """List monuments with optional filters"""
    monuments = MonumentService.get_monuments(
        db, limit=limit, search=MonumentSearch(query=search, state=state, city=city)
    )
    return [MonumentService.to_schema(m) for m in monuments]

@router.get("/{monument_id}", response_model=Monument)
def get_monument(monument_id: int, db: Session = Depends(get_db)):
    """Get monument details by ID"""
    monument = MonumentService.get_monument_by_id(db, monument_id)
    if not monument:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Monument not found"
        )
    return MonumentService.to_schema(monument)

@router.post("/{monument_id}/quote", response_model=PriceQuote)
def quote_visit(monument_id: int, guests: GuestCounts, db: Session = Depends(get_db)):
    """Price a visit for the given head counts"""
    monument = MonumentService.get_monument_by_id(db, monument_id)
    if not monument:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Monument not found"
        )
    if min(guests.adults, guests.children, guests.foreigners) < 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Guest counts must not be negative"
        )
    return MonumentService.quote(monument, guests)
