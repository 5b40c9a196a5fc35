from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
from decimal import Decimal

from src.bookings.schemas import GuestCounts

class TicketPrices(BaseModel):
    adult: Decimal
    child: Decimal
    foreigner: Decimal

class MonumentBase(BaseModel):
    name: str
    description: str
    city: str
    state: str
    image_url: str

class MonumentCreate(MonumentBase):
    ticket_prices: TicketPrices

class Monument(MonumentBase):
    id: int
    ticket_prices: TicketPrices
    created_at: Optional[datetime] = None

class MonumentSearch(BaseModel):
    query: Optional[str] = None
    state: Optional[str] = None
    city: Optional[str] = None

class PriceLine(BaseModel):
    category: str
    count: int
    unit_price: Decimal
    subtotal: Decimal

class PriceQuote(BaseModel):
    monument_id: int
    monument_name: str
    guests: GuestCounts
    lines: List[PriceLine]
    total_amount: Decimal
