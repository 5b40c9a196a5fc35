from sqlalchemy.orm import Session
from sqlalchemy import or_
from typing import List, Optional
from decimal import Decimal
import logging

from src.models import Monument
from src.bookings.schemas import GuestCounts
from src.monuments.schemas import (
    Monument as MonumentSchema, MonumentCreate, MonumentSearch, PriceLine, PriceQuote, TicketPrices
)

logger = logging.getLogger(__name__)

SAMPLE_MONUMENTS = [
    {
        "name": "Taj Mahal",
        "description": "An ivory-white marble mausoleum on the right bank of the river Yamuna in Agra, commissioned in 1632 by the Mughal emperor Shah Jahan.",
        "city": "Agra", "state": "Uttar Pradesh",
        "image_url": "https://images.pexels.com/photos/1603650/pexels-photo-1603650.jpeg?auto=compress&cs=tinysrgb&w=800",
        "ticket_prices": {"adult": 50, "child": 25, "foreigner": 1100},
    },
    {
        "name": "Red Fort",
        "description": "A historic walled city in Delhi that served as the main residence of the Mughal Emperors for nearly 200 years, until 1856.",
        "city": "New Delhi", "state": "Delhi",
        "image_url": "https://images.pexels.com/photos/3581368/pexels-photo-3581368.jpeg?auto=compress&cs=tinysrgb&w=800",
        "ticket_prices": {"adult": 35, "child": 15, "foreigner": 550},
    },
    {
        "name": "Gateway of India",
        "description": "An arch-monument built in the early twentieth century in Mumbai to commemorate the landing of King George V and Queen Mary at Apollo Bunder.",
        "city": "Mumbai", "state": "Maharashtra",
        "image_url": "https://images.pexels.com/photos/4321194/pexels-photo-4321194.jpeg?auto=compress&cs=tinysrgb&w=800",
        "ticket_prices": {"adult": 25, "child": 10, "foreigner": 300},
    },
    {
        "name": "Hawa Mahal",
        "description": "A palace in Jaipur built from red and pink sandstone on the edge of the City Palace, extending to the Zenana.",
        "city": "Jaipur", "state": "Rajasthan",
        "image_url": "https://images.pexels.com/photos/3370598/pexels-photo-3370598.jpeg?auto=compress&cs=tinysrgb&w=800",
        "ticket_prices": {"adult": 50, "child": 20, "foreigner": 200},
    },
    {
        "name": "Mysore Palace",
        "description": "Also known as Amba Vilas Palace, the official residence of the Wadiyar dynasty in Mysore, Karnataka.",
        "city": "Mysore", "state": "Karnataka",
        "image_url": "https://images.pexels.com/photos/8847486/pexels-photo-8847486.jpeg?auto=compress&cs=tinysrgb&w=800",
        "ticket_prices": {"adult": 70, "child": 30, "foreigner": 200},
    },
    {
        "name": "Qutub Minar",
        "description": "A minaret and victory tower forming part of the Qutb complex, at the site of Delhi's oldest fortified city, Lal Kot.",
        "city": "New Delhi", "state": "Delhi",
        "image_url": "https://images.pexels.com/photos/12480794/pexels-photo-12480794.jpeg?auto=compress&cs=tinysrgb&w=800",
        "ticket_prices": {"adult": 30, "child": 15, "foreigner": 550},
    },
]

class MonumentService:
    @staticmethod
    def get_monument_by_id(db: Session, monument_id: int) -> Optional[Monument]:
        """Get monument by ID"""
        return db.query(Monument).filter(Monument.id == monument_id).first()

    @staticmethod
    def get_monuments(
        db: Session,
        limit: Optional[int] = None,
        search: Optional[MonumentSearch] = None
    ) -> List[Monument]:
        """List monuments, newest first, with optional filters"""
        query = db.query(Monument)

        if search:
            if search.state:
                query = query.filter(Monument.state == search.state)
            if search.city:
                query = query.filter(Monument.city == search.city)
            if search.query:
                pattern = f"%{search.query}%"
                query = query.filter(or_(Monument.name.ilike(pattern), Monument.description.ilike(pattern)))

        query = query.order_by(Monument.created_at.desc(), Monument.id.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def create_monument(db: Session, monument: MonumentCreate) -> Monument:
        db_monument = Monument(
            name=monument.name,
            description=monument.description,
            city=monument.city,
            state=monument.state,
            image_url=monument.image_url,
            adult_price=monument.ticket_prices.adult,
            child_price=monument.ticket_prices.child,
            foreigner_price=monument.ticket_prices.foreigner,
        )
        db.add(db_monument)
        db.commit()
        db.refresh(db_monument)
        return db_monument

    @staticmethod
    def to_schema(monument: Monument) -> MonumentSchema:
        return MonumentSchema(
            id=monument.id,
            name=monument.name,
            description=monument.description,
            city=monument.city,
            state=monument.state,
            image_url=monument.image_url,
            ticket_prices=TicketPrices(
                adult=monument.adult_price,
                child=monument.child_price,
                foreigner=monument.foreigner_price,
            ),
            created_at=monument.created_at,
        )

    @staticmethod
    def quote(monument: Monument, guests: GuestCounts) -> PriceQuote:
        """Price a visit: unit price times head count per category"""
        lines = []
        for category, count, unit_price in (
            ("adult", guests.adults, monument.adult_price),
            ("child", guests.children, monument.child_price),
            ("foreigner", guests.foreigners, monument.foreigner_price),
        ):
            unit_price = Decimal(unit_price)
            lines.append(PriceLine(
                category=category,
                count=count,
                unit_price=unit_price,
                subtotal=unit_price * count,
            ))

        return PriceQuote(
            monument_id=monument.id,
            monument_name=monument.name,
            guests=guests,
            lines=lines,
            total_amount=sum((line.subtotal for line in lines), Decimal("0")),
        )

    @staticmethod
    def seed_sample_monuments(db: Session) -> int:
        """Insert the sample catalog when the table is empty"""
        existing = db.query(Monument).count()
        if existing:
            logger.info(f"Found {existing} monuments in database, skipping initialization")
            return 0

        for data in SAMPLE_MONUMENTS:
            MonumentService.create_monument(db, MonumentCreate(**data))
        logger.info(f"Sample monuments added to database ({len(SAMPLE_MONUMENTS)})")
        return len(SAMPLE_MONUMENTS)
