"""Datos de ejemplo (los mismos siete eventos de la migración inicial)"""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from datetime import date, time
from decimal import Decimal
import logging

from shared.database.models import Event

logger = logging.getLogger(__name__)

SAMPLE_EVENTS = [
    {
        "title": "Tech Conference 2024",
        "description": "Join us for the biggest tech conference of the year featuring industry leaders and innovative workshops.",
        "date": date(2024, 4, 15),
        "time": time(9, 0),
        "location": "Silicon Valley Convention Center",
        "image_url": "https://images.unsplash.com/photo-1505373877841-8d25f7d46678?ixlib=rb-1.2.1&auto=format&fit=crop&w=1600&q=80",
        "price": Decimal("299.99"),
        "capacity": 500,
        "category": "Technology",
    },
    {
        "title": "Music Festival",
        "description": "Experience an unforgettable weekend of live music performances from top artists across multiple genres.",
        "date": date(2024, 5, 20),
        "time": time(16, 0),
        "location": "Central Park",
        "image_url": "https://images.unsplash.com/photo-1459749411175-04bf5292ceea?ixlib=rb-1.2.1&auto=format&fit=crop&w=1600&q=80",
        "price": Decimal("149.99"),
        "capacity": 1000,
        "category": "Music",
    },
    {
        "title": "Food & Wine Festival",
        "description": "Savor exquisite cuisines and premium wines from around the world in this gastronomic celebration.",
        "date": date(2024, 6, 10),
        "time": time(14, 0),
        "location": "Downtown Food District",
        "image_url": "https://images.unsplash.com/photo-1555244162-803834f70033?ixlib=rb-1.2.1&auto=format&fit=crop&w=1600&q=80",
        "price": Decimal("89.99"),
        "capacity": 300,
        "category": "Food & Drink",
    },
    {
        "title": "Art Exhibition",
        "description": "Discover contemporary masterpieces from emerging artists around the globe.",
        "date": date(2024, 7, 1),
        "time": time(10, 0),
        "location": "Modern Art Gallery",
        "image_url": "https://images.unsplash.com/photo-1531243269054-5ebf6f34081e?ixlib=rb-1.2.1&auto=format&fit=crop&w=1600&q=80",
        "price": Decimal("25.00"),
        "capacity": 200,
        "category": "Art",
    },
    {
        "title": "Startup Pitch Night",
        "description": "Watch innovative startups pitch their ideas to top investors.",
        "date": date(2024, 7, 15),
        "time": time(18, 0),
        "location": "Innovation Hub",
        "image_url": "https://images.unsplash.com/photo-1559136555-9303baea8ebd?ixlib=rb-1.2.1&auto=format&fit=crop&w=1600&q=80",
        "price": Decimal("50.00"),
        "capacity": 150,
        "category": "Business",
    },
    {
        "title": "Wellness Retreat",
        "description": "A day of mindfulness, yoga, and healthy living workshops.",
        "date": date(2024, 8, 1),
        "time": time(8, 0),
        "location": "Serenity Gardens",
        "image_url": "https://images.unsplash.com/photo-1544367567-0f2fcb009e0b?ixlib=rb-1.2.1&auto=format&fit=crop&w=1600&q=80",
        "price": Decimal("199.99"),
        "capacity": 100,
        "category": "Wellness",
    },
    {
        "title": "Comedy Night",
        "description": "Laugh out loud with top stand-up comedians.",
        "date": date(2024, 8, 15),
        "time": time(20, 0),
        "location": "Laugh Factory",
        "image_url": "https://images.unsplash.com/photo-1527224857830-43a7acc85260?ixlib=rb-1.2.1&auto=format&fit=crop&w=1600&q=80",
        "price": Decimal("45.00"),
        "capacity": 250,
        "category": "Entertainment",
    },
]


async def seed_sample_events(db: AsyncSession, force: bool = False) -> int:
    """
    Insertar los eventos de ejemplo.

    Si ya hay eventos no hace nada, salvo con force=True.
    Retorna la cantidad de eventos insertados.
    """
    existing = (await db.execute(select(func.count(Event.id)))).scalar_one()
    if existing and not force:
        logger.info(f"Seed omitido: ya existen {existing} eventos")
        return 0

    db.add_all([Event(**data) for data in SAMPLE_EVENTS])
    await db.commit()
    logger.info(f"{len(SAMPLE_EVENTS)} eventos de ejemplo insertados")
    return len(SAMPLE_EVENTS)
