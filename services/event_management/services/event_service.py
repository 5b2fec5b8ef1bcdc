"""Servicio de gestión de eventos"""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
from decimal import Decimal
from uuid import UUID
import logging
import math

from shared.auth.policies import as_uuid, enforce
from shared.cache.redis_client import cache_get, cache_set, cache_delete_pattern, cache_incr
from shared.config import settings
from shared.database.models import Event, Booking, BookingStatus
from services.event_management.models.event import EventPage, EventResponse

logger = logging.getLogger(__name__)

EVENTS_CACHE_PREFIX = "events:page"
# Se incrementa en cada invalidación; forma parte de la clave de cada página
EVENTS_GENERATION_KEY = "events:generation"

EDITABLE_FIELDS = (
    "title", "description", "date", "time", "location",
    "image_url", "price", "capacity", "category",
)


def page_count(total_count: int, page_size: int) -> int:
    """Número de páginas para total_count elementos"""
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    return math.ceil(total_count / page_size)


def filter_loaded_page(events: Iterable[EventResponse], search: Optional[str]) -> List[EventResponse]:
    """
    Búsqueda por subcadena (título o descripción) sobre la página cargada.

    No consulta la base de datos: eventos de otras páginas no aparecen.
    """
    events = list(events)
    if not search:
        return events
    term = search.lower()
    return [
        e for e in events
        if term in e.title.lower() or term in (e.description or "").lower()
    ]


def latest_events(events: Iterable[EventResponse], limit: int) -> List[EventResponse]:
    """Los `limit` eventos más recientes (fecha descendente) para el carrusel"""
    ordered = sorted(events, key=lambda e: (e.date, e.time), reverse=True)
    return ordered[:limit]


class EventService:
    """Servicio para gestionar eventos"""

    @staticmethod
    async def count_events(db: AsyncSession) -> int:
        """Total de eventos (consulta separada del listado)"""
        result = await db.execute(select(func.count(Event.id)))
        return int(result.scalar_one() or 0)

    @staticmethod
    async def get_events(
        db: AsyncSession,
        limit: int,
        offset: int = 0
    ) -> Sequence[Event]:
        """Obtener eventos ordenados por fecha ascendente"""
        stmt = (
            select(Event)
            .order_by(Event.date.asc(), Event.time.asc(), Event.id.asc())
            .limit(limit)
            .offset(offset)
        )
        result = await db.execute(stmt)
        return result.scalars().all()

    @staticmethod
    async def get_registered_counts(
        db: AsyncSession,
        event_ids: Sequence[UUID]
    ) -> Dict[UUID, int]:
        """Cantidad de reservas confirmadas por evento"""
        if not event_ids:
            return {}
        stmt = (
            select(Booking.event_id, func.count(Booking.id))
            .where(
                Booking.event_id.in_(event_ids),
                Booking.status == BookingStatus.CONFIRMED,
            )
            .group_by(Booking.event_id)
        )
        result = await db.execute(stmt)
        return {event_id: int(count) for event_id, count in result.all()}

    @staticmethod
    async def _load_page(db: AsyncSession, page: int, page_size: int) -> Tuple[List[EventResponse], int]:
        total_count = await EventService.count_events(db)
        events = await EventService.get_events(db, limit=page_size, offset=(page - 1) * page_size)
        counts = await EventService.get_registered_counts(db, [e.id for e in events])
        items = [EventResponse.from_model(e, counts.get(e.id, 0)) for e in events]
        return items, total_count

    @staticmethod
    async def get_events_page(
        db: AsyncSession,
        page: int = 1,
        search: Optional[str] = None,
        page_size: Optional[int] = None
    ) -> EventPage:
        """
        Obtener una página del listado de eventos

        La página sin filtrar se cachea en Redis (EVENTS_CACHE_TTL); la búsqueda
        se aplica después, solo sobre los eventos de esa página. La generación
        se lee antes de consultar la base de datos: una página cargada antes de
        una invalidación queda guardada bajo una generación que ya nadie lee.
        """
        if page < 1:
            raise ValueError("page must be >= 1")
        page_size = page_size or settings.EVENTS_PAGE_SIZE
        use_cache = settings.EVENTS_CACHE_TTL > 0

        cached = None
        if use_cache:
            generation = await cache_get(EVENTS_GENERATION_KEY) or 0
            cache_key = f"{EVENTS_CACHE_PREFIX}:{generation}:{page_size}:{page}"
            cached = await cache_get(cache_key)
        if cached:
            items = [EventResponse(**data) for data in cached["items"]]
            total_count = cached["total_count"]
        else:
            items, total_count = await EventService._load_page(db, page, page_size)
            if use_cache:
                await cache_set(
                    cache_key,
                    {
                        "items": [item.model_dump(mode="json") for item in items],
                        "total_count": total_count,
                    },
                    expire=settings.EVENTS_CACHE_TTL,
                )

        return EventPage(
            items=filter_loaded_page(items, search),
            featured=latest_events(items, settings.FEATURED_EVENTS_LIMIT),
            page=page,
            page_size=page_size,
            total_count=total_count,
            total_pages=page_count(total_count, page_size),
            search=search or None,
        )

    @staticmethod
    async def get_event_by_id(
        db: AsyncSession,
        event_id: Any
    ) -> Optional[Event]:
        """Obtener evento por ID (lectura pública)"""
        event_uuid = as_uuid(event_id)
        if event_uuid is None:
            return None
        return await db.get(Event, event_uuid)

    @staticmethod
    async def get_event_response(db: AsyncSession, event_id: Any) -> Optional[EventResponse]:
        """Evento con su contador de reservas confirmadas"""
        event = await EventService.get_event_by_id(db, event_id)
        if not event:
            return None
        counts = await EventService.get_registered_counts(db, [event.id])
        return EventResponse.from_model(event, counts.get(event.id, 0))

    @staticmethod
    async def invalidate_events_cache():
        """Invalidar cache del listado de eventos"""
        if settings.EVENTS_CACHE_TTL > 0:
            await cache_incr(EVENTS_GENERATION_KEY)
            await cache_delete_pattern(f"{EVENTS_CACHE_PREFIX}:*")

    @staticmethod
    def _apply(event: Event, event_data: Dict[str, Any]) -> None:
        for field in EDITABLE_FIELDS:
            if field not in event_data:
                continue
            value = event_data[field]
            if field == "price" and value is not None:
                value = Decimal(str(value))
            setattr(event, field, value)

    @staticmethod
    async def create_event(
        db: AsyncSession,
        event_data: Dict[str, Any],
        actor_id: Any,
        is_admin: bool
    ) -> Event:
        """
        Crear nuevo evento

        Raises:
            PolicyViolation: Si el actor no es admin
        """
        event = Event(created_by=as_uuid(actor_id))
        EventService._apply(event, event_data)
        enforce("events", "insert", actor_id, event, is_admin)

        db.add(event)
        await db.commit()
        await db.refresh(event)
        logger.info(f"Evento creado: {event.id} por {actor_id}")

        await EventService.invalidate_events_cache()
        return event

    @staticmethod
    async def update_event(
        db: AsyncSession,
        event_id: Any,
        event_data: Dict[str, Any],
        actor_id: Any,
        is_admin: bool
    ) -> Optional[Event]:
        """
        Actualizar evento

        Raises:
            PolicyViolation: Si el actor no es admin
        """
        event = await EventService.get_event_by_id(db, event_id)
        if not event:
            return None

        enforce("events", "update", actor_id, event, is_admin)

        for field in ("title", "date", "time", "location", "price", "capacity"):
            if field in event_data and event_data[field] is None:
                raise ValueError(f"{field} cannot be null")

        EventService._apply(event, event_data)
        await db.commit()
        await db.refresh(event)

        await EventService.invalidate_events_cache()
        return event

    @staticmethod
    async def delete_event(
        db: AsyncSession,
        event_id: Any,
        actor_id: Any,
        is_admin: bool
    ) -> bool:
        """
        Eliminar evento (sus reservas se eliminan en cascada)

        Raises:
            PolicyViolation: Si el actor no es admin
        """
        event = await EventService.get_event_by_id(db, event_id)
        if not event:
            return False

        enforce("events", "delete", actor_id, event, is_admin)

        await db.delete(event)
        await db.commit()
        logger.info(f"Evento eliminado: {event_id} por {actor_id}")

        await EventService.invalidate_events_cache()
        return True
