"""Servicio de reservas"""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from typing import Any, Dict, List, Optional
import logging

from shared.auth.policies import as_uuid, enforce
from shared.cache.redis_client import DistributedLock, LockNotAcquired
from shared.config import settings
from shared.database.models import Booking, BookingStatus, BOOKING_TRANSITIONS, Event
from services.event_management.services.event_service import EventService

logger = logging.getLogger(__name__)


class BookingConflict(Exception):
    """La reserva no puede crearse o cambiar de estado"""


class BookingService:
    """
    Servicio para crear y modificar reservas.

    Por defecto no hay control de capacidad ni de reservas duplicadas: un usuario
    puede reservar varias veces el mismo evento. Con BOOKING_STRICT_MODE la
    creación y la confirmación se serializan por evento con un lock en Redis y se
    rechazan duplicados y eventos sin cupo.
    """

    def __init__(self, strict_mode: Optional[bool] = None):
        self.strict_mode = settings.BOOKING_STRICT_MODE if strict_mode is None else strict_mode

    async def create_booking(
        self,
        db: AsyncSession,
        event_id: Any,
        actor_id: Any,
        preferences: Optional[str] = None,
        user_id: Optional[Any] = None
    ) -> Optional[Booking]:
        """
        Crear reserva en estado pending

        Returns:
            La reserva creada, o None si el evento no existe

        Raises:
            PolicyViolation: Si user_id no corresponde al actor
            BookingConflict: En modo estricto, reserva duplicada o evento sin cupo
        """
        booking = Booking(
            event_id=as_uuid(event_id),
            user_id=as_uuid(user_id if user_id is not None else actor_id),
            status=BookingStatus.PENDING,
            preferences=preferences,
        )
        enforce("bookings", "insert", actor_id, booking)

        event = await EventService.get_event_by_id(db, event_id)
        if not event:
            return None

        if self.strict_mode:
            try:
                async with DistributedLock(f"event:{event.id}:bookings"):
                    await self._check_not_duplicated(db, booking)
                    await self._check_capacity(db, event)
                    await self._save(db, booking)
            except LockNotAcquired:
                raise BookingConflict("Booking is busy, please try again")
        else:
            await self._save(db, booking)

        logger.info(f"Reserva {booking.id} creada para evento {event.id} por {actor_id}")
        return booking

    async def list_user_bookings(self, db: AsyncSession, actor_id: Any) -> List[Booking]:
        """Reservas del actor, más recientes primero"""
        stmt = (
            select(Booking)
            .where(Booking.user_id == as_uuid(actor_id))
            .order_by(Booking.created_at.desc(), Booking.id.desc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def get_booking(self, db: AsyncSession, booking_id: Any, actor_id: Any) -> Optional[Booking]:
        """
        Obtener reserva por ID

        Raises:
            PolicyViolation: Si la reserva es de otro usuario
        """
        booking_uuid = as_uuid(booking_id)
        if booking_uuid is None:
            return None
        booking = await db.get(Booking, booking_uuid)
        if booking:
            enforce("bookings", "select", actor_id, booking)
        return booking

    async def update_booking(
        self,
        db: AsyncSession,
        booking_id: Any,
        booking_data: Dict[str, Any],
        actor_id: Any
    ) -> Optional[Booking]:
        """
        Actualizar estado y/o preferencias de una reserva propia

        Raises:
            PolicyViolation: Si la reserva es de otro usuario
            BookingConflict: Si la transición de estado no está permitida
        """
        booking = await self.get_booking(db, booking_id, actor_id)
        if not booking:
            return None

        enforce("bookings", "update", actor_id, booking)

        new_status = booking_data.get("status")
        if new_status is not None:
            new_status = BookingStatus(new_status)
        status_changed = new_status is not None and new_status != booking.status

        if status_changed and new_status not in BOOKING_TRANSITIONS[BookingStatus(booking.status)]:
            raise BookingConflict(
                f"Cannot change booking status from {BookingStatus(booking.status).value} to {new_status.value}"
            )

        if "preferences" in booking_data:
            booking.preferences = booking_data["preferences"]

        if status_changed and new_status == BookingStatus.CONFIRMED and self.strict_mode:
            event = await db.get(Event, booking.event_id)
            try:
                async with DistributedLock(f"event:{booking.event_id}:bookings"):
                    await self._check_capacity(db, event)
                    booking.status = new_status
                    await self._save(db, booking)
            except LockNotAcquired:
                raise BookingConflict("Booking is busy, please try again")
        else:
            if status_changed:
                booking.status = new_status
            await self._save(db, booking)

        if status_changed:
            logger.info(f"Reserva {booking.id} pasó a {new_status.value}")
            # El contador de confirmadas del listado cambió
            await EventService.invalidate_events_cache()

        return booking

    @staticmethod
    async def _save(db: AsyncSession, booking: Booking) -> None:
        db.add(booking)
        await db.commit()
        await db.refresh(booking)

    @staticmethod
    async def _check_not_duplicated(db: AsyncSession, booking: Booking) -> None:
        stmt = select(func.count(Booking.id)).where(
            Booking.event_id == booking.event_id,
            Booking.user_id == booking.user_id,
            Booking.status != BookingStatus.CANCELLED,
        )
        existing = (await db.execute(stmt)).scalar_one()
        if existing:
            raise BookingConflict("You already have a booking for this event")

    @staticmethod
    async def _check_capacity(db: AsyncSession, event: Event) -> None:
        counts = await EventService.get_registered_counts(db, [event.id])
        if counts.get(event.id, 0) >= event.capacity:
            raise BookingConflict("Event is sold out")
