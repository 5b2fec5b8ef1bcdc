"""Rutas de reservas"""
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from shared.database.connection import get_db
from shared.database.models import Profile
from shared.auth.dependencies import get_current_profile
from shared.utils.rate_limiter import limiter, RATE_LIMITS
from services.bookings.models.booking import BookingCreate, BookingUpdate, BookingResponse
from services.bookings.services.booking_service import BookingService, BookingConflict


router = APIRouter()


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMITS["booking"])
async def create_booking(
    request: Request,
    booking_data: BookingCreate,
    db: AsyncSession = Depends(get_db),
    profile: Profile = Depends(get_current_profile)
):
    """
    Reservar un evento

    La reserva queda en estado pending. Solo se puede reservar a nombre propio.
    """
    try:
        booking = await BookingService().create_booking(
            db,
            event_id=booking_data.event_id,
            actor_id=profile.id,
            preferences=booking_data.preferences,
            user_id=booking_data.user_id,
        )
    except BookingConflict as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    return BookingResponse.from_model(booking)


@router.get("/me", response_model=List[BookingResponse])
async def list_my_bookings(
    db: AsyncSession = Depends(get_db),
    profile: Profile = Depends(get_current_profile)
):
    """Reservas del usuario autenticado"""
    bookings = await BookingService().list_user_bookings(db, profile.id)
    return [BookingResponse.from_model(b) for b in bookings]


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    db: AsyncSession = Depends(get_db),
    profile: Profile = Depends(get_current_profile)
):
    """Obtener una reserva propia"""
    booking = await BookingService().get_booking(db, booking_id, profile.id)
    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    return BookingResponse.from_model(booking)


@router.patch("/{booking_id}", response_model=BookingResponse)
@limiter.limit(RATE_LIMITS["booking"])
async def update_booking(
    request: Request,
    booking_id: str,
    booking_data: BookingUpdate,
    db: AsyncSession = Depends(get_db),
    profile: Profile = Depends(get_current_profile)
):
    """
    Actualizar una reserva propia

    Transiciones permitidas: pending → confirmed, pending → cancelled
    """
    try:
        booking = await BookingService().update_booking(
            db,
            booking_id=booking_id,
            booking_data=booking_data.model_dump(exclude_unset=True),
            actor_id=profile.id,
        )
    except BookingConflict as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    return BookingResponse.from_model(booking)
