"""Modelos Pydantic para reservas"""
from pydantic import BaseModel
from typing import Optional
from datetime import datetime

from shared.database.models import BookingStatus


class BookingCreate(BaseModel):
    event_id: str
    preferences: Optional[str] = None
    user_id: Optional[str] = None  # por defecto, el usuario autenticado


class BookingUpdate(BaseModel):
    status: Optional[BookingStatus] = None
    preferences: Optional[str] = None


class BookingResponse(BaseModel):
    id: str
    event_id: str
    user_id: str
    status: BookingStatus
    preferences: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @classmethod
    def from_model(cls, booking) -> "BookingResponse":
        return cls(
            id=str(booking.id),
            event_id=str(booking.event_id),
            user_id=str(booking.user_id),
            status=booking.status,
            preferences=booking.preferences,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )
