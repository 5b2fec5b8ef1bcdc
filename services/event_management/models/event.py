"""Modelos Pydantic para eventos"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date as date_type, time as time_type, datetime


class EventResponse(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    date: date_type
    time: time_type
    location: str
    image_url: Optional[str] = None
    price: float
    capacity: int
    category: Optional[str] = None
    created_by: Optional[str] = None
    registered_count: int = 0  # reservas confirmadas
    sold_out: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @classmethod
    def from_model(cls, event, registered_count: int = 0) -> "EventResponse":
        return cls(
            id=str(event.id),
            title=event.title,
            description=event.description,
            date=event.date,
            time=event.time,
            location=event.location,
            image_url=event.image_url,
            price=float(event.price or 0),
            capacity=event.capacity,
            category=event.category,
            created_by=str(event.created_by) if event.created_by else None,
            registered_count=registered_count,
            sold_out=registered_count >= event.capacity,
            created_at=event.created_at,
            updated_at=event.updated_at,
        )


class EventPage(BaseModel):
    """Una página del listado de eventos"""
    items: List[EventResponse] = []
    featured: List[EventResponse] = []  # carrusel: los más recientes de la página
    page: int
    page_size: int
    total_count: int
    total_pages: int
    search: Optional[str] = None


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    date: date_type
    time: time_type
    location: str = Field(..., min_length=1)
    image_url: Optional[str] = None
    price: float = Field(0, ge=0)
    capacity: int = Field(0, ge=0)
    category: Optional[str] = None


class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    date: Optional[date_type] = None
    time: Optional[time_type] = None
    location: Optional[str] = Field(None, min_length=1)
    image_url: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    capacity: Optional[int] = Field(None, ge=0)
    category: Optional[str] = None
