"""Rutas de gestión de eventos"""
from fastapi import APIRouter, Depends, HTTPException, Request, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from shared.database.connection import get_db
from shared.database.models import Profile
from shared.auth.dependencies import get_current_profile
from shared.utils.rate_limiter import limiter, RATE_LIMITS
from services.event_management.models.event import (
    EventResponse,
    EventPage,
    EventCreate,
    EventUpdate,
)
from services.event_management.services.event_service import EventService


router = APIRouter()


@router.get("", response_model=EventPage)
@limiter.limit(RATE_LIMITS["public"])
async def get_events(
    request: Request,
    page: int = Query(1, ge=1, description="Página (desde 1)"),
    search: Optional[str] = Query(None, description="Búsqueda en título o descripción de la página cargada"),
    db: AsyncSession = Depends(get_db)
):
    """
    Listar eventos paginados por fecha ascendente

    Endpoint público (no requiere autenticación).
    El total de páginas sale de un conteo separado; `search` filtra solo la página actual.
    """
    return await EventService.get_events_page(db, page=page, search=search)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: str,
    db: AsyncSession = Depends(get_db)
):
    """
    Obtener evento por ID

    Endpoint público (no requiere autenticación)
    """
    event = await EventService.get_event_response(db, event_id)
    if not event:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found"
        )
    return event


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMITS["admin"])
async def create_event(
    request: Request,
    event_data: EventCreate,
    db: AsyncSession = Depends(get_db),
    profile: Profile = Depends(get_current_profile)
):
    """
    Crear nuevo evento

    Requiere: perfil con is_admin
    """
    event = await EventService.create_event(
        db=db,
        event_data=event_data.model_dump(),
        actor_id=profile.id,
        is_admin=profile.is_admin
    )
    return EventResponse.from_model(event)


@router.put("/{event_id}", response_model=EventResponse)
@limiter.limit(RATE_LIMITS["admin"])
async def update_event(
    request: Request,
    event_id: str,
    event_data: EventUpdate,
    db: AsyncSession = Depends(get_db),
    profile: Profile = Depends(get_current_profile)
):
    """
    Actualizar evento

    Requiere: perfil con is_admin
    """
    try:
        event = await EventService.update_event(
            db=db,
            event_id=event_id,
            event_data=event_data.model_dump(exclude_unset=True),
            actor_id=profile.id,
            is_admin=profile.is_admin
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    if not event:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found"
        )
    return await EventService.get_event_response(db, event.id)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(RATE_LIMITS["admin"])
async def delete_event(
    request: Request,
    event_id: str,
    db: AsyncSession = Depends(get_db),
    profile: Profile = Depends(get_current_profile)
):
    """
    Eliminar evento

    Requiere: perfil con is_admin. Las reservas del evento se eliminan en cascada.
    """
    success = await EventService.delete_event(
        db=db,
        event_id=event_id,
        actor_id=profile.id,
        is_admin=profile.is_admin
    )
    if not success:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found"
        )
