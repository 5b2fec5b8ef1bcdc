"""Rutas de perfiles"""
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from shared.database.connection import get_db
from shared.database.models import Profile
from shared.auth.dependencies import get_current_profile
from services.profiles.models.profile import ProfileResponse, ProfileUpdate
from services.profiles.services.profile_service import ProfileService


router = APIRouter()


@router.get("", response_model=List[ProfileResponse])
async def list_profiles(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db)
):
    """
    Listar perfiles

    Endpoint público (no requiere autenticación)
    """
    profiles = await ProfileService().list_profiles(db, limit=limit, offset=offset)
    return [ProfileResponse.from_model(p) for p in profiles]


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(profile: Profile = Depends(get_current_profile)):
    """Perfil del usuario autenticado"""
    return ProfileResponse.from_model(profile)


@router.patch("/me", response_model=ProfileResponse)
async def update_my_profile(
    profile_data: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    profile: Profile = Depends(get_current_profile)
):
    """
    Actualizar el perfil propio

    Solo username, full_name y avatar_url son editables.
    """
    try:
        updated = await ProfileService().update_profile(
            db,
            profile_id=profile.id,
            profile_data=profile_data.model_dump(exclude_unset=True),
            actor_id=profile.id,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return ProfileResponse.from_model(updated)


@router.get("/{profile_id}", response_model=ProfileResponse)
async def get_profile(
    profile_id: str,
    db: AsyncSession = Depends(get_db)
):
    """
    Obtener perfil por ID

    Endpoint público (no requiere autenticación)
    """
    profile = await ProfileService().get_profile(db, profile_id)
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return ProfileResponse.from_model(profile)
