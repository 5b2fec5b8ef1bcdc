"""Servicio de perfiles de usuario"""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from typing import Any, Dict, List, Optional
import logging

from shared.auth.policies import as_uuid, enforce
from shared.database.models import Profile

logger = logging.getLogger(__name__)

# Campos que el dueño del perfil puede modificar (id e is_admin quedan fuera)
EDITABLE_FIELDS = ("username", "full_name", "avatar_url")


class ProfileService:
    """Servicio para operaciones con perfiles"""

    async def get_profile(self, db: AsyncSession, profile_id: Any) -> Optional[Profile]:
        """Obtener perfil por ID (lectura pública)"""
        profile_uuid = as_uuid(profile_id)
        if profile_uuid is None:
            return None
        return await db.get(Profile, profile_uuid)

    async def list_profiles(
        self,
        db: AsyncSession,
        limit: int = 50,
        offset: int = 0
    ) -> List[Profile]:
        """Listar perfiles (lectura pública)"""
        stmt = select(Profile).order_by(Profile.created_at.asc(), Profile.id.asc()).limit(limit).offset(offset)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def ensure_profile(
        self,
        db: AsyncSession,
        user_id: Any,
        user_metadata: Optional[Dict[str, Any]] = None
    ) -> Profile:
        """
        Obtener o crear el perfil de una identidad externa.

        Equivale al trigger handle_new_user: la primera vez que aparece una
        identidad se crea exactamente un perfil con full_name y avatar_url
        tomados de su metadata. Llamadas posteriores retornan el mismo perfil.

        Raises:
            ValueError: Si el id de la identidad no es un UUID
        """
        profile_uuid = as_uuid(user_id)
        if profile_uuid is None:
            raise ValueError("Invalid identity id")

        profile = await db.get(Profile, profile_uuid)
        if profile:
            return profile

        metadata = user_metadata or {}
        profile = Profile(
            id=profile_uuid,
            full_name=metadata.get("full_name"),
            avatar_url=metadata.get("avatar_url"),
            is_admin=False,
        )
        db.add(profile)
        try:
            await db.commit()
        except IntegrityError:
            # Otro request creó el perfil en paralelo
            await db.rollback()
            profile = await db.get(Profile, profile_uuid)
            if profile is None:
                raise
            return profile

        await db.refresh(profile)
        logger.info(f"Perfil creado para identidad {profile_uuid}")
        return profile

    async def update_profile(
        self,
        db: AsyncSession,
        profile_id: Any,
        profile_data: Dict[str, Any],
        actor_id: Any
    ) -> Optional[Profile]:
        """
        Actualizar el perfil propio

        Raises:
            PolicyViolation: Si el actor no es el dueño del perfil
            ValueError: Si el username ya está en uso
        """
        profile = await self.get_profile(db, profile_id)
        if not profile:
            return None

        enforce("profiles", "update", actor_id, profile)

        for field in EDITABLE_FIELDS:
            if field in profile_data:
                setattr(profile, field, profile_data[field])

        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise ValueError("Username already taken")

        await db.refresh(profile)
        return profile
