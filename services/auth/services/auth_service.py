"""Servicio de autenticación: sesión de Supabase Auth + perfil local"""
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict
import logging

from shared.auth.supabase_client import AuthSession, SupabaseAuthClient
from shared.auth.supabase_validator import get_token_cache_key
from shared.cache.redis_client import cache_delete
from services.profiles.services.profile_service import ProfileService

logger = logging.getLogger(__name__)


class AuthService:
    """Operaciones de sesión que además mantienen el perfil de la identidad"""

    def __init__(self, client: SupabaseAuthClient):
        self.client = client
        self.profiles = ProfileService()

    async def sign_up(
        self,
        db: AsyncSession,
        email: str,
        password: str,
        full_name: str
    ) -> Dict[str, Any]:
        """
        Registrar identidad y crear su perfil

        Raises:
            AuthError: Si Supabase Auth rechaza el registro
        """
        result = await self.client.sign_up(email, password, full_name=full_name)
        user = result["user"]
        profile = await self.profiles.ensure_profile(db, user.id, user.user_metadata)
        logger.info(f"Identidad registrada: {user.id}")
        return {"user": user, "session": result["session"], "profile": profile}

    async def sign_in(self, db: AsyncSession, email: str, password: str) -> AuthSession:
        """
        Iniciar sesión; el perfil se crea si la identidad aún no lo tiene

        Raises:
            AuthError: Si las credenciales son inválidas
        """
        session = await self.client.sign_in(email, password)
        await self.profiles.ensure_profile(db, session.user.id, session.user.user_metadata)
        return session

    async def sign_out(self, access_token: str) -> None:
        """Revocar la sesión en Supabase Auth y olvidar su validación cacheada"""
        try:
            await self.client.sign_out(access_token)
        finally:
            await cache_delete(get_token_cache_key(access_token))
