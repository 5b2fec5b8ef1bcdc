"""Rutas de autenticación"""
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict, Optional

from shared.database.connection import get_db
from shared.database.models import Profile
from shared.auth.dependencies import (
    get_current_user,
    get_current_profile,
    get_request_token,
    optional_bearer,
)
from shared.auth.supabase_client import AuthError, AuthSession, SupabaseAuthClient, get_auth_client
from shared.utils.rate_limiter import limiter, RATE_LIMITS
from services.auth.models.auth import SignInRequest, SignUpRequest, SignUpResponse, MeResponse
from services.auth.services.auth_service import AuthService
from services.profiles.models.profile import ProfileResponse


router = APIRouter()


def _auth_http_error(e: AuthError) -> HTTPException:
    # Errores 5xx del proveedor se exponen como 503
    code = e.status_code if e.status_code < 500 else status.HTTP_503_SERVICE_UNAVAILABLE
    return HTTPException(status_code=code, detail=e.message)


@router.post("/sign-up", response_model=SignUpResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMITS["auth"])
async def sign_up(
    request: Request,
    payload: SignUpRequest,
    db: AsyncSession = Depends(get_db),
    client: SupabaseAuthClient = Depends(get_auth_client)
):
    """
    Crear cuenta

    Crea la identidad en Supabase Auth y su perfil. `session` es null cuando
    el proyecto exige confirmar el email.
    """
    try:
        result = await AuthService(client).sign_up(db, payload.email, payload.password, payload.full_name)
    except AuthError as e:
        raise _auth_http_error(e)

    return SignUpResponse(
        user_id=result["user"].id,
        email=result["user"].email,
        session=result["session"],
        profile=ProfileResponse.from_model(result["profile"]),
    )


@router.post("/sign-in", response_model=AuthSession)
@limiter.limit(RATE_LIMITS["auth"])
async def sign_in(
    request: Request,
    payload: SignInRequest,
    db: AsyncSession = Depends(get_db),
    client: SupabaseAuthClient = Depends(get_auth_client)
):
    """Iniciar sesión con email y contraseña"""
    try:
        return await AuthService(client).sign_in(db, payload.email, payload.password)
    except AuthError as e:
        raise _auth_http_error(e)


@router.post("/sign-out", status_code=status.HTTP_204_NO_CONTENT)
async def sign_out(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_bearer),
    current_user: Dict = Depends(get_current_user),
    client: SupabaseAuthClient = Depends(get_auth_client)
):
    """Cerrar sesión (revoca el token en Supabase Auth)"""
    try:
        await AuthService(client).sign_out(get_request_token(request, credentials))
    except AuthError as e:
        raise _auth_http_error(e)


@router.get("/me", response_model=MeResponse)
async def me(
    current_user: Dict = Depends(get_current_user),
    profile: Profile = Depends(get_current_profile)
):
    """Identidad actual y su perfil"""
    return MeResponse(
        user_id=str(current_user["user_id"]),
        email=current_user.get("email"),
        profile=ProfileResponse.from_model(profile),
    )
