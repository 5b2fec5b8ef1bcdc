"""Dependencies de autenticación para FastAPI"""
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, Dict

from shared.auth.jwt_handler import verify_token, identity_from_payload
from shared.database.connection import get_db
from shared.database.models import Profile
from services.profiles.services.profile_service import ProfileService

SESSION_COOKIE = "access_token"

optional_bearer = HTTPBearer(auto_error=False)


def get_request_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = None
) -> Optional[str]:
    '''Token del header Authorization o, para las páginas HTML, de la cookie de sesión'''
    if credentials is not None:
        return credentials.credentials
    return request.cookies.get(SESSION_COOKIE)


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_bearer)
) -> Optional[Dict]:
    '''Obtener usuario actual si está autenticado, None si no lo está (para endpoints públicos)'''
    token = get_request_token(request, credentials)
    if not token:
        return None

    payload = await verify_token(token)
    if payload is None:
        return None

    return identity_from_payload(payload)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_bearer)
) -> Dict:
    '''Obtener usuario actual desde token JWT'''
    token = get_request_token(request, credentials)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail='Not authenticated',
            headers={'WWW-Authenticate': 'Bearer'},
        )

    payload = await verify_token(token)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail='Invalid or expired token',
            headers={'WWW-Authenticate': 'Bearer'},
        )

    identity = identity_from_payload(payload)
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail='Invalid token: missing subject',
        )

    return identity


async def get_current_profile(
    current_user: Dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Profile:
    '''Perfil del usuario actual; se crea en el primer request autenticado de la identidad'''
    try:
        return await ProfileService().ensure_profile(
            db,
            current_user['user_id'],
            current_user.get('user_metadata'),
        )
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail='Invalid token: malformed subject',
        )
