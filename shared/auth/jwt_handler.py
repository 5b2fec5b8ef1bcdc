"""Manejo de JWT tokens (formato Supabase Auth)"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict
from jose import JWTError, jwt
import logging

from shared.config import settings

logger = logging.getLogger(__name__)


def create_access_token(data: Dict, expires_delta: Optional[timedelta] = None) -> str:
    '''Crear token de acceso JWT firmado con el secreto del proyecto Supabase'''
    if not settings.SUPABASE_JWT_SECRET:
        raise RuntimeError("SUPABASE_JWT_SECRET no está configurado")

    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES))

    to_encode.setdefault('aud', settings.JWT_AUDIENCE)
    to_encode.setdefault('role', 'authenticated')
    to_encode.update({'exp': expire, 'iat': now})
    return jwt.encode(to_encode, settings.SUPABASE_JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Optional[Dict]:
    '''Decodificar y validar token JWT localmente'''
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
        )
    except JWTError as e:
        logger.debug(f"Token rechazado: {e}")
        return None


async def verify_token(token: str) -> Optional[Dict]:
    '''
    Verificar token.
    Con SUPABASE_JWT_SECRET configurado se valida localmente (firma HS256).
    Sin secreto, los tokens emitidos por Supabase Auth se validan contra el Auth server.
    '''
    if settings.SUPABASE_JWT_SECRET:
        return decode_token(token)

    try:
        issuer = jwt.get_unverified_claims(token).get('iss', '')
    except JWTError:
        return None

    if '/auth/v1' in issuer:
        from shared.auth.supabase_validator import verify_supabase_token
        return await verify_supabase_token(token)

    logger.warning("Token sin issuer de Supabase y sin SUPABASE_JWT_SECRET configurado")
    return None


def identity_from_payload(payload: Dict) -> Optional[Dict]:
    '''Construir la identidad del usuario desde los claims del token'''
    user_id = payload.get('sub') or payload.get('user_id')
    if not user_id:
        return None

    return {
        'user_id': user_id,
        'email': payload.get('email'),
        'user_metadata': payload.get('user_metadata') or {},
    }
