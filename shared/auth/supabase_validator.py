import hashlib
import logging
from typing import Optional, Dict
from jose import jwt, JWTError

from shared.auth.supabase_client import AuthError, get_auth_client
from shared.cache.redis_client import cache_get, cache_set

logger = logging.getLogger(__name__)

CACHE_TTL_SECONDS = 600  # 10 minutos


def get_token_cache_key(token: str) -> str:
    '''Generar clave de caché para un token (usando hash para no almacenar el token completo)'''
    token_hash = hashlib.sha256(token.encode()).hexdigest()
    return f'jwt:validated:{token_hash[:16]}'


async def verify_supabase_token(token: str) -> Optional[Dict]:
    '''
    Verifica un JWT de Supabase delegando la validación al Auth server.

    Los tokens validados se cachean en Redis por 10 minutos.
    '''
    cache_key = get_token_cache_key(token)
    cached_payload = await cache_get(cache_key)
    if cached_payload:
        return cached_payload

    try:
        user = await get_auth_client().get_user(token)
    except AuthError as e:
        logger.info(f'Token rechazado por Supabase Auth: {e.message}')
        return None

    try:
        unverified_payload = jwt.get_unverified_claims(token)
    except JWTError:
        unverified_payload = {}

    payload = {
        'sub': user.id,
        'user_id': user.id,
        'email': user.email,
        'aud': unverified_payload.get('aud'),
        'exp': unverified_payload.get('exp'),
        'iat': unverified_payload.get('iat'),
        'iss': unverified_payload.get('iss'),
        'user_metadata': user.user_metadata,
        'app_metadata': unverified_payload.get('app_metadata', {})
    }

    await cache_set(cache_key, payload, expire=CACHE_TTL_SECONDS)
    return payload
