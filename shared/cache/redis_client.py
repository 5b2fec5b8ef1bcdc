"""Cliente Redis para cache y locks distribuidos"""
import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import RedisError
import json
import uuid
from typing import Optional, Any
import asyncio
import logging

from shared.config import settings

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None
redis_pool: Optional[ConnectionPool] = None


class LockNotAcquired(Exception):
    """No se pudo adquirir un lock distribuido a tiempo"""


async def init_redis():
    """Inicializar conexión a Redis con pool de conexiones"""
    global redis_client, redis_pool

    redis_pool = ConnectionPool.from_url(
        settings.REDIS_URL,
        password=settings.REDIS_PASSWORD or None,
        max_connections=settings.REDIS_MAX_CONNECTIONS,
        decode_responses=True,
        socket_connect_timeout=5,
        socket_keepalive=True,
        retry_on_timeout=True,
        health_check_interval=30,
    )

    redis_client = redis.Redis(connection_pool=redis_pool)

    # Test connection
    try:
        await redis_client.ping()
        logger.info(f"Redis conectado exitosamente (pool max_connections={settings.REDIS_MAX_CONNECTIONS})")
    except RedisError as e:
        logger.error(f"Error conectando a Redis: {e}")


async def get_redis() -> redis.Redis:
    """Obtener cliente Redis"""
    if redis_client is None:
        await init_redis()
    return redis_client


async def close_redis():
    """Cerrar conexión a Redis y pool"""
    global redis_client, redis_pool
    if redis_client:
        await redis_client.aclose()
        redis_client = None
    if redis_pool:
        await redis_pool.disconnect()
        redis_pool = None
    logger.info("Redis desconectado")


class DistributedLock:
    """Lock distribuido usando Redis"""

    RELEASE_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    def __init__(self, key: str, timeout: int = 10, expire: int = 30):
        self.key = f"lock:{key}"
        self.timeout = timeout
        self.expire = expire
        self.identifier = None

    async def acquire(self) -> bool:
        """Adquirir lock (False si no se obtiene a tiempo o Redis no responde)"""
        identifier = str(uuid.uuid4())

        try:
            redis_conn = await get_redis()
            loop = asyncio.get_running_loop()
            end_time = loop.time() + self.timeout
            while loop.time() < end_time:
                if await redis_conn.set(self.key, identifier, nx=True, ex=self.expire):
                    self.identifier = identifier
                    return True
                await asyncio.sleep(0.1)
        except RedisError as e:
            logger.warning(f"Redis no disponible al adquirir lock {self.key}: {e}")

        return False

    async def release(self):
        """Liberar lock (solo el owner puede liberarlo)"""
        if not self.identifier:
            return

        try:
            redis_conn = await get_redis()
            await redis_conn.eval(self.RELEASE_SCRIPT, 1, self.key, self.identifier)
        except RedisError as e:
            # El lock expira solo tras `expire` segundos
            logger.warning(f"Redis no disponible al liberar lock {self.key}: {e}")
        self.identifier = None

    async def __aenter__(self):
        if not await self.acquire():
            raise LockNotAcquired(f"No se pudo adquirir lock: {self.key}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.release()


async def cache_get(key: str) -> Optional[Any]:
    """Obtener valor del cache (None si no existe o Redis no responde)"""
    try:
        redis_conn = await get_redis()
        value = await redis_conn.get(key)
    except RedisError as e:
        logger.warning(f"Cache no disponible al leer {key}: {e}")
        return None
    if value:
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    return None


async def cache_set(key: str, value: Any, expire: int = 3600):
    """Guardar valor en cache"""
    if isinstance(value, (dict, list)):
        value = json.dumps(value)
    try:
        redis_conn = await get_redis()
        await redis_conn.setex(key, expire, value)
    except RedisError as e:
        logger.warning(f"Cache no disponible al escribir {key}: {e}")


async def cache_delete(key: str):
    """Eliminar del cache"""
    try:
        redis_conn = await get_redis()
        await redis_conn.delete(key)
    except RedisError as e:
        logger.warning(f"Cache no disponible al eliminar {key}: {e}")


async def cache_delete_pattern(pattern: str) -> int:
    """Eliminar todas las claves que coinciden con el patrón"""
    deleted = 0
    try:
        redis_conn = await get_redis()
        async for key in redis_conn.scan_iter(match=pattern):
            deleted += await redis_conn.delete(key)
    except RedisError as e:
        logger.warning(f"Cache no disponible al invalidar {pattern}: {e}")
    return deleted


async def cache_incr(key: str) -> Optional[int]:
    """Incrementar un contador (None si Redis no responde)"""
    try:
        redis_conn = await get_redis()
        return await redis_conn.incr(key)
    except RedisError as e:
        logger.warning(f"Cache no disponible al incrementar {key}: {e}")
        return None
