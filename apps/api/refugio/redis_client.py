from __future__ import annotations

from redis import Redis
from redis.connection import ConnectionPool

from refugio.core.config import settings

_pool: ConnectionPool | None = None


def get_redis(url: str | None = None) -> Redis:
    global _pool
    if url:
        return Redis(connection_pool=ConnectionPool.from_url(url, decode_responses=True))
    if _pool is None:
        _pool = ConnectionPool.from_url(settings.redis_url, decode_responses=True)
    return Redis(connection_pool=_pool)
