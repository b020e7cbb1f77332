import redis

from src.config import get_settings


class _RedisHolder:
    client: redis.Redis | None = None


def get_redis() -> redis.Redis:
    """번역 캐시용 Redis 클라이언트 (프로세스 단일 인스턴스)"""
    if _RedisHolder.client is None:
        settings = get_settings()
        _RedisHolder.client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            db=settings.redis_cache_db,
            decode_responses=True,
        )
    return _RedisHolder.client


def ping_redis() -> bool:
    try:
        return bool(get_redis().ping())
    except redis.RedisError:
        return False


def close_redis() -> None:
    if _RedisHolder.client is not None:
        _RedisHolder.client.close()
        _RedisHolder.client = None


def set_redis(client: redis.Redis | None) -> None:
    _RedisHolder.client = client
