"""번역 캐시 게이트웨이

키: (content identity, source language, target language).
네트워크 요청을 큐에 넣기 전에 항상 먼저 조회한다.
저장 엔진은 CacheStore Protocol 뒤에 숨기고 기본 구현은 Redis.
"""

import hashlib
import json
import logging
from pathlib import Path
from typing import Protocol, cast

from pydantic import Field
from redis import RedisError

from src.constants import TTL, RedisPrefix
from src.infra.redis import get_redis
from src.schemas.base import BaseSchema
from src.schemas.translation import CacheEntry, MangaContext, TranslationJob

logger = logging.getLogger(__name__)


def text_identity(text: str, context: MangaContext | None = None) -> str:
    """텍스트 + 컨텍스트 기반 content identity"""
    fingerprint = context.fingerprint() if context is not None else ""
    return hashlib.sha256(f"{text}|{fingerprint}".encode()).hexdigest()[:16]


def file_identity(path: str) -> str:
    """이미지 바이트 기반 content identity

    Raises:
        OSError: 파일을 읽을 수 없는 경우
    """
    digest = hashlib.sha256(Path(path).read_bytes()).hexdigest()
    return digest[:16]


class CacheStatistics(BaseSchema):
    total_entries: int = 0
    total_usage: int = 0
    average_rating: float = 0.0
    favorited_count: int = 0
    language_distribution: dict[str, int] = Field(default_factory=dict)


class CacheStore(Protocol):
    """캐시 저장 엔진 인터페이스

    구현체:
    - RedisCacheStore: Redis (JSON 직렬화 + TTL)
    """

    def get(self, key: str) -> CacheEntry | None: ...
    def put(self, key: str, entry: CacheEntry) -> None: ...
    def entries(self) -> list[CacheEntry]: ...
    def clear(self) -> int: ...


class RedisCacheStore:
    def __init__(self, ttl: int = TTL.CACHE, prefix: str = RedisPrefix.CACHE) -> None:
        self._ttl = ttl
        self._prefix = prefix

    def _redis_key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    def get(self, key: str) -> CacheEntry | None:
        data = get_redis().get(self._redis_key(key))
        if data is None:
            return None
        return CacheEntry.model_validate(json.loads(cast(str, data)))

    def put(self, key: str, entry: CacheEntry) -> None:
        # 사용될 때마다 만료 시간 갱신 (마지막 사용 기준 30일)
        get_redis().set(self._redis_key(key), entry.model_dump_json(), ex=self._ttl)

    def entries(self) -> list[CacheEntry]:
        redis = get_redis()
        keys = list(redis.scan_iter(match=f"{self._prefix}:*"))
        if not keys:
            return []
        values = cast(list[str | None], redis.mget(keys))
        return [CacheEntry.model_validate(json.loads(v)) for v in values if v is not None]

    def clear(self) -> int:
        redis = get_redis()
        keys = list(redis.scan_iter(match=f"{self._prefix}:*"))
        if not keys:
            return 0
        return cast(int, redis.delete(*keys))


def content_identity(job: TranslationJob) -> str:
    """캐시 키용 content identity

    우선순위: 호출자 지정 content_id → 이미지 바이트 해시 → 텍스트 + 컨텍스트 해시

    Raises:
        OSError: 이미지 파일을 읽을 수 없는 경우
    """
    if job.content_id:
        return job.content_id
    if job.image_path is not None:
        return file_identity(job.image_path)
    return text_identity(job.text or "", job.context)


def make_cache_key(content_id: str, source_language: str, target_language: str) -> str:
    return f"{content_id}:{source_language}:{target_language}"


class TranslationCacheGateway:
    """캐시 조회/저장

    저장소 장애(RedisError)는 번역 작업을 실패시키지 않는다.
    조회 실패는 miss로, 저장 실패는 저장되지 않은 항목으로 처리하고 로그만 남긴다.
    """

    def __init__(self, store: CacheStore | None = None) -> None:
        self._store: CacheStore = store or RedisCacheStore()

    async def lookup(
        self, content_id: str, source_language: str, target_language: str
    ) -> CacheEntry | None:
        """캐시 조회. 적중 시 usage_count만 증가시킨다."""
        key = make_cache_key(content_id, source_language, target_language)
        try:
            entry = self._store.get(key)
            if entry is None:
                return None

            entry = entry.model_copy(update={"usage_count": entry.usage_count + 1})
            self._store.put(key, entry)
        except RedisError as e:
            logger.warning(f"캐시 조회 실패, miss로 처리: {key} ({type(e).__name__}: {e})")
            return None

        logger.info(f"캐시 적중: {key} (usage={entry.usage_count})")
        return entry

    async def store(self, entry: CacheEntry) -> CacheEntry:
        """캐시 저장

        같은 키가 이미 있으면 교체하되 사용 메타데이터는 합산한다
        (usage_count 합, rating/favorite은 기존 값 유지).
        저장소 오류 시 저장되지 않은 항목을 그대로 돌려준다.
        """
        key = make_cache_key(entry.content_id, entry.source_language, entry.target_language)
        try:
            existing = self._store.get(key)
            if existing is not None:
                entry = entry.model_copy(
                    update={
                        "usage_count": existing.usage_count + entry.usage_count,
                        "user_rating": entry.user_rating or existing.user_rating,
                        "is_favorited": entry.is_favorited or existing.is_favorited,
                    }
                )
            self._store.put(key, entry)
        except RedisError as e:
            logger.error(f"캐시 저장 실패: {key} ({type(e).__name__}: {e})")
            return entry

        logger.info(f"캐시 저장: {key}")
        return entry

    async def rate(
        self, content_id: str, source_language: str, target_language: str, rating: int
    ) -> CacheEntry | None:
        """번역 평가 (1~5). 항목이 없으면 None"""
        if not 1 <= rating <= 5:
            raise ValueError(f"rating은 1~5 사이여야 합니다: {rating}")

        key = make_cache_key(content_id, source_language, target_language)
        entry = self._store.get(key)
        if entry is None:
            return None

        entry = entry.model_copy(update={"user_rating": rating})
        self._store.put(key, entry)
        return entry

    async def toggle_favorite(
        self, content_id: str, source_language: str, target_language: str
    ) -> CacheEntry | None:
        key = make_cache_key(content_id, source_language, target_language)
        entry = self._store.get(key)
        if entry is None:
            return None

        entry = entry.model_copy(update={"is_favorited": not entry.is_favorited})
        self._store.put(key, entry)
        return entry

    async def statistics(self) -> CacheStatistics:
        entries = self._store.entries()
        ratings = [e.user_rating for e in entries if e.user_rating is not None]

        distribution: dict[str, int] = {}
        for e in entries:
            distribution[e.target_language] = distribution.get(e.target_language, 0) + 1

        return CacheStatistics(
            total_entries=len(entries),
            total_usage=sum(e.usage_count for e in entries),
            average_rating=sum(ratings) / len(ratings) if ratings else 0.0,
            favorited_count=sum(1 for e in entries if e.is_favorited),
            language_distribution=distribution,
        )

    async def clear(self) -> int:
        removed = self._store.clear()
        logger.info(f"번역 캐시 삭제: {removed}개")
        return removed
