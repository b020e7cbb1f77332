from pathlib import Path

import fakeredis
import pytest
import redis

from src.constants import RedisPrefix
from src.schemas.translation import CacheEntry, MangaContext, TranslationJob, TranslationModel
from src.services.cache import (
    TranslationCacheGateway,
    content_identity,
    file_identity,
    make_cache_key,
    text_identity,
)


def make_entry(
    content_id: str = "abc123", target_language: str = "en", translated: str = "Hello"
) -> CacheEntry:
    return CacheEntry(
        content_id=content_id,
        source_language="ja",
        target_language=target_language,
        original_text="こんにちは、元気ですか",
        translated_text=translated,
        model_used=TranslationModel.QUALITY,
    )


class TestIdentity:
    def test_text_identity_is_stable(self) -> None:
        assert text_identity("hello") == text_identity("hello")
        assert len(text_identity("hello")) == 16

    def test_context_changes_identity(self) -> None:
        context = MangaContext(series_title="One Piece")
        assert text_identity("hello") != text_identity("hello", context)

    def test_file_identity_uses_bytes(self, tmp_path: Path) -> None:
        a = tmp_path / "a.png"
        b = tmp_path / "b.png"
        a.write_bytes(b"same")
        b.write_bytes(b"same")

        assert file_identity(str(a)) == file_identity(str(b))

    def test_file_identity_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            file_identity(str(tmp_path / "missing.png"))

    def test_content_identity_prefers_explicit_id(self, tmp_path: Path) -> None:
        image = tmp_path / "page.png"
        image.write_bytes(b"bytes")

        explicit = TranslationJob(image_path=str(image), target_language="en", content_id="p1")
        by_image = TranslationJob(image_path=str(image), target_language="en")
        by_text = TranslationJob(text="hello", target_language="en")

        assert content_identity(explicit) == "p1"
        assert content_identity(by_image) == file_identity(str(image))
        assert content_identity(by_text) == text_identity("hello")


class TestTranslationCacheGateway:
    async def test_miss_returns_none(self, fake_redis: fakeredis.FakeRedis) -> None:
        gateway = TranslationCacheGateway()
        assert await gateway.lookup("nothing", "ja", "en") is None

    async def test_store_then_lookup(self, fake_redis: fakeredis.FakeRedis) -> None:
        gateway = TranslationCacheGateway()
        await gateway.store(make_entry())

        entry = await gateway.lookup("abc123", "ja", "en")
        assert entry is not None
        assert entry.translated_text == "Hello"

    async def test_lookup_increments_usage_count(self, fake_redis: fakeredis.FakeRedis) -> None:
        gateway = TranslationCacheGateway()
        await gateway.store(make_entry())

        await gateway.lookup("abc123", "ja", "en")
        entry = await gateway.lookup("abc123", "ja", "en")

        assert entry is not None
        assert entry.usage_count == 3

    async def test_key_includes_language_pair(self, fake_redis: fakeredis.FakeRedis) -> None:
        gateway = TranslationCacheGateway()
        await gateway.store(make_entry(target_language="en"))

        assert await gateway.lookup("abc123", "ja", "ko") is None

    async def test_store_sets_ttl(self, fake_redis: fakeredis.FakeRedis) -> None:
        gateway = TranslationCacheGateway()
        await gateway.store(make_entry())

        key = f"{RedisPrefix.CACHE}:{make_cache_key('abc123', 'ja', 'en')}"
        assert fake_redis.ttl(key) > 0  # type: ignore[reportOperatorIssue]

    async def test_store_merges_metadata(self, fake_redis: fakeredis.FakeRedis) -> None:
        gateway = TranslationCacheGateway()
        await gateway.store(make_entry())
        await gateway.rate("abc123", "ja", "en", 5)
        await gateway.toggle_favorite("abc123", "ja", "en")

        merged = await gateway.store(make_entry(translated="Hi"))

        assert merged.translated_text == "Hi"
        assert merged.usage_count == 2
        assert merged.user_rating == 5
        assert merged.is_favorited is True

    async def test_rate_out_of_range_raises(self, fake_redis: fakeredis.FakeRedis) -> None:
        gateway = TranslationCacheGateway()
        with pytest.raises(ValueError):
            await gateway.rate("abc123", "ja", "en", 6)

    async def test_rate_missing_entry_returns_none(self, fake_redis: fakeredis.FakeRedis) -> None:
        gateway = TranslationCacheGateway()
        assert await gateway.rate("missing", "ja", "en", 3) is None

    async def test_toggle_favorite_twice(self, fake_redis: fakeredis.FakeRedis) -> None:
        gateway = TranslationCacheGateway()
        await gateway.store(make_entry())

        first = await gateway.toggle_favorite("abc123", "ja", "en")
        second = await gateway.toggle_favorite("abc123", "ja", "en")

        assert first is not None and first.is_favorited is True
        assert second is not None and second.is_favorited is False

    async def test_statistics(self, fake_redis: fakeredis.FakeRedis) -> None:
        gateway = TranslationCacheGateway()
        await gateway.store(make_entry("a", "en"))
        await gateway.store(make_entry("b", "en"))
        await gateway.store(make_entry("c", "ko"))
        await gateway.rate("a", "ja", "en", 4)
        await gateway.rate("b", "ja", "en", 2)
        await gateway.toggle_favorite("c", "ja", "ko")

        stats = await gateway.statistics()

        assert stats.total_entries == 3
        assert stats.total_usage == 3
        assert stats.average_rating == pytest.approx(3.0)
        assert stats.favorited_count == 1
        assert stats.language_distribution == {"en": 2, "ko": 1}

    async def test_clear(self, fake_redis: fakeredis.FakeRedis) -> None:
        gateway = TranslationCacheGateway()
        await gateway.store(make_entry("a"))
        await gateway.store(make_entry("b"))

        assert await gateway.clear() == 2
        assert await gateway.lookup("a", "ja", "en") is None
        assert (await gateway.statistics()).total_entries == 0


class BrokenStore:
    """모든 연산이 Redis 연결 오류를 내는 저장소"""

    def __init__(self) -> None:
        self.puts = 0

    def get(self, key: str) -> CacheEntry | None:
        raise redis.ConnectionError("redis down")

    def put(self, key: str, entry: CacheEntry) -> None:
        self.puts += 1
        raise redis.ConnectionError("redis down")

    def entries(self) -> list[CacheEntry]:
        raise redis.ConnectionError("redis down")

    def clear(self) -> int:
        raise redis.ConnectionError("redis down")


class WriteOnlyFailingStore(BrokenStore):
    def get(self, key: str) -> CacheEntry | None:
        return None


class TestStorageFailure:
    async def test_lookup_error_is_miss(self) -> None:
        gateway = TranslationCacheGateway(BrokenStore())

        assert await gateway.lookup("abc123", "ja", "en") is None

    async def test_store_error_returns_entry(self) -> None:
        store = WriteOnlyFailingStore()
        gateway = TranslationCacheGateway(store)

        entry = await gateway.store(make_entry())

        assert entry.translated_text == "Hello"
        assert store.puts == 1

    async def test_store_error_on_read_returns_entry(self) -> None:
        gateway = TranslationCacheGateway(BrokenStore())

        entry = await gateway.store(make_entry())

        assert entry.content_id == "abc123"

    async def test_statistics_error_propagates(self) -> None:
        gateway = TranslationCacheGateway(BrokenStore())

        with pytest.raises(redis.RedisError):
            await gateway.statistics()
