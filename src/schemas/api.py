from pydantic import Field

from src.constants import Limits
from src.schemas.base import BaseSchema
from src.schemas.translation import ApiTier, MangaContext, TranslationModel, UsageStats


class TextTranslateRequest(BaseSchema):
    text: str = Field(min_length=1)
    source_language: str = "auto"
    target_language: str
    priority: int = 0
    use_cache: bool = True
    preferred_model: TranslationModel | None = None
    context: MangaContext | None = None


class BulkTranslateRequest(BaseSchema):
    texts: list[str] = Field(min_length=1, max_length=Limits.MAX_BULK_TEXTS)
    source_language: str = "auto"
    target_language: str
    priority: int = 0
    context: MangaContext | None = None


class TierUpdateRequest(BaseSchema):
    tier: str


class UsageResponse(BaseSchema):
    tier: ApiTier
    usage: UsageStats
    remaining_minute_quota: int
    remaining_daily_quota: int
    recommended_tier: str
    queue_size: int


class CancelResponse(BaseSchema):
    cancelled: int


class CacheKeyRequest(BaseSchema):
    content_id: str = Field(min_length=1)
    source_language: str
    target_language: str


class CacheRatingRequest(CacheKeyRequest):
    rating: int = Field(ge=1, le=5)


class CacheClearResponse(BaseSchema):
    removed: int
