"""번역 요청/스케줄링 데이터 모델"""

import hashlib
import json
import uuid
from datetime import UTC, datetime
from enum import StrEnum
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.constants import JobId
from src.schemas.base import BaseSchema


class TranslationModel(StrEnum):
    """모델 등급. 실제 provider 모델명은 설정에서 매핑한다."""

    FAST = "fast"
    QUALITY = "quality"


class BubbleType(StrEnum):
    """말풍선 종류 (번역 문체 결정용 컨텍스트)"""

    DIALOGUE = "dialogue"
    THOUGHT = "thought"
    NARRATION = "narration"
    SOUND_EFFECT = "sound_effect"
    TITLE = "title"


class MangaContext(BaseSchema):
    """만화 번역 컨텍스트"""

    series_title: str | None = None
    genre: str | None = None
    character_names: dict[str, str] = Field(default_factory=dict)  # 이름 → 설명
    previous_dialogue: str | None = None
    bubble_type: BubbleType = BubbleType.DIALOGUE

    def fingerprint(self) -> str:
        """동일 텍스트라도 컨텍스트가 다르면 캐시를 분리하기 위한 안정적인 해시"""
        payload = json.dumps(self.model_dump(mode="json"), sort_keys=True, ensure_ascii=False)
        return hashlib.sha256(payload.encode()).hexdigest()[:16]


def _generate_job_id() -> str:
    return f"{JobId.PREFIX}{uuid.uuid4().hex[:8]}"


class TranslationJob(BaseModel):
    """번역 작업 단위

    text(수동 입력) 또는 image_path(OCR 대상) 중 정확히 하나가 필요하다.
    호출자가 기다리는 핸들은 제출 시 반환되는 Future이며 여기에는 저장하지 않는다.
    """

    job_id: str = Field(default_factory=_generate_job_id)
    text: str | None = None
    image_path: str | None = None
    content_id: str | None = None  # 지정 시 캐시 키로 그대로 사용
    source_language: str = "auto"
    target_language: str
    context: MangaContext | None = None
    priority: int = 0  # 높을수록 먼저 처리
    preferred_model: TranslationModel | None = None  # None이면 ModelSelector가 결정
    use_cache: bool = True
    ocr_language: str = "ja"

    @model_validator(mode="after")
    def validate_source(self) -> Self:
        if (self.text is None) == (self.image_path is None):
            raise ValueError("text와 image_path 중 정확히 하나가 필요합니다")
        return self


class TranslationResult(BaseModel):
    """번역 모델 호출 결과"""

    translated_text: str
    source_language: str
    model_used: TranslationModel
    confidence: float = 0.9
    tokens_used: int = 0


class ApiTier(BaseModel):
    """요청 한도 설정 (불변)"""

    model_config = ConfigDict(frozen=True)

    name: str
    requests_per_minute: int = Field(gt=0)
    requests_per_day: int = Field(gt=0)


class ApiTiers:
    FREE = ApiTier(name="Free", requests_per_minute=15, requests_per_day=1500)
    PAID = ApiTier(name="Paid", requests_per_minute=60, requests_per_day=15000)

    @classmethod
    def get(cls, name: str) -> ApiTier:
        """이름으로 티어 조회 (대소문자 무시)

        Raises:
            ValueError: 알 수 없는 티어
        """
        tiers = {"free": cls.FREE, "paid": cls.PAID}
        try:
            return tiers[name.lower()]
        except KeyError:
            raise ValueError(f"Unknown API tier: {name!r}") from None


class UsageStats(BaseSchema):
    """API 사용량 통계

    스케줄러만 변경한다. 외부에는 deep copy 스냅샷으로 노출.
    """

    requests_today: int = 0
    requests_this_minute: int = 0
    total_cost: float = 0.0
    cache_hits: int = 0
    cache_misses: int = 0
    request_timestamps: list[float] = Field(default_factory=list)  # monotonic 초
    model_usage: dict[str, int] = Field(default_factory=dict)
    language_pair_usage: dict[str, int] = Field(default_factory=dict)

    def reset_daily(self) -> None:
        self.requests_today = 0

    def reset(self) -> None:
        self.requests_today = 0
        self.requests_this_minute = 0
        self.total_cost = 0.0
        self.cache_hits = 0
        self.cache_misses = 0
        self.request_timestamps.clear()
        self.model_usage.clear()
        self.language_pair_usage.clear()


def language_pair(source_language: str, target_language: str) -> str:
    return f"{source_language}->{target_language}"


def _utc_now() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


class CacheEntry(BaseSchema):
    """번역 캐시 항목

    생성 후 usage_count / user_rating / is_favorited 외에는 변경하지 않는다.
    """

    content_id: str
    source_language: str
    target_language: str
    original_text: str
    translated_text: str
    model_used: TranslationModel
    confidence: float = 0.9
    usage_count: int = 1
    user_rating: int | None = Field(default=None, ge=1, le=5)
    is_favorited: bool = False
    context: str | None = None  # MangaContext fingerprint
    created_at: str = Field(default_factory=_utc_now)
