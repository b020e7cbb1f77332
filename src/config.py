from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Redis (번역 캐시 저장소)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_cache_db: int = 0

    # App
    cors_origins: list[str] = ["http://localhost:5173"]
    log_level: str = "INFO"

    # Gemini API
    gemini_api_key: str = ""
    gemini_fast_model: str = "gemini-2.5-flash-lite"
    gemini_quality_model: str = "gemini-2.5-pro"
    gemini_ocr_model: str = "gemini-2.5-flash"

    # Providers
    translation_provider: str = "gemini"  # "gemini"
    ocr_provider: str = "gemini"  # "gemini"

    # Scheduling
    api_tier: Literal["free", "paid"] = "free"
    admission_poll_interval: float = 1.0  # 일일 한도 초과 시 재확인 주기 (초)
    inter_batch_delay: float = 0.5  # 벌크 배치 사이 대기 (초)
    batch_max_size: int = 5
    batch_max_wait_ms: int = 500

    # Cache
    cache_enabled: bool = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
