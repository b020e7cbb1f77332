"""Translation 모듈

사용법:
    from src.services.translation import get_translation_client

    client = get_translation_client()
    response = await client.translate(prompt, TranslationModel.FAST)

백엔드 선택 (.env TRANSLATION_PROVIDER):
    - "gemini": Google Gemini API (기본값)
"""

from src.config import get_settings
from src.schemas.translation import TranslationModel
from src.services.translation.base import ProviderError, ProviderResponse, TranslationClient
from src.services.translation.gemini import GeminiTranslationClient

__all__ = [
    "ProviderError",
    "ProviderResponse",
    "TranslationClient",
    "get_translation_client",
    "set_translation_client",
]

_client: TranslationClient | None = None


def get_translation_client() -> TranslationClient:
    """설정에 따라 번역 백엔드 반환"""
    global _client
    if _client is None:
        settings = get_settings()
        if settings.translation_provider == "gemini":
            _client = GeminiTranslationClient(
                api_key=settings.gemini_api_key,
                models={
                    TranslationModel.FAST: settings.gemini_fast_model,
                    TranslationModel.QUALITY: settings.gemini_quality_model,
                },
            )
        else:
            raise ValueError(f"Unknown translation provider: {settings.translation_provider!r}")
    return _client


def set_translation_client(client: TranslationClient | None) -> None:
    """번역 백엔드 설정 (테스트용)"""
    global _client
    _client = client
