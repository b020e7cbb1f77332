"""Translation Client Protocol

교체 가능한 번역 모델 호출 구현을 위한 인터페이스 정의.
"""

from typing import Protocol

from pydantic import BaseModel

from src.schemas.translation import TranslationModel


class ProviderError(Exception):
    """번역 모델 호출 실패 (네트워크, 쿼터, 응답 형식 등)

    폴백 정책은 원인과 무관하게 동일하게 취급한다.
    """


class ProviderResponse(BaseModel):
    text: str
    tokens_used: int = 0


class TranslationClient(Protocol):
    """번역 모델 호출 인터페이스

    구현체:
    - GeminiTranslationClient: Google Gemini API
    """

    async def translate(self, prompt: str, model: TranslationModel) -> ProviderResponse:
        """프롬프트를 지정 모델로 실행

        Args:
            prompt: 완성된 번역 프롬프트
            model: 모델 등급 (FAST / QUALITY)

        Returns:
            ProviderResponse: 응답 텍스트 + 사용 토큰 수

        Raises:
            ProviderError: 호출 실패 시
        """
        ...
