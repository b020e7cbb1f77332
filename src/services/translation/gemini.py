"""Gemini 기반 번역 모델 호출 구현체"""

# pyright: reportMissingTypeStubs=false

import logging

from google import genai

from src.schemas.translation import TranslationModel
from src.services.cost import estimate_tokens
from src.services.translation.base import ProviderError, ProviderResponse

logger = logging.getLogger(__name__)


class GeminiTranslationClient:
    """Google Gemini API를 사용한 텍스트 번역"""

    def __init__(self, api_key: str, models: dict[TranslationModel, str]) -> None:
        self._api_key = api_key
        self._models = models

    async def translate(self, prompt: str, model: TranslationModel) -> ProviderResponse:
        """
        Raises:
            ProviderError: API 키 누락, 호출 실패, 빈 응답
        """
        if not self._api_key:
            raise ProviderError("GEMINI_API_KEY가 설정되지 않았습니다")

        model_name = self._models[model]
        client = genai.Client(api_key=self._api_key)

        try:
            response = await client.aio.models.generate_content(model=model_name, contents=prompt)
        except Exception as e:
            raise ProviderError(f"Gemini 호출 실패 ({model_name}): {e}") from e

        if not response.text:
            raise ProviderError(f"빈 응답 ({model_name})")

        usage = response.usage_metadata
        if usage is not None and usage.total_token_count:
            tokens_used = usage.total_token_count
        else:
            tokens_used = estimate_tokens(prompt + response.text)

        logger.info(f"Gemini 번역 완료: model={model_name}, tokens={tokens_used}")
        return ProviderResponse(text=response.text, tokens_used=tokens_used)
