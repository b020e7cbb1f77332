"""GeminiTranslationClient 구현체 테스트"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.schemas.translation import TranslationModel
from src.services.translation.base import ProviderError
from src.services.translation.gemini import GeminiTranslationClient

GEMINI_MODULE = "src.services.translation.gemini"

MODELS = {
    TranslationModel.FAST: "fast-model",
    TranslationModel.QUALITY: "quality-model",
}


def mock_response(text: str | None, total_tokens: int | None = 42) -> MagicMock:
    response = MagicMock()
    response.text = text
    if total_tokens is None:
        response.usage_metadata = None
    else:
        response.usage_metadata.total_token_count = total_tokens
    return response


class TestGeminiTranslationClient:
    def setup_method(self) -> None:
        self.client = GeminiTranslationClient(api_key="test-key", models=MODELS)

    async def test_translate_returns_text_and_tokens(self) -> None:
        with patch(f"{GEMINI_MODULE}.genai") as mock_genai:
            generate = AsyncMock(return_value=mock_response("Hello"))
            mock_genai.Client.return_value.aio.models.generate_content = generate

            response = await self.client.translate("prompt", TranslationModel.FAST)

        assert response.text == "Hello"
        assert response.tokens_used == 42
        mock_genai.Client.assert_called_once_with(api_key="test-key")
        assert generate.call_args.kwargs["model"] == "fast-model"

    async def test_quality_model_name(self) -> None:
        with patch(f"{GEMINI_MODULE}.genai") as mock_genai:
            generate = AsyncMock(return_value=mock_response("Hello"))
            mock_genai.Client.return_value.aio.models.generate_content = generate

            await self.client.translate("prompt", TranslationModel.QUALITY)

        assert generate.call_args.kwargs["model"] == "quality-model"

    async def test_estimates_tokens_without_usage_metadata(self) -> None:
        with patch(f"{GEMINI_MODULE}.genai") as mock_genai:
            mock_genai.Client.return_value.aio.models.generate_content = AsyncMock(
                return_value=mock_response("abcd", total_tokens=None)
            )

            response = await self.client.translate("abcd", TranslationModel.FAST)

        assert response.tokens_used == 2

    async def test_no_api_key_raises(self) -> None:
        client = GeminiTranslationClient(api_key="", models=MODELS)
        with pytest.raises(ProviderError):
            await client.translate("prompt", TranslationModel.FAST)

    async def test_empty_response_raises(self) -> None:
        with patch(f"{GEMINI_MODULE}.genai") as mock_genai:
            mock_genai.Client.return_value.aio.models.generate_content = AsyncMock(
                return_value=mock_response(None)
            )

            with pytest.raises(ProviderError):
                await self.client.translate("prompt", TranslationModel.FAST)

    async def test_sdk_exception_wrapped(self) -> None:
        with patch(f"{GEMINI_MODULE}.genai") as mock_genai:
            mock_genai.Client.return_value.aio.models.generate_content = AsyncMock(
                side_effect=RuntimeError("429 RESOURCE_EXHAUSTED")
            )

            with pytest.raises(ProviderError, match="RESOURCE_EXHAUSTED"):
                await self.client.translate("prompt", TranslationModel.FAST)
