from collections.abc import Generator
from pathlib import Path

import fakeredis
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from src.infra.redis import set_redis
from src.main import app
from src.schemas.pipeline import OcrResult
from src.schemas.translation import TranslationModel
from src.services.cache import TranslationCacheGateway
from src.services.ocr.base import OcrError
from src.services.pipeline import TranslationPipeline
from src.services.runtime import set_pipeline
from src.services.scheduler import ApiRequestScheduler
from src.services.translation.base import ProviderError, ProviderResponse


class StubTranslationClient:
    """모델 이름이 포함된 고정 번역을 돌려주는 클라이언트"""

    def __init__(self) -> None:
        self.calls: list[TranslationModel] = []
        self.failing: set[TranslationModel] = set()

    async def translate(self, prompt: str, model: TranslationModel) -> ProviderResponse:
        self.calls.append(model)
        if model in self.failing:
            raise ProviderError(f"{model} unavailable")
        return ProviderResponse(text=f"Translated by {model}", tokens_used=20)


class StubOcr:
    def __init__(self) -> None:
        self.result = OcrResult(full_text="")
        self.error: OcrError | None = None
        self.paths: list[str] = []

    async def recognize(self, image_path: str, language: str) -> OcrResult:
        self.paths.append(image_path)
        assert Path(image_path).exists()
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def fake_redis() -> Generator[fakeredis.FakeRedis, None, None]:
    r = fakeredis.FakeRedis(decode_responses=True)
    set_redis(r)
    yield r
    set_redis(None)


@pytest.fixture
def image_file(tmp_path: Path) -> Path:
    """테스트용 실제 PNG 이미지 파일"""
    path = tmp_path / "page.png"
    Image.new("RGB", (200, 300), color="white").save(path, format="PNG")
    return path


@pytest.fixture
def translation_client() -> StubTranslationClient:
    return StubTranslationClient()


@pytest.fixture
def ocr() -> StubOcr:
    return StubOcr()


@pytest.fixture
def pipeline(
    fake_redis: fakeredis.FakeRedis, translation_client: StubTranslationClient, ocr: StubOcr
) -> Generator[TranslationPipeline, None, None]:
    scheduler = ApiRequestScheduler(translation_client, batch_max_wait_ms=10)
    p = TranslationPipeline(scheduler, ocr, TranslationCacheGateway(), inter_page_delay=0.0)
    set_pipeline(p)
    yield p
    set_pipeline(None)


@pytest.fixture
def client(pipeline: TranslationPipeline) -> TestClient:
    return TestClient(app)
