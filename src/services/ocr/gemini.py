"""Gemini Vision 기반 OCR 구현체"""

# pyright: reportMissingTypeStubs=false

import io
import json
import logging
from typing import Any, cast

from google import genai
from google.genai import types
from PIL import Image, UnidentifiedImageError

from src.schemas.pipeline import BBox, OcrRegion, OcrResult
from src.services.ocr.base import NoTextFoundError, OcrError

logger = logging.getLogger(__name__)

OCR_PROMPT = """이 이미지는 만화/웹툰 페이지입니다.
말풍선, 나레이션, 효과음을 포함한 모든 텍스트를 읽어주세요.
원문 언어 힌트: {language}

규칙:
- 읽는 순서대로 나열
- bbox는 원본 이미지 기준 픽셀 좌표 [x1, y1, x2, y2]
- 텍스트가 없으면 빈 배열

JSON 배열로만 응답:
[{{"text": "こんにちは", "bbox": [10, 20, 110, 80]}}, ...]"""


class GeminiOcr:
    """Google Gemini Vision을 사용한 텍스트 인식"""

    def __init__(self, api_key: str, model: str) -> None:
        self._api_key = api_key
        self._model = model

    async def recognize(self, image_path: str, language: str) -> OcrResult:
        """
        Raises:
            NoTextFoundError: 인식된 텍스트 없음
            OcrError: API 키 누락, 이미지 로드 실패, 빈 응답, 파싱 실패
        """
        if not self._api_key:
            raise OcrError("GEMINI_API_KEY가 설정되지 않았습니다")

        image_part = self._load_image_part(image_path)
        client = genai.Client(api_key=self._api_key)

        try:
            response = await client.aio.models.generate_content(
                model=self._model,
                contents=[OCR_PROMPT.format(language=language), image_part],
                config=types.GenerateContentConfig(response_mime_type="application/json"),
            )
        except Exception as e:
            raise OcrError(f"Gemini OCR 호출 실패: {e}") from e

        regions = self._parse_regions(response.text)
        if not regions:
            raise NoTextFoundError(image_path)

        full_text = "\n".join(r.text for r in regions)
        logger.info(f"OCR 완료: {len(regions)}개 영역 ({image_path})")
        return OcrResult(full_text=full_text, regions=regions)

    def _load_image_part(self, image_path: str) -> types.Part:
        try:
            with Image.open(image_path) as image:
                buffer = io.BytesIO()
                image.convert("RGB").save(buffer, format="PNG")
        except (OSError, UnidentifiedImageError) as e:
            raise OcrError(f"이미지를 읽을 수 없음: {image_path}") from e

        return types.Part.from_bytes(data=buffer.getvalue(), mime_type="image/png")

    def _parse_regions(self, text: str | None) -> list[OcrRegion]:
        if not text:
            raise OcrError("빈 응답")

        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise OcrError(f"JSON 파싱 실패: {e}") from e

        if not isinstance(raw, list):
            raise OcrError(f"응답이 리스트가 아님: {type(raw).__name__}")

        regions: list[OcrRegion] = []
        for item in cast(list[dict[str, Any]], raw):
            try:
                region_text = str(item["text"]).strip()
                if not region_text:
                    continue
                regions.append(
                    OcrRegion(text=region_text, bounding_box=BBox.from_list(item["bbox"]))
                )
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"OCR 영역 파싱 실패: {item} - {e}")

        return regions
