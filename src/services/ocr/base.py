"""OCR Protocol

교체 가능한 텍스트 인식 구현을 위한 인터페이스 정의.
모든 좌표는 원본 이미지 기준 절대 좌표(px).
"""

from typing import Protocol

from src.schemas.pipeline import OcrResult


class OcrError(Exception):
    pass


class NoTextFoundError(OcrError):
    def __init__(self, image_path: str):
        self.image_path = image_path
        super().__init__(f"텍스트가 감지되지 않음: {image_path}")


class OcrEngine(Protocol):
    """텍스트 인식 인터페이스

    구현체:
    - GeminiOcr: Google Gemini Vision
    """

    async def recognize(self, image_path: str, language: str) -> OcrResult:
        """이미지에서 텍스트 영역과 문자열 인식

        Args:
            image_path: 이미지 파일 경로
            language: 원문 언어 힌트 (ISO 639-1)

        Returns:
            OcrResult: 전체 텍스트 + 영역별 텍스트/바운딩 박스

        Raises:
            NoTextFoundError: 텍스트가 하나도 없을 때
            OcrError: 인식 실패 시
        """
        ...
