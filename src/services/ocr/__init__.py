"""OCR 모듈

사용법:
    from src.services.ocr import get_ocr

    ocr = get_ocr()
    result = await ocr.recognize(image_path, "ja")

백엔드 선택 (.env OCR_PROVIDER):
    - "gemini": Google Gemini Vision (기본값)
"""

from src.config import get_settings
from src.services.ocr.base import NoTextFoundError, OcrEngine, OcrError
from src.services.ocr.gemini import GeminiOcr

__all__ = ["NoTextFoundError", "OcrEngine", "OcrError", "get_ocr", "set_ocr"]

_ocr: OcrEngine | None = None


def get_ocr() -> OcrEngine:
    """설정에 따라 OCR 백엔드 반환"""
    global _ocr
    if _ocr is None:
        settings = get_settings()
        if settings.ocr_provider == "gemini":
            _ocr = GeminiOcr(api_key=settings.gemini_api_key, model=settings.gemini_ocr_model)
        else:
            raise ValueError(f"Unknown OCR provider: {settings.ocr_provider!r}")
    return _ocr


def set_ocr(ocr: OcrEngine | None) -> None:
    """OCR 백엔드 설정 (테스트용)"""
    global _ocr
    _ocr = ocr
