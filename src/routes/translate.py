"""Translate API 라우트

텍스트(단건/벌크)와 이미지 번역 엔드포인트.
모든 요청은 프로세스 단일 파이프라인을 거쳐 스케줄러의 rate limit을 공유한다.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Annotated

from fastapi import APIRouter, File, Form, HTTPException, UploadFile, status

from src.schemas.api import BulkTranslateRequest, TextTranslateRequest
from src.schemas.pipeline import PipelineResult
from src.schemas.translation import TranslationJob, TranslationModel
from src.services.ocr.base import NoTextFoundError, OcrError
from src.services.pipeline import PipelineError
from src.services.queue import RequestCancelledError
from src.services.runtime import get_pipeline
from src.services.translation.base import ProviderError

router = APIRouter(prefix="/translate", tags=["translate"])
logger = logging.getLogger(__name__)

_DOMAIN_ERRORS = (OcrError, ProviderError, RequestCancelledError, PipelineError)


def _to_http_error(e: Exception) -> HTTPException:
    # NoTextFoundError는 OcrError의 하위 클래스라 먼저 검사
    if isinstance(e, NoTextFoundError):
        code, message, status_code = (
            "NO_TEXT_DETECTED",
            "인식된 텍스트가 없습니다",
            status.HTTP_422_UNPROCESSABLE_ENTITY,
        )
    elif isinstance(e, OcrError):
        code, message, status_code = "OCR_FAILED", str(e), status.HTTP_502_BAD_GATEWAY
    elif isinstance(e, ProviderError):
        code, message, status_code = "PROVIDER_ERROR", str(e), status.HTTP_502_BAD_GATEWAY
    elif isinstance(e, RequestCancelledError):
        code, message, status_code = (
            "REQUEST_CANCELLED",
            "요청이 취소되었습니다",
            status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    else:
        code, message, status_code = "INVALID_IMAGE", str(e), status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=status_code, detail={"code": code, "message": message})


@router.post("/text", response_model=PipelineResult)
async def translate_text(request: TextTranslateRequest) -> PipelineResult:
    """단건 텍스트 번역"""
    job = TranslationJob(
        text=request.text,
        source_language=request.source_language,
        target_language=request.target_language,
        priority=request.priority,
        use_cache=request.use_cache,
        preferred_model=request.preferred_model,
        context=request.context,
    )
    try:
        return await get_pipeline().run(job)
    except _DOMAIN_ERRORS as e:
        raise _to_http_error(e) from None


@router.post("/texts", response_model=list[PipelineResult])
async def translate_texts(request: BulkTranslateRequest) -> list[PipelineResult]:
    """여러 텍스트 벌크 번역 (배처 경유)"""
    try:
        return await get_pipeline().translate_texts(
            request.texts,
            request.target_language,
            source_language=request.source_language,
            context=request.context,
            priority=request.priority,
        )
    except _DOMAIN_ERRORS as e:
        raise _to_http_error(e) from None


@router.post("/image", response_model=PipelineResult)
async def translate_image(
    file: Annotated[UploadFile, File()],
    target_language: Annotated[str, Form(alias="targetLanguage")],
    source_language: Annotated[str, Form(alias="sourceLanguage")] = "auto",
    ocr_language: Annotated[str, Form(alias="ocrLanguage")] = "ja",
    priority: Annotated[int, Form()] = 0,
    use_cache: Annotated[bool, Form(alias="useCache")] = True,
    preferred_model: Annotated[TranslationModel | None, Form(alias="preferredModel")] = None,
) -> PipelineResult:
    """이미지 번역: OCR → 번역

    업로드 파일은 임시 경로에 저장한 뒤 처리가 끝나면 삭제한다.
    """
    suffix = Path(file.filename or "").suffix or ".png"
    fd, temp_path = tempfile.mkstemp(suffix=suffix)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(await file.read())

        job = TranslationJob(
            image_path=temp_path,
            source_language=source_language,
            target_language=target_language,
            ocr_language=ocr_language,
            priority=priority,
            use_cache=use_cache,
            preferred_model=preferred_model,
        )
        logger.info(f"[{job.job_id}] 이미지 번역 요청: {file.filename}")
        try:
            return await get_pipeline().run(job)
        except _DOMAIN_ERRORS as e:
            raise _to_http_error(e) from None
    finally:
        Path(temp_path).unlink(missing_ok=True)
