"""프로세스 단일 파이프라인/스케줄러

사용법:
    from src.services.runtime import get_pipeline

    pipeline = get_pipeline()
    result = await pipeline.run(job)

스케줄러는 프로세스당 하나만 존재해야 rate limit이 정확하다.
"""

import logging

from src.config import get_settings
from src.services.cache import TranslationCacheGateway
from src.services.ocr import get_ocr
from src.services.pipeline import TranslationPipeline
from src.services.scheduler import ApiRequestScheduler
from src.services.translation import get_translation_client

logger = logging.getLogger(__name__)


class _PipelineHolder:
    pipeline: TranslationPipeline | None = None


def get_pipeline() -> TranslationPipeline:
    if _PipelineHolder.pipeline is None:
        settings = get_settings()
        scheduler = ApiRequestScheduler.from_settings(get_translation_client(), settings)
        _PipelineHolder.pipeline = TranslationPipeline(
            scheduler,
            get_ocr(),
            TranslationCacheGateway(),
            cache_enabled=settings.cache_enabled,
            inter_page_delay=settings.inter_batch_delay,
        )
        logger.info(f"번역 파이프라인 생성 (tier={scheduler.tier.name})")
    return _PipelineHolder.pipeline


def get_scheduler() -> ApiRequestScheduler:
    return get_pipeline().scheduler


def set_pipeline(pipeline: TranslationPipeline | None) -> None:
    """파이프라인 설정 (테스트용)"""
    _PipelineHolder.pipeline = pipeline


async def shutdown() -> None:
    """대기 요청 취소 + 스케줄러 정리"""
    pipeline = _PipelineHolder.pipeline
    if pipeline is None:
        return
    await pipeline.scheduler.close()
    _PipelineHolder.pipeline = None
