"""번역 파이프라인 오케스트레이터

Preprocessing → TextRecognition → Translation → Rendering → Done 순서로 실행.
어느 단계에서든 Error로 종료될 수 있다.

- Preprocessing: 캐시 조회. 적중 시 큐/rate limit을 거치지 않고 바로 Done
- TextRecognition: OCR (수동 입력 텍스트는 그대로 통과)
- Translation: 스케줄러에 제출, 빠른 모델 실패 시 고품질 모델로 1회 폴백
- Rendering: 캐시 저장 + 위치 정보가 포함된 결과 조립

각 전이 전에 PipelineProgress를 보고한다.
"""

import asyncio
import logging
import time
from collections.abc import Callable

from pydantic import BaseModel

from src.schemas.pipeline import (
    OcrRegion,
    PipelineProgress,
    PipelineResult,
    PipelineStage,
    PipelineState,
)
from src.schemas.translation import (
    CacheEntry,
    MangaContext,
    TranslationJob,
    TranslationModel,
    TranslationResult,
)
from src.services.cache import TranslationCacheGateway, content_identity
from src.services.model_selector import fallback_for, select_model
from src.services.ocr.base import NoTextFoundError, OcrEngine
from src.services.scheduler import ApiRequestScheduler
from src.services.translation.base import ProviderError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[PipelineProgress], None]


class PipelineError(Exception):
    pass


_TRANSITIONS: dict[PipelineState, set[PipelineState]] = {
    PipelineState.PREPROCESSING: {PipelineState.TEXT_RECOGNITION, PipelineState.DONE},
    PipelineState.TEXT_RECOGNITION: {PipelineState.TRANSLATION},
    PipelineState.TRANSLATION: {PipelineState.RENDERING},
    PipelineState.RENDERING: {PipelineState.DONE},
    PipelineState.DONE: set(),
    PipelineState.ERROR: set(),
}


class _PipelineRun:
    """단일 작업의 상태 머신 + 진행률 보고"""

    def __init__(self, job: TranslationJob, listeners: list[ProgressCallback]) -> None:
        self.job = job
        self.state = PipelineState.PREPROCESSING
        self._listeners = listeners

    def advance(self, state: PipelineState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise PipelineError(f"잘못된 상태 전이: {self.state} → {state}")
        logger.info(f"[{self.job.job_id}] {self.state} → {state}")
        self.state = state

    def fail(self) -> None:
        if self.state in (PipelineState.DONE, PipelineState.ERROR):
            return
        logger.info(f"[{self.job.job_id}] {self.state} → {PipelineState.ERROR}")
        self.state = PipelineState.ERROR

    def report(self, stage: PipelineStage, fraction: float, message: str | None = None) -> None:
        progress = PipelineProgress(stage=stage, fraction=fraction, message=message)
        for listener in self._listeners:
            try:
                listener(progress)
            except Exception:
                logger.exception(f"[{self.job.job_id}] 진행률 콜백 실패")


class BatchItemResult(BaseModel):
    index: int
    result: PipelineResult | None = None
    error: str | None = None


class TranslationPipeline:
    def __init__(
        self,
        scheduler: ApiRequestScheduler,
        ocr: OcrEngine,
        cache: TranslationCacheGateway,
        *,
        cache_enabled: bool = True,
        inter_page_delay: float = 0.5,
    ) -> None:
        self._scheduler = scheduler
        self._ocr = ocr
        self._cache = cache
        self._cache_enabled = cache_enabled
        self._inter_page_delay = inter_page_delay
        self._listeners: list[ProgressCallback] = []

    @property
    def scheduler(self) -> ApiRequestScheduler:
        return self._scheduler

    @property
    def cache(self) -> TranslationCacheGateway:
        return self._cache

    def on_progress(self, callback: ProgressCallback) -> Callable[[], None]:
        """단계 진행률 구독. 반환된 함수를 호출하면 구독 해제"""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def submit_translation(
        self, job: TranslationJob, on_progress: ProgressCallback | None = None
    ) -> "asyncio.Task[PipelineResult]":
        return asyncio.create_task(self.run(job, on_progress))

    async def run(
        self,
        job: TranslationJob,
        on_progress: ProgressCallback | None = None,
        *,
        bulk: bool = False,
    ) -> PipelineResult:
        """단일 작업 실행

        Raises:
            PipelineError: 이미지를 읽을 수 없음
            NoTextFoundError: 인식된 텍스트 없음
            OcrError: OCR 실패
            ProviderError: 폴백 후에도 번역 실패
            RequestCancelledError: 대기 중 큐가 비워짐
        """
        listeners = [*self._listeners, *([on_progress] if on_progress else [])]
        run = _PipelineRun(job, listeners)
        started = time.perf_counter()

        try:
            result = await self._execute(run, bulk)
        except Exception as e:
            run.fail()
            logger.error(f"[{job.job_id}] 파이프라인 실패: {type(e).__name__}: {e}")
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(f"[{job.job_id}] 파이프라인 완료 ({elapsed_ms:.0f}ms, cache={result.from_cache})")
        return result

    async def _execute(self, run: _PipelineRun, bulk: bool) -> PipelineResult:
        job = run.job
        use_cache = self._cache_enabled and job.use_cache

        # 1. Preprocessing (캐시 조회)
        run.report(PipelineStage.PREPROCESSING, 0.0, "전처리 중")
        content_id = self._content_identity(job)

        if use_cache:
            entry = await self._cache.lookup(content_id, job.source_language, job.target_language)
            self._scheduler.record_cache_lookup(hit=entry is not None)
            if entry is not None:
                run.report(PipelineStage.RENDERING, 1.0, "캐시에서 로드")
                run.advance(PipelineState.DONE)
                return self._from_cache(job, entry)

        run.report(PipelineStage.PREPROCESSING, 1.0, "전처리 완료")
        run.advance(PipelineState.TEXT_RECOGNITION)

        # 2. Text recognition
        run.report(PipelineStage.TEXT_RECOGNITION, 0.0, "텍스트 인식 중")
        original_text, regions = await self._recognize(job)
        run.report(PipelineStage.TEXT_RECOGNITION, 1.0, f"{len(regions)}개 영역 인식")
        run.advance(PipelineState.TRANSLATION)

        # 3. Translation
        run.report(PipelineStage.TRANSLATION, 0.0, "번역 중")
        model = job.preferred_model or select_model(original_text)
        translation = await self._translate_with_fallback(job, original_text, model, bulk)
        run.report(PipelineStage.TRANSLATION, 1.0, "번역 완료")
        run.advance(PipelineState.RENDERING)

        # 4. Rendering (캐시 저장 + 결과 조립)
        run.report(PipelineStage.RENDERING, 0.0, "결과 저장 중")
        if use_cache:
            await self._cache.store(
                CacheEntry(
                    content_id=content_id,
                    source_language=job.source_language,
                    target_language=job.target_language,
                    original_text=original_text,
                    translated_text=translation.translated_text,
                    model_used=translation.model_used,
                    confidence=translation.confidence,
                    context=job.context.fingerprint() if job.context else None,
                )
            )

        result = PipelineResult(
            job_id=job.job_id,
            content_id=content_id,
            original_text=original_text,
            translated_text=translation.translated_text,
            regions=regions,
            model_used=translation.model_used,
            tokens_used=translation.tokens_used,
            confidence=translation.confidence,
            from_cache=False,
        )
        run.report(PipelineStage.RENDERING, 1.0, "완료")
        run.advance(PipelineState.DONE)
        return result

    def _content_identity(self, job: TranslationJob) -> str:
        try:
            return content_identity(job)
        except OSError as e:
            raise PipelineError(f"이미지를 읽을 수 없음: {job.image_path}") from e

    async def _recognize(self, job: TranslationJob) -> tuple[str, list[OcrRegion]]:
        if job.image_path is None:
            text = (job.text or "").strip()
            if not text:
                raise NoTextFoundError("<text>")
            return text, []

        ocr_result = await self._ocr.recognize(job.image_path, job.ocr_language)
        text = ocr_result.full_text.strip()
        if not text:
            raise NoTextFoundError(job.image_path)
        return text, ocr_result.regions

    async def _translate_with_fallback(
        self, job: TranslationJob, text: str, model: TranslationModel, bulk: bool
    ) -> TranslationResult:
        """선택된 모델로 번역, 빠른 모델 실패 시 고품질 모델로 정확히 1회 재시도

        재시도는 원래 요청의 enqueue 시각을 유지해 대기 순서가 밀리지 않는다.
        """
        if bulk:
            request = self._scheduler.submit_bulk(job, text, model)
        else:
            request = self._scheduler.enqueue(job, text, model)

        try:
            return await request.future
        except ProviderError as e:
            fallback = fallback_for(model)
            if fallback is None:
                raise
            logger.warning(f"[{job.job_id}] {model} 실패, {fallback}로 재시도: {e}")

        # 벌크 요청의 enqueued_at은 배치 flush 시점에 채워지므로 실패 후에 읽는다
        return await self._scheduler.submit(
            job, text, fallback, enqueued_at=request.enqueued_at
        )

    def _from_cache(self, job: TranslationJob, entry: CacheEntry) -> PipelineResult:
        return PipelineResult(
            job_id=job.job_id,
            content_id=entry.content_id,
            original_text=entry.original_text,
            translated_text=entry.translated_text,
            model_used=entry.model_used,
            confidence=entry.confidence,
            from_cache=True,
        )

    # --- 다건 처리 ---

    async def translate_texts(
        self,
        texts: list[str],
        target_language: str,
        *,
        source_language: str = "auto",
        context: MangaContext | None = None,
        priority: int = 0,
    ) -> list[PipelineResult]:
        """여러 텍스트를 벌크 경로(배처)로 번역

        하나라도 실패하면 첫 번째 에러를 그대로 전파한다.
        """
        jobs = [
            TranslationJob(
                text=text,
                source_language=source_language,
                target_language=target_language,
                context=context,
                priority=priority,
            )
            for text in texts
        ]
        # 남은 묶음은 배처 타이머(max_wait_time_ms)가 큐로 넘긴다
        tasks = [asyncio.create_task(self.run(job, bulk=True)) for job in jobs]
        try:
            return list(await asyncio.gather(*tasks))
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

    async def translate_batch(
        self, jobs: list[TranslationJob], on_progress: ProgressCallback | None = None
    ) -> list[BatchItemResult]:
        """여러 페이지를 순서대로 번역. 실패한 페이지는 기록하고 계속 진행"""
        results: list[BatchItemResult] = []
        total = len(jobs)

        for i, job in enumerate(jobs):

            def page_progress(progress: PipelineProgress, current: int = i + 1) -> None:
                if on_progress is not None:
                    on_progress(progress.model_copy(update={"current": current, "total": total}))

            try:
                result = await self.run(job, page_progress)
                results.append(BatchItemResult(index=i, result=result))
            except Exception as e:
                logger.error(f"[{job.job_id}] 배치 {i + 1}/{total} 실패: {e}")
                results.append(BatchItemResult(index=i, error=str(e)))

            if i < total - 1:
                await asyncio.sleep(self._inter_page_delay)

        return results
