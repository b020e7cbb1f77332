"""API 요청 스케줄러

우선순위 큐를 단일 처리 루프로 소진한다. 루프는 요청마다
RateLimiter admission을 확인하고, 거부되면 다음 admission 가능 시점까지
대기한 뒤 재확인한다 (dequeue하지 않음). admission되면 하나씩 dispatch하고
결과로 호출자의 Future를 완료한 뒤 사용량을 기록한다.

UsageStats와 활성 ApiTier는 이 클래스만 변경한다. 모든 변경은 하나의
이벤트 루프 안에서 일어나므로 별도의 락을 두지 않는다.
"""

import asyncio
import logging
import time
import uuid
from collections.abc import Awaitable, Callable

from src.config import Settings
from src.constants import TTL, BulkBatchId, Limits
from src.schemas.translation import (
    ApiTier,
    ApiTiers,
    TranslationJob,
    TranslationModel,
    TranslationResult,
    UsageStats,
    language_pair,
)
from src.services.batcher import RequestBatcher
from src.services.cost import estimate_cost
from src.services.queue import PriorityRequestQueue, QueuedRequest, RequestCancelledError
from src.services.rate_limit import RateLimiter
from src.services.translation.base import ProviderError, ProviderResponse, TranslationClient
from src.services.translation.prompt import build_translation_prompt, clean_translation

logger = logging.getLogger(__name__)


class ApiRequestScheduler:
    def __init__(
        self,
        client: TranslationClient,
        tier: ApiTier = ApiTiers.FREE,
        *,
        rate_limiter: RateLimiter | None = None,
        poll_interval: float = 1.0,
        inter_batch_delay: float = 0.5,
        batch_max_size: int = 5,
        batch_max_wait_ms: int = 500,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._tier = tier
        self._limiter = rate_limiter or RateLimiter()
        self._queue = PriorityRequestQueue(clock=clock)
        self._stats = UsageStats()
        self._batcher: RequestBatcher[QueuedRequest] = RequestBatcher(
            max_batch_size=batch_max_size,
            max_wait_time_ms=batch_max_wait_ms,
            on_flush=self._enqueue_bulk,
        )
        self._poll_interval = poll_interval
        self._inter_batch_delay = inter_batch_delay
        self._clock = clock
        self._sleep = sleep

        self._processing = False
        self._loop_task: asyncio.Task[None] | None = None
        self._daily_reset_task: asyncio.Task[None] | None = None
        self._in_flight: QueuedRequest | None = None

    @classmethod
    def from_settings(cls, client: TranslationClient, settings: Settings) -> "ApiRequestScheduler":
        return cls(
            client,
            ApiTiers.get(settings.api_tier),
            poll_interval=settings.admission_poll_interval,
            inter_batch_delay=settings.inter_batch_delay,
            batch_max_size=settings.batch_max_size,
            batch_max_wait_ms=settings.batch_max_wait_ms,
        )

    # --- 제출 ---

    def _new_request(
        self,
        job: TranslationJob,
        text: str,
        model: TranslationModel,
        enqueued_at: float | None = None,
    ) -> QueuedRequest:
        loop = asyncio.get_running_loop()
        return QueuedRequest(
            job=job,
            text=text,
            model=model,
            future=loop.create_future(),
            enqueued_at=enqueued_at,
        )

    def enqueue(
        self,
        job: TranslationJob,
        text: str,
        model: TranslationModel,
        *,
        enqueued_at: float | None = None,
    ) -> QueuedRequest:
        """요청을 큐에 넣고 처리 루프를 깨움

        Args:
            enqueued_at: 재시도 시 원래 요청의 enqueue 시각 (대기 순서 유지)
        """
        request = self._new_request(job, text, model, enqueued_at)
        self._queue.enqueue(request)
        logger.info(
            f"[{request.request_id}] 큐 등록: job={job.job_id}, model={model}, "
            f"priority={job.priority} (queue size: {len(self._queue)})"
        )
        self._ensure_processing()
        return request

    def submit(
        self,
        job: TranslationJob,
        text: str,
        model: TranslationModel,
        *,
        enqueued_at: float | None = None,
    ) -> "asyncio.Future[TranslationResult]":
        return self.enqueue(job, text, model, enqueued_at=enqueued_at).future

    def submit_bulk(
        self, job: TranslationJob, text: str, model: TranslationModel
    ) -> QueuedRequest:
        """배처를 거쳐 크기/시간 단위 묶음으로 큐에 넣음

        반환된 요청의 enqueued_at은 배치가 큐로 넘어갈 때 채워진다.
        """
        request = self._new_request(job, text, model)
        batch = self._batcher.add(request)
        if batch:
            self._enqueue_bulk(batch)
        return request

    def flush_bulk(self) -> None:
        batch = self._batcher.flush()
        if batch:
            self._enqueue_bulk(batch)

    def _enqueue_bulk(self, batch: list[QueuedRequest]) -> None:
        batch_id = f"{BulkBatchId.PREFIX}{uuid.uuid4().hex[:8]}"
        for request in batch:
            request.batch_id = batch_id
            self._queue.enqueue(request)
        logger.info(f"[{batch_id}] 벌크 배치 등록: {len(batch)}개 (queue size: {len(self._queue)})")
        self._ensure_processing()

    # --- 처리 루프 ---

    def _ensure_processing(self) -> None:
        if self._processing:
            return
        self._processing = True
        self._loop_task = asyncio.create_task(self._process_queue())

    async def _process_queue(self) -> None:
        try:
            while len(self._queue) > 0:
                now = self._clock()
                if not self._limiter.can_admit(self._tier, self._stats, now):
                    await self._wait_for_admission(now)
                    continue

                request = self._queue.dequeue_next()
                if request is None:
                    break
                if request.future.done():
                    # 대기 중 호출자가 Future를 취소함
                    continue

                self._limiter.record_admission(self._stats, now)
                await self._dispatch(request)
                await self._pause_between_batches(request)
        finally:
            self._processing = False
            self._loop_task = None

    async def _wait_for_admission(self, now: float) -> None:
        wait = self._limiter.seconds_until_admission(self._tier, self._stats, now)
        if wait is None:
            delay = self._poll_interval
            logger.warning(f"일일 요청 한도 도달 ({self._tier.name}), {delay:.1f}초 후 재확인")
        else:
            delay = wait
            logger.info(f"분당 요청 한도 도달 ({self._tier.name}), {delay:.2f}초 대기")
        await self._sleep(delay)

    async def _pause_between_batches(self, request: QueuedRequest) -> None:
        if request.batch_id is None:
            return
        upcoming = self._queue.peek()
        if upcoming is not None and upcoming.batch_id != request.batch_id:
            await self._sleep(self._inter_batch_delay)

    async def _call_provider(self, prompt: str, model: TranslationModel) -> ProviderResponse:
        try:
            return await self._client.translate(prompt, model)
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(f"번역 호출 중 예상치 못한 오류: {e}") from e

    async def _dispatch(self, request: QueuedRequest) -> None:
        job = request.job
        prompt = build_translation_prompt(
            request.text, job.target_language, job.source_language, job.context
        )
        logger.info(f"[{request.request_id}] dispatch: model={request.model}")

        self._in_flight = request
        try:
            response = await self._call_provider(prompt, request.model)
            translated = clean_translation(response.text)
            if not translated:
                raise ProviderError("빈 번역 결과")
            result = TranslationResult(
                translated_text=translated,
                source_language=job.source_language,
                model_used=request.model,
                tokens_used=response.tokens_used,
            )
            cost = self._record_usage(job, result)
        except Exception as e:
            # 호출자의 Future는 반드시 완료시키고 루프는 다음 요청으로 진행
            error = e if isinstance(e, ProviderError) else ProviderError(f"응답 처리 실패: {e}")
            logger.error(f"[{request.request_id}] 요청 실패: {error}")
            if not request.future.done():
                request.future.set_exception(error)
            return
        finally:
            self._in_flight = None

        logger.info(
            f"[{request.request_id}] 완료: {result.tokens_used} tokens, "
            f"estimated cost: ${cost:.6f}"
        )

        if not request.future.done():
            request.future.set_result(result)

    def _record_usage(self, job: TranslationJob, result: TranslationResult) -> float:
        model_key = result.model_used.value
        pair = language_pair(job.source_language, job.target_language)
        self._stats.model_usage[model_key] = self._stats.model_usage.get(model_key, 0) + 1
        self._stats.language_pair_usage[pair] = self._stats.language_pair_usage.get(pair, 0) + 1

        cost = estimate_cost(result.model_used, result.tokens_used)
        self._stats.total_cost += cost
        return cost

    # --- 상태/제어 ---

    @property
    def tier(self) -> ApiTier:
        return self._tier

    @property
    def queue_size(self) -> int:
        return len(self._queue)

    @property
    def is_processing(self) -> bool:
        return self._processing

    def set_tier(self, tier: ApiTier) -> None:
        """티어 변경. 사용량 통계는 유지한다."""
        self._tier = tier
        logger.info(f"API 티어 변경: {tier.name}")

    def get_usage_statistics(self) -> UsageStats:
        """사용량 스냅샷 (deep copy)"""
        return self._stats.model_copy(deep=True)

    def record_cache_lookup(self, hit: bool) -> None:
        if hit:
            self._stats.cache_hits += 1
        else:
            self._stats.cache_misses += 1

    def remaining_minute_quota(self) -> int:
        return self._limiter.remaining_minute_quota(self._tier, self._stats, self._clock())

    def remaining_daily_quota(self) -> int:
        return self._limiter.remaining_daily_quota(self._tier, self._stats)

    def recommended_tier(self) -> ApiTier:
        """무료 티어 일일 한도의 80%를 넘기면 유료 티어 권장"""
        usage_ratio = self._stats.requests_today / self._tier.requests_per_day
        if self._tier == ApiTiers.FREE and usage_ratio > Limits.RECOMMEND_PAID_USAGE_RATIO:
            return ApiTiers.PAID
        return self._tier

    def reset_daily(self) -> None:
        self._stats.reset_daily()
        logger.info("일일 사용량 리셋")

    def reset_statistics(self) -> None:
        self._stats.reset()
        logger.info("사용량 통계 리셋")

    def cancel_all(self) -> int:
        """대기 중인 모든 요청(벌크 배처 포함)을 RequestCancelledError로 종료

        이미 dispatch된 요청은 취소하지 않고 정상 완료된다.

        Returns:
            취소된 요청 수
        """
        pending_bulk = self._batcher.flush()
        for request in pending_bulk:
            if not request.future.done():
                request.future.set_exception(RequestCancelledError(request.request_id))
        return len(pending_bulk) + self._queue.cancel_all()

    def start(self) -> None:
        """24시간 주기 일일 사용량 리셋 타이머 시작"""
        if self._daily_reset_task is None:
            self._daily_reset_task = asyncio.create_task(self._daily_reset_loop())

    async def _daily_reset_loop(self) -> None:
        while True:
            await asyncio.sleep(TTL.DAY)
            self.reset_daily()

    async def close(self) -> None:
        """대기 요청 취소 + 타이머 정리. 진행 중인 dispatch는 완료까지 기다린다."""
        cancelled = self.cancel_all()
        self._batcher.cancel()

        if self._daily_reset_task is not None:
            self._daily_reset_task.cancel()
            self._daily_reset_task = None

        task = self._loop_task
        if task is not None:
            if self._in_flight is None:
                task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        logger.info(f"스케줄러 종료 (취소된 요청: {cancelled}개)")
