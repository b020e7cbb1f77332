"""우선순위 요청 큐

정렬: priority 내림차순 → enqueued_at 오름차순 (FIFO) → 삽입 순번.
enqueue/dequeue_next 모두 블로킹하지 않는다. 폴링/대기는 스케줄러 책임.
"""

import asyncio
import heapq
import itertools
import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field

from src.constants import RequestId
from src.schemas.translation import TranslationJob, TranslationModel, TranslationResult

logger = logging.getLogger(__name__)


class RequestCancelledError(Exception):
    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"요청이 취소되었습니다: {request_id}")


def _generate_request_id() -> str:
    return f"{RequestId.PREFIX}{uuid.uuid4().hex[:8]}"


@dataclass(eq=False)
class QueuedRequest:
    """큐에 들어간 번역 요청

    dequeue 전까지는 큐가, 이후에는 dispatch 컨텍스트가 소유한다.
    """

    job: TranslationJob
    text: str
    model: TranslationModel
    future: "asyncio.Future[TranslationResult]"
    request_id: str = field(default_factory=_generate_request_id)
    enqueued_at: float | None = None  # 재시도 시 원래 값 유지
    sequence: int = -1
    batch_id: str | None = None

    @property
    def priority(self) -> int:
        return self.job.priority


class PriorityRequestQueue:
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._heap: list[tuple[int, float, int, QueuedRequest]] = []
        self._pending_ids: set[str] = set()
        self._sequence = itertools.count()
        self._last_enqueued_at = float("-inf")

    def __len__(self) -> int:
        return len(self._heap)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._pending_ids

    def enqueue(self, request: QueuedRequest) -> None:
        """요청 삽입

        enqueued_at이 비어 있으면 현재 시각을 부여한다 (삽입 순서 기준 단조 증가).

        Raises:
            ValueError: 같은 request_id가 이미 대기 중
        """
        if request.request_id in self._pending_ids:
            raise ValueError(f"이미 대기 중인 요청입니다: {request.request_id}")

        if request.enqueued_at is None:
            now = max(self._clock(), self._last_enqueued_at)
            self._last_enqueued_at = now
            request.enqueued_at = now

        request.sequence = next(self._sequence)
        heapq.heappush(
            self._heap, (-request.priority, request.enqueued_at, request.sequence, request)
        )
        self._pending_ids.add(request.request_id)

    def peek(self) -> QueuedRequest | None:
        if not self._heap:
            return None
        return self._heap[0][3]

    def dequeue_next(self) -> QueuedRequest | None:
        """가장 우선순위가 높고 오래된 요청을 꺼냄. 비어 있으면 None"""
        if not self._heap:
            return None
        request = heapq.heappop(self._heap)[3]
        self._pending_ids.discard(request.request_id)
        return request

    def cancel_all(self) -> int:
        """대기 중인 모든 요청을 RequestCancelledError로 종료하고 큐를 비움

        Returns:
            취소된 요청 수
        """
        cancelled = 0
        while self._heap:
            request = heapq.heappop(self._heap)[3]
            if not request.future.done():
                request.future.set_exception(RequestCancelledError(request.request_id))
            cancelled += 1
        self._pending_ids.clear()

        if cancelled:
            logger.info(f"대기 요청 {cancelled}개 취소")
        return cancelled
