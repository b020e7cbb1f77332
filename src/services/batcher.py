"""요청 배처: 개별 제출 항목을 크기/시간 제한 배치로 묶음

배치 내용은 해석하지 않는다. 크기(max_batch_size)에 도달하면 add()가
즉시 배치를 반환하고, 그 전에 max_wait_time_ms가 지나면 타이머가
on_flush 콜백으로 배치를 넘긴다.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RequestBatcher(Generic[T]):
    def __init__(
        self,
        max_batch_size: int = 5,
        max_wait_time_ms: int = 500,
        on_flush: Callable[[list[T]], None] | None = None,
    ) -> None:
        if max_batch_size <= 0:
            raise ValueError(f"max_batch_size는 양수여야 합니다: {max_batch_size}")
        self.max_batch_size = max_batch_size
        self.max_wait_time_ms = max_wait_time_ms
        self._on_flush = on_flush
        self._batch: list[T] = []
        self._timer: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> int:
        return len(self._batch)

    def add(self, item: T) -> list[T]:
        """항목 추가. 배치가 가득 차면 flush된 배치를, 아니면 빈 리스트 반환

        타이머는 빈 배치에 첫 항목이 들어올 때만 시작한다.
        """
        self._batch.append(item)

        if len(self._batch) >= self.max_batch_size:
            return self.flush()

        if self._timer is None:
            loop = asyncio.get_running_loop()
            self._timer = loop.call_later(self.max_wait_time_ms / 1000, self._on_timer)

        return []

    def flush(self) -> list[T]:
        """현재 배치를 강제로 비우고 반환 (타이머 취소)"""
        self._cancel_timer()
        batch = self._batch
        self._batch = []
        return batch

    def cancel(self) -> None:
        """배치를 반환하지 않고 폐기 (종료 시)"""
        self._cancel_timer()
        if self._batch:
            logger.info(f"배치 폐기: {len(self._batch)}개")
        self._batch = []

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        batch = self.flush()
        if not batch:
            return
        if self._on_flush is None:
            logger.warning(f"on_flush 콜백 없음, 배치 {len(batch)}개 폐기")
            return
        self._on_flush(batch)
