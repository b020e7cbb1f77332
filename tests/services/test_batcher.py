import asyncio

import pytest

from src.services.batcher import RequestBatcher


class TestRequestBatcher:
    async def test_returns_batch_when_full(self) -> None:
        batcher: RequestBatcher[int] = RequestBatcher(max_batch_size=3, max_wait_time_ms=10_000)

        assert batcher.add(1) == []
        assert batcher.add(2) == []
        assert batcher.add(3) == [1, 2, 3]
        assert batcher.pending == 0

    async def test_timer_flushes_partial_batch(self) -> None:
        flushed: list[list[int]] = []
        batcher: RequestBatcher[int] = RequestBatcher(
            max_batch_size=5, max_wait_time_ms=20, on_flush=flushed.append
        )

        batcher.add(1)
        batcher.add(2)
        await asyncio.sleep(0.1)

        assert flushed == [[1, 2]]
        assert batcher.pending == 0

    async def test_timer_not_restarted_by_later_items(self) -> None:
        flushed: list[list[int]] = []
        batcher: RequestBatcher[int] = RequestBatcher(
            max_batch_size=10, max_wait_time_ms=50, on_flush=flushed.append
        )

        batcher.add(1)
        await asyncio.sleep(0.03)
        batcher.add(2)
        await asyncio.sleep(0.04)

        # 첫 항목 기준 50ms가 지났으므로 두 항목 모두 한 번에 flush
        assert flushed == [[1, 2]]

    async def test_full_batch_cancels_timer(self) -> None:
        flushed: list[list[int]] = []
        batcher: RequestBatcher[int] = RequestBatcher(
            max_batch_size=2, max_wait_time_ms=20, on_flush=flushed.append
        )

        batcher.add(1)
        assert batcher.add(2) == [1, 2]
        await asyncio.sleep(0.05)

        assert flushed == []

    async def test_flush_returns_and_clears(self) -> None:
        batcher: RequestBatcher[str] = RequestBatcher(max_batch_size=5)
        batcher.add("a")

        assert batcher.flush() == ["a"]
        assert batcher.flush() == []

    async def test_cancel_discards_batch(self) -> None:
        flushed: list[list[int]] = []
        batcher: RequestBatcher[int] = RequestBatcher(
            max_batch_size=5, max_wait_time_ms=20, on_flush=flushed.append
        )
        batcher.add(1)
        batcher.cancel()
        await asyncio.sleep(0.05)

        assert flushed == []
        assert batcher.pending == 0

    def test_invalid_batch_size_raises(self) -> None:
        with pytest.raises(ValueError):
            RequestBatcher(max_batch_size=0)
