"""분당/일일 요청 한도 기반 admission 판단

UsageStats.request_timestamps의 최근 60초 구간으로 분당 한도를,
requests_today로 일일 한도를 확인한다. 거부는 에러가 아니며
호출자(스케줄러)가 대기 후 재확인한다.
"""

from src.constants import Limits
from src.schemas.translation import ApiTier, UsageStats


class RateLimiter:
    def __init__(self, window_seconds: float = Limits.RATE_WINDOW_SECONDS) -> None:
        self._window = window_seconds

    def _prune(self, stats: UsageStats, now: float) -> None:
        cutoff = now - self._window
        stats.request_timestamps[:] = [ts for ts in stats.request_timestamps if ts > cutoff]
        stats.requests_this_minute = len(stats.request_timestamps)

    def can_admit(self, tier: ApiTier, stats: UsageStats, now: float) -> bool:
        """지금 요청을 보내도 되는지 확인 (오래된 타임스탬프 정리 포함)"""
        self._prune(stats, now)
        if len(stats.request_timestamps) >= tier.requests_per_minute:
            return False
        return stats.requests_today < tier.requests_per_day

    def record_admission(self, stats: UsageStats, now: float) -> None:
        """실제 dispatch 직전에 정확히 한 번 호출"""
        stats.request_timestamps.append(now)
        stats.requests_this_minute += 1
        stats.requests_today += 1

    def seconds_until_admission(self, tier: ApiTier, stats: UsageStats, now: float) -> float | None:
        """다음 admission 가능 시점까지 남은 시간

        Returns:
            0.0: 즉시 가능
            양수: 가장 오래된 구간 내 요청이 만료될 때까지의 시간
            None: 일일 한도 초과 (일일 리셋 전까지 계산 불가)
        """
        self._prune(stats, now)
        if stats.requests_today >= tier.requests_per_day:
            return None

        in_window = len(stats.request_timestamps)
        if in_window < tier.requests_per_minute:
            return 0.0

        # 한도 아래로 내려가려면 (in_window - rpm + 1)개가 만료되어야 함
        expiring = sorted(stats.request_timestamps)[in_window - tier.requests_per_minute]
        return max(expiring + self._window - now, 0.0)

    def remaining_minute_quota(self, tier: ApiTier, stats: UsageStats, now: float) -> int:
        self._prune(stats, now)
        return max(tier.requests_per_minute - len(stats.request_timestamps), 0)

    def remaining_daily_quota(self, tier: ApiTier, stats: UsageStats) -> int:
        return max(tier.requests_per_day - stats.requests_today, 0)
