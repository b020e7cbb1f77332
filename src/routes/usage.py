"""Usage API 라우트

사용량/쿼터 조회, 티어 변경, 통계 리셋, 대기 요청 취소.
"""

from fastapi import APIRouter, HTTPException, status

from src.schemas.api import CancelResponse, TierUpdateRequest, UsageResponse
from src.schemas.translation import ApiTiers
from src.services.runtime import get_scheduler

router = APIRouter(tags=["usage"])


def _usage_response() -> UsageResponse:
    scheduler = get_scheduler()
    return UsageResponse(
        tier=scheduler.tier,
        usage=scheduler.get_usage_statistics(),
        remaining_minute_quota=scheduler.remaining_minute_quota(),
        remaining_daily_quota=scheduler.remaining_daily_quota(),
        recommended_tier=scheduler.recommended_tier().name,
        queue_size=scheduler.queue_size,
    )


@router.get("/usage", response_model=UsageResponse)
async def read_usage() -> UsageResponse:
    return _usage_response()


@router.put("/usage/tier", response_model=UsageResponse)
async def update_tier(request: TierUpdateRequest) -> UsageResponse:
    """API 티어 변경 (사용량 통계 유지)"""
    try:
        tier = ApiTiers.get(request.tier)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "UNKNOWN_TIER", "message": f"알 수 없는 티어: {request.tier}"},
        ) from None

    get_scheduler().set_tier(tier)
    return _usage_response()


@router.post("/usage/reset", response_model=UsageResponse)
async def reset_usage() -> UsageResponse:
    get_scheduler().reset_statistics()
    return _usage_response()


@router.post("/queue/cancel", response_model=CancelResponse)
async def cancel_queue() -> CancelResponse:
    return CancelResponse(cancelled=get_scheduler().cancel_all())
