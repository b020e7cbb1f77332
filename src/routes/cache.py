"""Cache API 라우트

번역 캐시 통계 조회, 평가, 즐겨찾기, 전체 삭제.
"""

from fastapi import APIRouter, HTTPException, status

from src.schemas.api import CacheClearResponse, CacheKeyRequest, CacheRatingRequest
from src.schemas.translation import CacheEntry
from src.services.cache import CacheStatistics
from src.services.runtime import get_pipeline

router = APIRouter(prefix="/cache", tags=["cache"])


def _not_found(request: CacheKeyRequest) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={
            "code": "CACHE_ENTRY_NOT_FOUND",
            "message": f"캐시 항목이 없습니다: {request.content_id} "
            f"({request.source_language}->{request.target_language})",
        },
    )


@router.get("/statistics", response_model=CacheStatistics)
async def read_statistics() -> CacheStatistics:
    return await get_pipeline().cache.statistics()


@router.put("/rating", response_model=CacheEntry)
async def rate_entry(request: CacheRatingRequest) -> CacheEntry:
    entry = await get_pipeline().cache.rate(
        request.content_id, request.source_language, request.target_language, request.rating
    )
    if entry is None:
        raise _not_found(request)
    return entry


@router.post("/favorite", response_model=CacheEntry)
async def toggle_favorite(request: CacheKeyRequest) -> CacheEntry:
    entry = await get_pipeline().cache.toggle_favorite(
        request.content_id, request.source_language, request.target_language
    )
    if entry is None:
        raise _not_found(request)
    return entry


@router.delete("", response_model=CacheClearResponse)
async def clear_cache() -> CacheClearResponse:
    return CacheClearResponse(removed=await get_pipeline().cache.clear())
