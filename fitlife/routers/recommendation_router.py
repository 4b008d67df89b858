from fastapi import APIRouter, Depends, Query, Request, Response, status

from ..config import DEFAULT_RECOMMENDATION_LIMIT, MAX_RECOMMENDATION_LIMIT
from ..dependencies import get_db_pool, get_redis, build_recommendation_service
from ..schemas.recommendation import RecommendationResponse
from ..services.recommendation_service import RecommendationService
from ..limiter import limiter

router = APIRouter(prefix="/api/recommendations", tags=["recommendations"])

async def get_recommendation_service(
    db = Depends(get_db_pool),
    redis_client = Depends(get_redis)
) -> RecommendationService:
    return build_recommendation_service(db, redis_client)

@router.get("/{user_id}", response_model=RecommendationResponse)
@limiter.limit("60/minute")
async def get_recommendations(
    user_id: str,
    request: Request, # Required for limiter
    limit: int = Query(DEFAULT_RECOMMENDATION_LIMIT, ge=1, le=MAX_RECOMMENDATION_LIMIT),
    service: RecommendationService = Depends(get_recommendation_service)
):
    """
    Ranked class recommendations for a user (cache, then recent rows, then fresh scoring)
    """
    items = await service.get_recommendations(user_id, limit)
    return RecommendationResponse(user_id=user_id, recommendations=items, count=len(items))

@router.post("/{user_id}/refresh", response_model=RecommendationResponse)
@limiter.limit("10/minute")  # Forces a full regeneration
async def refresh_recommendations(
    user_id: str,
    request: Request,
    limit: int = Query(DEFAULT_RECOMMENDATION_LIMIT, ge=1, le=MAX_RECOMMENDATION_LIMIT),
    service: RecommendationService = Depends(get_recommendation_service)
):
    items = await service.refresh_recommendations(user_id, limit)
    return RecommendationResponse(user_id=user_id, recommendations=items, count=len(items))

@router.delete("/{user_id}/cache", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
async def invalidate_cache(
    user_id: str,
    request: Request,
    service: RecommendationService = Depends(get_recommendation_service)
):
    await service.invalidate_cache(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
