from fastapi import APIRouter, Query

from cinelist.dependencies import CurrentUser, Recommendations
from cinelist.schemas.recommendation import (
    RecommendationRead,
    RecommendationsResponse,
)

router = APIRouter(prefix="/lists/{list_id}/recommendations", tags=["recommendations"])


@router.get("", response_model=RecommendationsResponse)
def get_recommendations(
    list_id: int,
    user: CurrentUser,
    engine: Recommendations,
    limit: int = Query(default=15),
):
    items = engine.get_recommendations(list_id, user.user_id, limit)
    return RecommendationsResponse(
        list_id=list_id,
        recommendations=[RecommendationRead.model_validate(i) for i in items],
        count=len(items),
    )
