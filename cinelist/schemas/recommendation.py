from pydantic import BaseModel


class RecommendationRead(BaseModel):
    id: int
    title: str
    overview: str | None
    poster_url: str | None
    media_type: str
    popularity: float
    frequency: int
    score: float

    model_config = {"from_attributes": True}


class RecommendationsResponse(BaseModel):
    list_id: int
    recommendations: list[RecommendationRead]
    count: int
