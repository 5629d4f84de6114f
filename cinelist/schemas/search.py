from pydantic import BaseModel

from cinelist.services.tmdb import CatalogSearchResult


class MediaSearchResponse(BaseModel):
    query: str
    results: list[CatalogSearchResult]
