from fastapi import APIRouter, Depends, Query

from cinelist.dependencies import Catalog, CurrentUser, limit_searches
from cinelist.errors import DomainError, ErrorKind, validation_failed
from cinelist.schemas.search import MediaSearchResponse
from cinelist.services.tmdb import CatalogUnavailableError

router = APIRouter(prefix="/search", tags=["search"])


@router.get(
    "/media",
    response_model=MediaSearchResponse,
    dependencies=[Depends(limit_searches)],
)
def search_media(
    user: CurrentUser,
    catalog: Catalog,
    q: str = Query(default=""),
    limit: int = Query(default=5, ge=1, le=20),
):
    query = q.strip()
    if not 2 <= len(query) <= 100:
        raise validation_failed(
            "INVALID_QUERY", "Query must be between 2 and 100 characters"
        )
    try:
        results = catalog.search_multi(query, limit)
    except CatalogUnavailableError as exc:
        raise DomainError(
            ErrorKind.UPSTREAM_UNAVAILABLE,
            "CATALOG_UNAVAILABLE",
            "Catalog search failed.",
            [str(exc)],
        )
    return MediaSearchResponse(query=query, results=results)
