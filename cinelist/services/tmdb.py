"""TMDB client used to resolve titles, fetch recommendations and search.

Only ``resolve_title`` and ``search_multi`` report failures to the caller.
``recommendations_for`` is best-effort and returns an empty list instead.
"""

import logging
from datetime import date
from typing import Any

import requests
from pydantic import BaseModel

logger = logging.getLogger(__name__)

IMAGE_BASE_URL = "https://image.tmdb.org/t/p"
MEDIA_TYPES = ("movie", "tv")


class CatalogNotFoundError(Exception):
    """TMDB has no title with this id and media type."""


class CatalogUnavailableError(Exception):
    """TMDB rejected or failed the request (auth, rate limit, 5xx, network)."""


class CatalogGenre(BaseModel):
    id: int
    name: str


class CatalogTitle(BaseModel):
    id: int
    media_type: str
    title: str
    original_title: str | None = None
    original_language: str | None = None
    overview: str | None = None
    release_date: date | None = None
    poster_path: str | None = None
    popularity: float | None = None
    genres: list[CatalogGenre] = []
    season_count: int | None = None
    episode_count: int | None = None
    series_status: str | None = None


class CatalogRecommendation(BaseModel):
    id: int
    title: str
    overview: str | None = None
    poster_path: str | None = None
    popularity: float = 0.0
    genre_ids: list[int] = []
    media_type: str | None = None


class CatalogSearchResult(BaseModel):
    id: int
    media_type: str
    name: str
    original_name: str | None = None
    poster_url: str | None = None


def image_url(path: str | None, size: str = "w500") -> str | None:
    if not path:
        return None
    return f"{IMAGE_BASE_URL}/{size}{path}"


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _parse_title(payload: dict[str, Any], media_type: str) -> CatalogTitle:
    genres = [CatalogGenre(**g) for g in payload.get("genres") or []]
    if media_type == "movie":
        return CatalogTitle(
            id=payload["id"],
            media_type="movie",
            title=payload.get("title") or payload.get("original_title") or "",
            original_title=payload.get("original_title"),
            original_language=payload.get("original_language"),
            overview=payload.get("overview"),
            release_date=_parse_date(payload.get("release_date")),
            poster_path=payload.get("poster_path"),
            popularity=payload.get("popularity"),
            genres=genres,
        )
    return CatalogTitle(
        id=payload["id"],
        media_type="tv",
        title=payload.get("name") or payload.get("original_name") or "",
        original_title=payload.get("original_name"),
        original_language=payload.get("original_language"),
        overview=payload.get("overview"),
        release_date=_parse_date(payload.get("first_air_date")),
        poster_path=payload.get("poster_path"),
        popularity=payload.get("popularity"),
        genres=genres,
        season_count=payload.get("number_of_seasons"),
        episode_count=payload.get("number_of_episodes"),
        series_status=payload.get("status"),
    )


class CatalogClient:
    def __init__(
        self,
        token: str,
        base_url: str = "https://api.themoviedb.org/3",
        language: str = "pt-BR",
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.language = language
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers["Accept"] = "application/json"
        if token:
            self._session.headers["Authorization"] = f"Bearer {token}"

    def close(self) -> None:
        self._session.close()

    def _get(self, path: str, **params: Any) -> requests.Response:
        try:
            return self._session.get(
                f"{self.base_url}{path}",
                params={"language": self.language, **params},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("tmdb request failed path=%s error=%s", path, exc)
            raise CatalogUnavailableError(str(exc)) from exc

    def _json(self, response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            logger.warning("tmdb returned invalid json url=%s", response.url)
            raise CatalogUnavailableError("TMDB returned invalid JSON") from exc

    def resolve_title(self, media_id: int, media_type: str) -> CatalogTitle:
        """Fetch canonical metadata for a movie or TV show.

        Raises:
            CatalogNotFoundError: TMDB answered 404.
            CatalogUnavailableError: any other non-200 answer or transport error.
        """
        response = self._get(f"/{media_type}/{media_id}")
        if response.status_code == requests.codes.not_found:
            raise CatalogNotFoundError(f"{media_type}/{media_id}")
        if response.status_code != requests.codes.ok:
            logger.warning(
                "tmdb resolve failed media=%s/%s status=%s",
                media_type, media_id, response.status_code,
            )
            raise CatalogUnavailableError(f"TMDB responded {response.status_code}")
        return _parse_title(self._json(response), media_type)

    def recommendations_for(
        self, media_id: int, media_type: str
    ) -> list[CatalogRecommendation]:
        try:
            response = self._get(f"/{media_type}/{media_id}/recommendations", page=1)
        except CatalogUnavailableError:
            return []
        if response.status_code != requests.codes.ok:
            logger.warning(
                "tmdb recommendations failed media=%s/%s status=%s",
                media_type, media_id, response.status_code,
            )
            return []
        try:
            payload = self._json(response)
        except CatalogUnavailableError:
            return []
        results = []
        for item in payload.get("results") or []:
            results.append(
                CatalogRecommendation(
                    id=item["id"],
                    title=item.get("title") or item.get("name") or "",
                    overview=item.get("overview") or None,
                    poster_path=item.get("poster_path"),
                    popularity=item.get("popularity") or 0.0,
                    genre_ids=item.get("genre_ids") or [],
                    media_type=item.get("media_type") or media_type,
                )
            )
        return results

    def search_multi(self, query: str, limit: int = 5) -> list[CatalogSearchResult]:
        response = self._get(
            "/search/multi", query=query, include_adult="false", page=1
        )
        if response.status_code != requests.codes.ok:
            logger.warning("tmdb search failed status=%s", response.status_code)
            raise CatalogUnavailableError(f"TMDB responded {response.status_code}")
        results: list[CatalogSearchResult] = []
        for item in self._json(response).get("results") or []:
            media_type = item.get("media_type")
            if media_type not in MEDIA_TYPES:
                continue
            if media_type == "movie":
                name, original = item.get("title"), item.get("original_title")
            else:
                name, original = item.get("name"), item.get("original_name")
            results.append(
                CatalogSearchResult(
                    id=item["id"],
                    media_type=media_type,
                    name=name or "",
                    original_name=original,
                    poster_url=image_url(item.get("poster_path")),
                )
            )
            if len(results) >= limit:
                break
        return results
