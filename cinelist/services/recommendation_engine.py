"""Content-based recommendations for a list.

Seeds are the list's best-rated and most recently added titles. TMDB
recommendations for each seed are merged and scored by popularity, by how
many seeds suggested them and by genre overlap with the list.
"""

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from cinelist.cache import TTLStore
from cinelist.errors import validation_failed
from cinelist.models.list_movie import ListMovie
from cinelist.services.list_service import require_member
from cinelist.services.tmdb import CatalogClient, CatalogRecommendation, image_url
from cinelist.stores.list_movie_store import ListMovieStore
from cinelist.stores.membership_store import MembershipStore

logger = logging.getLogger(__name__)

MIN_LIST_MOVIES = 2
MAX_SEEDS = 5
RECENT_WINDOW = timedelta(days=30)
RECENCY_BONUS = 0.5
FREQUENCY_WEIGHT = 0.5
GENRE_WEIGHT = 0.3
DEFAULT_LIMIT, MAX_LIMIT = 15, 50


@dataclass(frozen=True)
class RecommendationItem:
    id: int
    title: str
    overview: str | None
    poster_url: str | None
    media_type: str
    popularity: float
    frequency: int
    score: float
    genre_ids: tuple[int, ...] = field(default=())


def _as_utc(value: datetime) -> datetime:
    # SQLite and MySQL hand back naive datetimes; they are stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def clamp_limit(limit: int | None) -> int:
    if limit is None:
        return DEFAULT_LIMIT
    return min(max(limit, 1), MAX_LIMIT)


class RecommendationEngine:
    def __init__(
        self,
        memberships: MembershipStore,
        list_movies: ListMovieStore,
        catalog: CatalogClient,
        cache: TTLStore,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.memberships = memberships
        self.list_movies = list_movies
        self.catalog = catalog
        self.cache = cache
        self._now = now

    def get_recommendations(
        self, list_id: int, user_id: int, limit: int | None = None
    ) -> list[RecommendationItem]:
        """Return the top ``limit`` recommendations for a list.

        Membership is checked on every call, cached or not. The full ranking
        is cached per list so a different ``limit`` is served from the same
        entry.
        """
        require_member(self.memberships, list_id, user_id)
        limit = clamp_limit(limit)

        ranking = self.cache.get(list_id)
        if ranking is not None:
            logger.debug("recommendation cache hit list_id=%s", list_id)
            return list(ranking[:limit])

        logger.debug("recommendation cache miss list_id=%s", list_id)
        ranking = self._rank(list_id)
        self.cache.set(list_id, ranking)
        return list(ranking[:limit])

    def _rank(self, list_id: int) -> tuple[RecommendationItem, ...]:
        entries = self.list_movies.find_list_movies(list_id)
        if len(entries) < MIN_LIST_MOVIES:
            raise validation_failed(
                "INSUFFICIENT_MOVIES",
                "The list needs at least 2 movies to generate recommendations",
            )

        seeds = self.select_seeds(entries)
        fetched = self._fetch_all(seeds)

        list_genres = {genre.id for entry in entries for genre in entry.movie.genres}
        existing_ids = {entry.movie_id for entry in entries}

        candidates: dict[int, CatalogRecommendation] = {}
        frequency: dict[int, int] = {}
        for recommendations in fetched:
            for candidate in recommendations:
                if candidate.id not in candidates:
                    candidates[candidate.id] = candidate
                frequency[candidate.id] = frequency.get(candidate.id, 0) + 1

        items = []
        for candidate_id, candidate in candidates.items():
            if candidate_id in existing_ids:
                continue
            genre_ids = tuple(dict.fromkeys(candidate.genre_ids))
            matching = sum(1 for genre_id in genre_ids if genre_id in list_genres)
            count = frequency[candidate_id]
            score = (
                candidate.popularity / 100
                + (count - 1) * FREQUENCY_WEIGHT
                + matching * GENRE_WEIGHT
            )
            items.append(
                RecommendationItem(
                    id=candidate_id,
                    title=candidate.title,
                    overview=candidate.overview,
                    poster_url=image_url(candidate.poster_path),
                    media_type=candidate.media_type or "movie",
                    popularity=candidate.popularity,
                    frequency=count,
                    score=round(score, 4),
                    genre_ids=genre_ids,
                )
            )

        items.sort(key=lambda item: (-item.score, -item.popularity, item.id))
        logger.info(
            "recommendations computed list_id=%s seeds=%d candidates=%d",
            list_id, len(seeds), len(items),
        )
        return tuple(items)

    def select_seeds(self, entries: list[ListMovie]) -> list[ListMovie]:
        now = self._now()

        def seed_score(entry: ListMovie) -> float:
            score = entry.average_rating or 0.0
            if now - _as_utc(entry.added_at) <= RECENT_WINDOW:
                score += RECENCY_BONUS
            return score

        return sorted(entries, key=seed_score, reverse=True)[:MAX_SEEDS]

    def _fetch_all(
        self, seeds: list[ListMovie]
    ) -> list[list[CatalogRecommendation]]:
        """Query TMDB for every seed in parallel and wait for all of them.

        A seed whose request fails contributes nothing.
        """
        if not seeds:
            return []
        pool = ThreadPoolExecutor(max_workers=min(MAX_SEEDS, len(seeds)))
        try:
            futures = [
                (
                    seed,
                    pool.submit(
                        self.catalog.recommendations_for,
                        seed.movie.id,
                        seed.movie.media_type,
                    ),
                )
                for seed in seeds
            ]
            results = []
            for seed, future in futures:
                try:
                    recommendations = future.result()
                except Exception:
                    logger.warning(
                        "recommendation seed failed movie_id=%s",
                        seed.movie_id,
                        exc_info=True,
                    )
                    continue
                results.append(
                    [
                        r if r.media_type else r.model_copy(
                            update={"media_type": seed.movie.media_type}
                        )
                        for r in recommendations
                    ]
                )
        except BaseException:
            # Interrupted while waiting: drop queued seeds and partial results.
            pool.shutdown(wait=False, cancel_futures=True)
            raise
        pool.shutdown()
        return results
