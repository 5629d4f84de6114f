from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from cinelist.cache import TTLStore
from cinelist.errors import DomainError, ErrorKind
from cinelist.models.list_movie import ListMovie
from cinelist.services.recommendation_engine import RecommendationEngine, clamp_limit
from cinelist.services.tmdb import CatalogRecommendation
from cinelist.stores.list_movie_store import ListMovieStore
from cinelist.stores.membership_store import MembershipStore


def rec(media_id, popularity, genre_ids, media_type="movie"):
    return CatalogRecommendation(
        id=media_id,
        title=f"Title {media_id}",
        popularity=popularity,
        genre_ids=genre_ids,
        media_type=media_type,
        poster_path=f"/{media_id}.jpg",
    )


@pytest.fixture
def cache():
    return TTLStore(ttl_seconds=86400)


@pytest.fixture
def engine(db, catalog, cache):
    return RecommendationEngine(
        memberships=MembershipStore(db),
        list_movies=ListMovieStore(db),
        catalog=catalog,
        cache=cache,
    )


@pytest.fixture
def seeded_catalog(catalog, movies):
    catalog.recommendations = {
        603: [rec(100, 50.0, [878]), rec(27205, 90.0, [878]), rec(200, 80.0, [99])],
        27205: [rec(100, 50.0, [878]), rec(300, 10.0, [53, 80, 53], media_type=None)],
        680: [],
    }
    return catalog


def test_ranks_and_deduplicates(engine, seeded_catalog, stocked_list, owner_user):
    items = engine.get_recommendations(stocked_list.id, owner_user.id)

    assert [i.id for i in items] == [100, 200, 300]
    top = items[0]
    assert top.frequency == 2
    assert top.score == pytest.approx(1.3)
    assert top.poster_url == "https://image.tmdb.org/t/p/w500/100.jpg"
    assert items[1].score == pytest.approx(0.8)
    assert items[2].score == pytest.approx(0.7)
    assert items[2].media_type == "movie"
    assert seeded_catalog.recommendation_calls == 3


def test_cached_ranking_is_reused(engine, seeded_catalog, stocked_list, owner_user, participant_user):
    first = engine.get_recommendations(stocked_list.id, owner_user.id)
    second = engine.get_recommendations(stocked_list.id, participant_user.id)

    assert second == first
    assert seeded_catalog.recommendation_calls == 3


def test_limit_is_applied_to_cached_ranking(engine, seeded_catalog, stocked_list, owner_user):
    assert [i.id for i in engine.get_recommendations(stocked_list.id, owner_user.id, 1)] == [100]
    assert len(engine.get_recommendations(stocked_list.id, owner_user.id, 50)) == 3
    assert seeded_catalog.recommendation_calls == 3


def test_failed_seed_contributes_nothing(engine, seeded_catalog, stocked_list, owner_user):
    seeded_catalog.failing_seeds = {603}

    items = engine.get_recommendations(stocked_list.id, owner_user.id)

    assert [i.id for i in items] == [100, 300]
    assert items[0].frequency == 1


def test_cache_hit_still_checks_membership(
    engine, seeded_catalog, stocked_list, owner_user, outsider_user
):
    engine.get_recommendations(stocked_list.id, owner_user.id)

    with pytest.raises(DomainError) as exc_info:
        engine.get_recommendations(stocked_list.id, outsider_user.id)
    assert exc_info.value.code == "NOT_A_MEMBER"


def test_insufficient_movies(db, engine, catalog, sample_list, movies, owner_user):
    db.add(ListMovie(list_id=sample_list.id, movie_id=movies[0].id))
    db.flush()

    with pytest.raises(DomainError) as exc_info:
        engine.get_recommendations(sample_list.id, owner_user.id)

    assert exc_info.value.kind == ErrorKind.VALIDATION_FAILED
    assert exc_info.value.code == "INSUFFICIENT_MOVIES"
    assert catalog.recommendation_calls == 0


def test_missing_list(engine, owner_user):
    with pytest.raises(DomainError) as exc_info:
        engine.get_recommendations(424242, owner_user.id)
    assert exc_info.value.code == "LIST_NOT_FOUND"


def test_select_seeds_prefers_rated_and_recent(engine):
    now = datetime(2026, 1, 31, tzinfo=timezone.utc)
    engine._now = lambda: now

    def entry(name, rating, days_ago, naive=False):
        added_at = now - timedelta(days=days_ago)
        if naive:
            added_at = added_at.replace(tzinfo=None)
        return SimpleNamespace(name=name, average_rating=rating, added_at=added_at)

    entries = [
        entry("old favourite", 9.0, 60),
        entry("recent hit", 8.8, 1, naive=True),
        entry("unrated", None, 2),
        entry("five", 5.0, 90),
        entry("six", 6.0, 90),
        entry("seven", 7.0, 90),
    ]

    seeds = engine.select_seeds(entries)

    assert [s.name for s in seeds] == [
        "recent hit",
        "old favourite",
        "seven",
        "six",
        "five",
    ]


@pytest.mark.parametrize("given, expected", [(None, 15), (0, 1), (7, 7), (500, 50)])
def test_clamp_limit(given, expected):
    assert clamp_limit(given) == expected


def test_unknown_role_is_not_a_member(catalog, cache):
    memberships = SimpleNamespace(
        find_by_id=lambda list_id: SimpleNamespace(id=list_id),
        find_membership=lambda list_id, user_id: SimpleNamespace(role="admin"),
    )
    engine = RecommendationEngine(
        memberships=memberships, list_movies=None, catalog=catalog, cache=cache
    )

    with pytest.raises(DomainError) as exc_info:
        engine.get_recommendations(1, 1)
    assert exc_info.value.code == "NOT_A_MEMBER"
    assert catalog.recommendation_calls == 0
