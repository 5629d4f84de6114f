import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from cinelist.cache import SlidingWindowLimiter, TTLStore
from cinelist.config import settings
from cinelist.database import Base, configure_engine
from cinelist.dependencies import create_access_token, get_catalog_client, get_db
from cinelist.main import app
from cinelist.models.list_member import ListMember, ListRole
from cinelist.models.list_movie import ListMovie
from cinelist.models.movie import Genre, Movie
from cinelist.models.movie_list import MovieList
from cinelist.models.user import User
from cinelist.services.list_service import ListService
from cinelist.services.tmdb import (
    CatalogGenre,
    CatalogNotFoundError,
    CatalogRecommendation,
    CatalogSearchResult,
    CatalogTitle,
    CatalogUnavailableError,
)
from cinelist.stores.list_movie_store import ListMovieStore
from cinelist.stores.membership_store import MembershipStore
from cinelist.stores.movie_store import MovieStore

test_engine = configure_engine(create_engine(settings.test_database_url))
TestSession = sessionmaker(bind=test_engine, join_transaction_mode="create_savepoint")

DRAMA = CatalogGenre(id=18, name="Drama")
COMEDY = CatalogGenre(id=35, name="Comedy")
CRIME = CatalogGenre(id=80, name="Crime")
FANTASY = CatalogGenre(id=10765, name="Sci-Fi & Fantasy")


class FakeCatalog:
    """In-memory stand-in for the TMDB client."""

    def __init__(self):
        self.titles = {
            ("movie", 550): CatalogTitle(
                id=550,
                media_type="movie",
                title="Clube da Luta",
                original_title="Fight Club",
                original_language="en",
                overview="An insomniac office worker...",
                poster_path="/fight.jpg",
                popularity=61.4,
                genres=[DRAMA],
            ),
            ("movie", 13): CatalogTitle(
                id=13,
                media_type="movie",
                title="Forrest Gump",
                original_title="Forrest Gump",
                original_language="en",
                popularity=48.0,
                genres=[DRAMA, COMEDY],
            ),
            ("tv", 1399): CatalogTitle(
                id=1399,
                media_type="tv",
                title="Game of Thrones",
                original_title="Game of Thrones",
                original_language="en",
                popularity=300.0,
                genres=[FANTASY, DRAMA],
                season_count=8,
                episode_count=73,
                series_status="Ended",
            ),
        }
        self.recommendations: dict[int, list[CatalogRecommendation]] = {}
        self.failing_seeds: set[int] = set()
        self.unavailable = False
        self.resolve_calls = 0
        self.recommendation_calls = 0

    def resolve_title(self, media_id, media_type):
        self.resolve_calls += 1
        if self.unavailable:
            raise CatalogUnavailableError("TMDB responded 503")
        title = self.titles.get((media_type, media_id))
        if title is None:
            raise CatalogNotFoundError(f"{media_type}/{media_id}")
        return title

    def recommendations_for(self, media_id, media_type):
        self.recommendation_calls += 1
        if media_id in self.failing_seeds:
            raise CatalogUnavailableError("seed failed")
        return list(self.recommendations.get(media_id, []))

    def search_multi(self, query, limit=5):
        if self.unavailable:
            raise CatalogUnavailableError("TMDB responded 503")
        return [
            CatalogSearchResult(
                id=title.id,
                media_type=title.media_type,
                name=title.title,
                original_name=title.original_title,
            )
            for title in self.titles.values()
            if query.lower() in title.title.lower()
        ][:limit]


@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    Base.metadata.create_all(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def db():
    connection = test_engine.connect()
    transaction = connection.begin()
    session = TestSession(bind=connection)
    yield session
    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def catalog():
    return FakeCatalog()


@pytest.fixture
def client(db, catalog):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_catalog_client] = lambda: catalog
    app.state.recommendation_cache = TTLStore(ttl_seconds=86400)
    app.state.delete_limiter = SlidingWindowLimiter(3, 60)
    app.state.search_limiter = SlidingWindowLimiter(100, 60)
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def make_user(db, username):
    user = User(username=username, email=f"{username}@test.com", password_hash="x")
    user.set_password(f"{username}123")
    db.add(user)
    db.flush()
    return user


@pytest.fixture
def owner_user(db):
    return make_user(db, "owner")


@pytest.fixture
def participant_user(db):
    return make_user(db, "participant")


@pytest.fixture
def outsider_user(db):
    return make_user(db, "outsider")


@pytest.fixture
def owner_headers(owner_user):
    return {"Authorization": f"Bearer {create_access_token(owner_user)}"}


@pytest.fixture
def participant_headers(participant_user):
    return {"Authorization": f"Bearer {create_access_token(participant_user)}"}


@pytest.fixture
def outsider_headers(outsider_user):
    return {"Authorization": f"Bearer {create_access_token(outsider_user)}"}


@pytest.fixture
def list_service(db, catalog):
    return ListService(
        memberships=MembershipStore(db),
        list_movies=ListMovieStore(db),
        movies=MovieStore(db),
        catalog=catalog,
    )


@pytest.fixture
def sample_list(db, owner_user):
    movie_list = MovieList(
        name="Movie Night", invite_code="ABCDE12345", created_by=owner_user.id
    )
    db.add(movie_list)
    db.flush()
    db.add(
        ListMember(
            list_id=movie_list.id, user_id=owner_user.id, role=ListRole.OWNER.value
        )
    )
    db.flush()
    return movie_list


@pytest.fixture
def shared_list(db, sample_list, participant_user):
    db.add(
        ListMember(
            list_id=sample_list.id,
            user_id=participant_user.id,
            role=ListRole.PARTICIPANT.value,
        )
    )
    db.flush()
    return sample_list


def make_movie(db, movie_id, title, genres, media_type="movie", popularity=10.0):
    stored = []
    for genre_id, name in genres:
        genre = db.get(Genre, genre_id)
        if genre is None:
            genre = Genre(id=genre_id, name=name)
            db.add(genre)
        stored.append(genre)
    movie = Movie(
        id=movie_id,
        media_type=media_type,
        title=title,
        original_title=title,
        popularity=popularity,
        genres=stored,
    )
    db.add(movie)
    db.flush()
    return movie


@pytest.fixture
def movies(db):
    return [
        make_movie(db, 603, "The Matrix", [(878, "Science Fiction"), (28, "Action")]),
        make_movie(db, 27205, "Inception", [(878, "Science Fiction"), (53, "Thriller")]),
        make_movie(db, 680, "Pulp Fiction", [(80, "Crime"), (53, "Thriller")]),
    ]


@pytest.fixture
def stocked_list(db, shared_list, movies, owner_user):
    for movie in movies:
        db.add(ListMovie(list_id=shared_list.id, movie_id=movie.id, added_by=owner_user.id))
    db.flush()
    return shared_list
