from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cinelist.models.movie import Genre, Movie
from cinelist.services.tmdb import CatalogTitle


class MovieStore:
    """Local catalog of titles fetched from TMDB."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def find_by_id(self, movie_id: int) -> Movie | None:
        return self.db.get(Movie, movie_id)

    def _upsert_genre(self, genre_id: int, name: str) -> Genre:
        genre = self.db.get(Genre, genre_id)
        if genre is not None:
            return genre
        try:
            with self.db.begin_nested():
                genre = Genre(id=genre_id, name=name)
                self.db.add(genre)
                self.db.flush()
        except IntegrityError:
            genre = self.db.get(Genre, genre_id)
            if genre is None:
                raise
        return genre

    def create_with_genres(self, title: CatalogTitle) -> Movie:
        """Persist a catalog title and its genres.

        If another request stored the same title first, that row is returned.
        """
        genres = [self._upsert_genre(g.id, g.name) for g in title.genres]
        movie = Movie(
            id=title.id,
            media_type=title.media_type,
            title=title.title,
            original_title=title.original_title,
            original_lang=title.original_language,
            overview=title.overview,
            release_date=title.release_date,
            poster_path=title.poster_path,
            popularity=title.popularity,
            seasons_count=title.season_count,
            episodes_count=title.episode_count,
            series_status=title.series_status,
            genres=genres,
        )
        try:
            with self.db.begin_nested():
                self.db.add(movie)
                self.db.flush()
        except IntegrityError:
            existing = self.find_by_id(title.id)
            if existing is None:
                raise
            return existing
        return movie
