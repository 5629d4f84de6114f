from datetime import datetime, timezone

from sqlalchemy import case, delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cinelist.models.comment import Comment
from cinelist.models.list_movie import ListMovie, MovieStatus
from cinelist.models.list_movie_user_data import ListMovieUserData
from cinelist.models.movie import Movie


class ListMovieAlreadyExists(Exception):
    """The (list, movie) pair is already present."""


_DISPLAY_ORDER = (
    case((ListMovie.display_order.is_(None), 1), else_=0),
    ListMovie.display_order.asc(),
    ListMovie.added_at.desc(),
    ListMovie.id.desc(),
)


class ListMovieStore:
    """Shared list entries and the per-user rating/notes overlay."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def list_movie_exists(self, list_id: int, movie_id: int) -> bool:
        count = self.db.execute(
            select(func.count())
            .select_from(ListMovie)
            .where(ListMovie.list_id == list_id, ListMovie.movie_id == movie_id)
        ).scalar_one()
        return count > 0

    def add_movie_to_list(
        self, list_id: int, movie_id: int, added_by: int | None
    ) -> ListMovie:
        list_movie = ListMovie(list_id=list_id, movie_id=movie_id, added_by=added_by)
        try:
            with self.db.begin_nested():
                self.db.add(list_movie)
                self.db.flush()
        except IntegrityError as exc:
            raise ListMovieAlreadyExists(list_id, movie_id) from exc
        self.db.refresh(list_movie)
        return list_movie

    def find_list_movie(self, list_id: int, movie_id: int) -> ListMovie | None:
        return self.db.execute(
            select(ListMovie).where(
                ListMovie.list_id == list_id, ListMovie.movie_id == movie_id
            )
        ).scalar_one_or_none()

    def reload(self, list_movie: ListMovie) -> ListMovie:
        self.db.refresh(list_movie)
        return list_movie

    def update_status(
        self, list_id: int, movie_id: int, status: MovieStatus
    ) -> ListMovie:
        list_movie = self.find_list_movie(list_id, movie_id)
        list_movie.status = status.value
        if status == MovieStatus.WATCHED:
            list_movie.watched_at = datetime.now(timezone.utc)
        else:
            list_movie.watched_at = None
        self.db.flush()
        return list_movie

    def find_user_data(
        self, list_id: int, movie_id: int, user_id: int
    ) -> ListMovieUserData | None:
        return self.db.execute(
            select(ListMovieUserData).where(
                ListMovieUserData.list_id == list_id,
                ListMovieUserData.movie_id == movie_id,
                ListMovieUserData.user_id == user_id,
            )
        ).scalar_one_or_none()

    def upsert_user_data(
        self,
        list_id: int,
        movie_id: int,
        user_id: int,
        rating: int | None,
        rating_provided: bool,
        notes: str | None,
        notes_provided: bool,
    ) -> ListMovieUserData | None:
        """Apply a rating/notes change to the caller's overlay row.

        A row is never left with both rating and notes empty: it is either
        not created or deleted.

        Returns:
            The stored row, or None when no row exists afterwards.
        """
        existing = self.find_user_data(list_id, movie_id, user_id)

        if existing is None:
            # Only a non-null rating opens a row; notes ride along with it.
            if not rating_provided or rating is None:
                return None
            entry = ListMovieUserData(
                list_id=list_id,
                movie_id=movie_id,
                user_id=user_id,
                rating=rating,
                notes=notes if notes_provided else None,
            )
            try:
                with self.db.begin_nested():
                    self.db.add(entry)
                    self.db.flush()
            except IntegrityError:
                # A concurrent request inserted the row first; update it instead.
                existing = self.find_user_data(list_id, movie_id, user_id)
                if existing is None:
                    raise
            else:
                self.db.refresh(entry)
                return entry

        if rating_provided:
            existing.rating = rating
        if notes_provided:
            existing.notes = notes

        if existing.rating is None and existing.notes is None:
            self.db.delete(existing)
            self.db.flush()
            return None

        existing.updated_at = datetime.now(timezone.utc)
        self.db.flush()
        return existing

    def get_average_rating(self, list_id: int, movie_id: int) -> float | None:
        average = self.db.execute(
            select(func.avg(ListMovieUserData.rating)).where(
                ListMovieUserData.list_id == list_id,
                ListMovieUserData.movie_id == movie_id,
                ListMovieUserData.rating.is_not(None),
            )
        ).scalar_one_or_none()
        return float(average) if average is not None else None

    def find_list_movies(
        self, list_id: int, status: MovieStatus | None = None
    ) -> list[ListMovie]:
        query = select(ListMovie).where(ListMovie.list_id == list_id)
        if status is not None:
            query = query.where(ListMovie.status == status.value)
        query = query.order_by(*_DISPLAY_ORDER).execution_options(
            populate_existing=True
        )
        return list(self.db.execute(query).scalars().all())

    def search_list_movies(
        self, list_id: int, query: str, limit: int, offset: int
    ) -> tuple[list[ListMovie], int]:
        term = query.strip()
        matches = or_(
            Movie.title.icontains(term, autoescape=True),
            Movie.original_title.icontains(term, autoescape=True),
        )
        base = (
            select(ListMovie)
            .join(Movie, Movie.id == ListMovie.movie_id)
            .where(ListMovie.list_id == list_id, matches)
        )
        total = self.db.execute(
            select(func.count()).select_from(base.subquery())
        ).scalar_one()
        items = self.db.execute(
            base.order_by(*_DISPLAY_ORDER)
            .limit(limit)
            .offset(offset)
            .execution_options(populate_existing=True)
        ).scalars().all()
        return list(items), total

    def update_orders(self, list_id: int, order_map: dict[int, int]) -> None:
        with self.db.begin_nested():
            for movie_id, order in order_map.items():
                self.db.execute(
                    update(ListMovie)
                    .where(ListMovie.list_id == list_id, ListMovie.movie_id == movie_id)
                    .values(display_order=order)
                )

    def remove_movie(self, list_id: int, movie_id: int) -> None:
        with self.db.begin_nested():
            self.db.execute(
                delete(Comment).where(
                    Comment.list_id == list_id, Comment.movie_id == movie_id
                )
            )
            self.db.execute(
                delete(ListMovieUserData).where(
                    ListMovieUserData.list_id == list_id,
                    ListMovieUserData.movie_id == movie_id,
                )
            )
            self.db.execute(
                delete(ListMovie).where(
                    ListMovie.list_id == list_id, ListMovie.movie_id == movie_id
                )
            )
