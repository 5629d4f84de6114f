from datetime import date

from sqlalchemy import Column, Float, ForeignKey, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cinelist.database import Base

POSTER_BASE_URL = "https://image.tmdb.org/t/p/w500"

movie_genres = Table(
    "movie_genres",
    Base.metadata,
    Column("movie_id", ForeignKey("movies.id"), primary_key=True),
    Column("genre_id", ForeignKey("genres.id"), primary_key=True),
)


class Genre(Base):
    __tablename__ = "genres"

    # TMDB genre id
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(100))


class Movie(Base):
    """Local copy of a TMDB title, shared by every list that contains it."""

    __tablename__ = "movies"

    # TMDB id
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)
    media_type: Mapped[str] = mapped_column(String(10), default="movie")
    title: Mapped[str] = mapped_column(String(500))
    original_title: Mapped[str | None] = mapped_column(String(500), default=None)
    original_lang: Mapped[str | None] = mapped_column(String(10), default=None)
    overview: Mapped[str | None] = mapped_column(Text, default=None)
    release_date: Mapped[date | None] = mapped_column(default=None)
    poster_path: Mapped[str | None] = mapped_column(String(255), default=None)
    popularity: Mapped[float | None] = mapped_column(Float, default=None)
    seasons_count: Mapped[int | None] = mapped_column(default=None)
    episodes_count: Mapped[int | None] = mapped_column(default=None)
    series_status: Mapped[str | None] = mapped_column(String(50), default=None)

    genres: Mapped[list[Genre]] = relationship(
        Genre, secondary=movie_genres, lazy="selectin", order_by=Genre.id
    )

    @property
    def poster_url(self) -> str | None:
        if not self.poster_path:
            return None
        return POSTER_BASE_URL + self.poster_path
