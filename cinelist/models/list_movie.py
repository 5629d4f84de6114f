import enum
from datetime import datetime

from sqlalchemy import CheckConstraint, ForeignKey, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cinelist.database import Base


class MovieStatus(str, enum.Enum):
    NOT_WATCHED = "not_watched"
    WATCHING = "watching"
    WATCHED = "watched"
    DROPPED = "dropped"


class ListMovie(Base):
    __tablename__ = "list_movies"
    __table_args__ = (
        UniqueConstraint("list_id", "movie_id", name="uq_list_movies_list_movie"),
        CheckConstraint(
            "status IN ('not_watched', 'watching', 'watched', 'dropped')",
            name="ck_list_movies_status",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    list_id: Mapped[int] = mapped_column(ForeignKey("movie_lists.id"))
    movie_id: Mapped[int] = mapped_column(ForeignKey("movies.id"))
    status: Mapped[str] = mapped_column(
        String(20), default=MovieStatus.NOT_WATCHED.value
    )
    added_by: Mapped[int | None] = mapped_column(
        ForeignKey("users.id"), default=None
    )
    added_at: Mapped[datetime] = mapped_column(server_default=func.now())
    watched_at: Mapped[datetime | None] = mapped_column(default=None)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now()
    )
    display_order: Mapped[int | None] = mapped_column(default=None)

    movie: Mapped["Movie"] = relationship("Movie", lazy="selectin")
    user_entries: Mapped[list["ListMovieUserData"]] = relationship(
        "ListMovieUserData",
        primaryjoin=(
            "and_(ListMovie.list_id == foreign(ListMovieUserData.list_id), "
            "ListMovie.movie_id == foreign(ListMovieUserData.movie_id))"
        ),
        viewonly=True,
        lazy="selectin",
        order_by="ListMovieUserData.id",
    )

    @property
    def average_rating(self) -> float | None:
        ratings = [e.rating for e in self.user_entries if e.rating is not None]
        if not ratings:
            return None
        return sum(ratings) / len(ratings)
