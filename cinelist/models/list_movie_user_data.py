from datetime import datetime

from sqlalchemy import CheckConstraint, ForeignKey, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cinelist.database import Base


class ListMovieUserData(Base):
    """One user's rating and notes for a title in a shared list."""

    __tablename__ = "list_movie_user_data"
    __table_args__ = (
        UniqueConstraint(
            "list_id", "movie_id", "user_id", name="uq_list_movie_user_data"
        ),
        CheckConstraint(
            "rating IS NULL OR (rating BETWEEN 1 AND 10)",
            name="ck_list_movie_user_data_rating",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    list_id: Mapped[int] = mapped_column(ForeignKey("movie_lists.id"))
    movie_id: Mapped[int] = mapped_column(ForeignKey("movies.id"))
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    rating: Mapped[int | None] = mapped_column(default=None)
    notes: Mapped[str | None] = mapped_column(Text, default=None)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now()
    )

    user: Mapped["User"] = relationship("User", lazy="selectin")

    @property
    def username(self) -> str:
        return self.user.username
