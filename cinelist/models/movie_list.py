from datetime import datetime

from sqlalchemy import ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cinelist.database import Base


class MovieList(Base):
    __tablename__ = "movie_lists"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(String(1000), default=None)
    invite_code: Mapped[str] = mapped_column(String(10), unique=True, index=True)
    created_by: Mapped[int] = mapped_column(ForeignKey("users.id"))
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now()
    )
    deleted_at: Mapped[datetime | None] = mapped_column(default=None, index=True)

    creator: Mapped["User"] = relationship("User", lazy="selectin")

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def creator_username(self) -> str:
        return self.creator.username
