import enum
from datetime import datetime

from sqlalchemy import CheckConstraint, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cinelist.database import Base


class ListRole(str, enum.Enum):
    OWNER = "owner"
    PARTICIPANT = "participant"


class ListMember(Base):
    __tablename__ = "list_members"
    __table_args__ = (
        CheckConstraint(
            "role IN ('owner', 'participant')", name="ck_list_members_role"
        ),
    )

    list_id: Mapped[int] = mapped_column(ForeignKey("movie_lists.id"), primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), primary_key=True)
    role: Mapped[str] = mapped_column(String(20))
    added_at: Mapped[datetime] = mapped_column(server_default=func.now())

    movie_list: Mapped["MovieList"] = relationship("MovieList", lazy="selectin")

    @property
    def is_owner(self) -> bool:
        return self.role == ListRole.OWNER.value
