from datetime import datetime, timezone

from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cinelist.models.comment import Comment
from cinelist.models.list_member import ListMember, ListRole
from cinelist.models.list_movie import ListMovie
from cinelist.models.list_movie_user_data import ListMovieUserData
from cinelist.models.movie_list import MovieList


class InviteCodeCollision(Exception):
    """The invite code was taken between the existence check and the insert."""


class NotListOwner(Exception):
    """The caller does not hold the owner role on the list."""


class MembershipStore:
    """Lists, memberships and invite codes."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def invite_code_exists(self, code: str) -> bool:
        count = self.db.execute(
            select(func.count()).select_from(MovieList).where(MovieList.invite_code == code)
        ).scalar_one()
        return count > 0

    def create_with_owner(self, movie_list: MovieList, owner_id: int) -> MovieList:
        """Insert the list and its owner membership as one unit.

        Raises:
            InviteCodeCollision: if the invite code unique constraint fired.
        """
        code = movie_list.invite_code
        try:
            with self.db.begin_nested():
                self.db.add(movie_list)
                self.db.flush()
                self.db.add(
                    ListMember(
                        list_id=movie_list.id,
                        user_id=owner_id,
                        role=ListRole.OWNER.value,
                    )
                )
                self.db.flush()
        except IntegrityError as exc:
            if "invite_code" in str(exc.orig).lower():
                raise InviteCodeCollision(code) from exc
            raise
        self.db.refresh(movie_list)
        return movie_list

    def find_by_id(self, list_id: int) -> MovieList | None:
        return self.db.execute(
            select(MovieList).where(
                MovieList.id == list_id, MovieList.deleted_at.is_(None)
            )
        ).scalar_one_or_none()

    def find_by_invite_code(self, code: str) -> MovieList | None:
        return self.db.execute(
            select(MovieList).where(
                MovieList.invite_code == code, MovieList.deleted_at.is_(None)
            )
        ).scalar_one_or_none()

    def find_membership(self, list_id: int, user_id: int) -> ListMember | None:
        return self.db.execute(
            select(ListMember).where(
                ListMember.list_id == list_id, ListMember.user_id == user_id
            )
        ).scalar_one_or_none()

    def add_participant_if_not_exists(self, list_id: int, user_id: int) -> bool:
        """Insert a participant row, ignoring an existing one.

        Returns:
            True if a row was inserted, False if the membership already existed.
        """
        try:
            with self.db.begin_nested():
                self.db.execute(
                    insert(ListMember).values(
                        list_id=list_id,
                        user_id=user_id,
                        role=ListRole.PARTICIPANT.value,
                    )
                )
        except IntegrityError:
            return False
        return True

    def count_members(self, list_id: int) -> int:
        return self.db.execute(
            select(func.count()).select_from(ListMember).where(ListMember.list_id == list_id)
        ).scalar_one()

    def remove_member(self, list_id: int, user_id: int) -> None:
        with self.db.begin_nested():
            self.db.execute(
                delete(ListMovieUserData).where(
                    ListMovieUserData.list_id == list_id,
                    ListMovieUserData.user_id == user_id,
                )
            )
            self.db.execute(
                delete(Comment).where(
                    Comment.list_id == list_id, Comment.user_id == user_id
                )
            )
            self.db.execute(
                delete(ListMember).where(
                    ListMember.list_id == list_id, ListMember.user_id == user_id
                )
            )

    def delete_list_if_owner(self, list_id: int, user_id: int) -> None:
        """Soft-delete the list after re-checking ownership in the same transaction.

        Members, movies, ratings and comments are kept.

        Raises:
            NotListOwner: if the user has no owner membership on the list.
        """
        with self.db.begin_nested():
            membership = self.db.execute(
                select(ListMember)
                .where(ListMember.list_id == list_id, ListMember.user_id == user_id)
                .with_for_update()
            ).scalar_one_or_none()
            if membership is None or not membership.is_owner:
                raise NotListOwner(list_id)
            movie_list = self.db.get(MovieList, list_id)
            movie_list.deleted_at = datetime.now(timezone.utc)
            self.db.flush()

    def _memberships_query(self, user_id: int, role: ListRole | None):
        query = (
            select(ListMember)
            .join(MovieList, MovieList.id == ListMember.list_id)
            .where(ListMember.user_id == user_id, MovieList.deleted_at.is_(None))
        )
        if role is not None:
            query = query.where(ListMember.role == role.value)
        return query

    def find_user_memberships(
        self, user_id: int, role: ListRole | None, limit: int, offset: int
    ) -> list[ListMember]:
        query = (
            self._memberships_query(user_id, role)
            .order_by(MovieList.created_at.desc(), MovieList.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(self.db.execute(query).scalars().all())

    def count_user_memberships(self, user_id: int, role: ListRole | None) -> int:
        subquery = self._memberships_query(user_id, role).subquery()
        return self.db.execute(select(func.count()).select_from(subquery)).scalar_one()

    def count_members_batch(self, list_ids: list[int]) -> dict[int, int]:
        if not list_ids:
            return {}
        rows = self.db.execute(
            select(ListMember.list_id, func.count())
            .where(ListMember.list_id.in_(list_ids))
            .group_by(ListMember.list_id)
        ).all()
        return {list_id: count for list_id, count in rows}

    def count_movies_batch(self, list_ids: list[int]) -> dict[int, int]:
        if not list_ids:
            return {}
        rows = self.db.execute(
            select(ListMovie.list_id, func.count())
            .where(ListMovie.list_id.in_(list_ids))
            .group_by(ListMovie.list_id)
        ).all()
        return {list_id: count for list_id, count in rows}
