from sqlalchemy import func, select
from sqlalchemy.orm import Session

from cinelist.models.comment import Comment


class CommentStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def create(self, list_id: int, movie_id: int, user_id: int, content: str) -> Comment:
        comment = Comment(
            list_id=list_id, movie_id=movie_id, user_id=user_id, content=content
        )
        self.db.add(comment)
        self.db.flush()
        self.db.refresh(comment)
        return comment

    def find_page(
        self, list_id: int, movie_id: int, limit: int, offset: int
    ) -> tuple[list[Comment], int]:
        where = (Comment.list_id == list_id, Comment.movie_id == movie_id)
        total = self.db.execute(
            select(func.count()).select_from(Comment).where(*where)
        ).scalar_one()
        comments = self.db.execute(
            select(Comment)
            .where(*where)
            .order_by(Comment.created_at.desc(), Comment.id.desc())
            .limit(limit)
            .offset(offset)
        ).scalars().all()
        return list(comments), total

    def find_by_id(self, comment_id: int) -> Comment | None:
        return self.db.get(Comment, comment_id)

    def update_content(self, comment: Comment, content: str) -> Comment:
        comment.content = content
        self.db.flush()
        self.db.refresh(comment)
        return comment

    def delete(self, comment: Comment) -> None:
        self.db.delete(comment)
        self.db.flush()
