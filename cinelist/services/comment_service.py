from cinelist.errors import DomainError, ErrorKind, validation_failed
from cinelist.models.comment import Comment
from cinelist.services.list_service import ListService, clamp_page
from cinelist.stores.comment_store import CommentStore

CONTENT_MAX_LENGTH = 2000


def _clean_content(content: str) -> str:
    content = (content or "").strip()
    if not content or len(content) > CONTENT_MAX_LENGTH:
        raise validation_failed(
            "INVALID_CONTENT", "content must be between 1 and 2000 characters"
        )
    return content


class CommentService:
    """Comments on a title in a list. Any member may read or write; only the
    author may edit or delete."""

    def __init__(self, lists: ListService, comments: CommentStore) -> None:
        self.lists = lists
        self.comments = comments

    def _require_movie(self, list_id: int, user_id: int, movie_id: int) -> None:
        self.lists.require_member(list_id, user_id)
        self.lists.require_list_movie(list_id, movie_id)

    def _require_comment(self, list_id: int, movie_id: int, comment_id: int) -> Comment:
        comment = self.comments.find_by_id(comment_id)
        if comment is None or comment.list_id != list_id or comment.movie_id != movie_id:
            raise DomainError(
                ErrorKind.NOT_FOUND, "COMMENT_NOT_FOUND", "Comment not found."
            )
        return comment

    def _require_author(self, comment: Comment, user_id: int) -> None:
        if comment.user_id != user_id:
            raise DomainError(
                ErrorKind.FORBIDDEN,
                "NOT_COMMENT_AUTHOR",
                "Access denied.",
                ["Only the author can change this comment"],
            )

    def create_comment(
        self, list_id: int, user_id: int, movie_id: int, content: str
    ) -> Comment:
        content = _clean_content(content)
        self._require_movie(list_id, user_id, movie_id)
        return self.comments.create(list_id, movie_id, user_id, content)

    def list_comments(
        self,
        list_id: int,
        user_id: int,
        movie_id: int,
        limit: int | None = None,
        offset: int | None = None,
    ) -> tuple[list[Comment], int, int, int]:
        self._require_movie(list_id, user_id, movie_id)
        limit, offset = clamp_page(limit, offset)
        comments, total = self.comments.find_page(list_id, movie_id, limit, offset)
        return comments, total, limit, offset

    def update_comment(
        self, list_id: int, user_id: int, movie_id: int, comment_id: int, content: str
    ) -> Comment:
        content = _clean_content(content)
        self.lists.require_member(list_id, user_id)
        comment = self._require_comment(list_id, movie_id, comment_id)
        self._require_author(comment, user_id)
        return self.comments.update_content(comment, content)

    def delete_comment(
        self, list_id: int, user_id: int, movie_id: int, comment_id: int
    ) -> None:
        self.lists.require_member(list_id, user_id)
        comment = self._require_comment(list_id, movie_id, comment_id)
        self._require_author(comment, user_id)
        self.comments.delete(comment)
