from fastapi import APIRouter, Query, status

from cinelist.dependencies import Comments, CurrentUser
from cinelist.schemas.comment import (
    CommentCreate,
    CommentPage,
    CommentRead,
    CommentUpdate,
)

router = APIRouter(
    prefix="/lists/{list_id}/movies/{movie_id}/comments", tags=["comments"]
)


@router.post("", response_model=CommentRead, status_code=status.HTTP_201_CREATED)
def create_comment(
    list_id: int,
    movie_id: int,
    request: CommentCreate,
    user: CurrentUser,
    comments: Comments,
):
    return comments.create_comment(list_id, user.user_id, movie_id, request.content)


@router.get("", response_model=CommentPage)
def list_comments(
    list_id: int,
    movie_id: int,
    user: CurrentUser,
    comments: Comments,
    limit: int = Query(default=50),
    offset: int = Query(default=0),
):
    items, total, limit, offset = comments.list_comments(
        list_id, user.user_id, movie_id, limit, offset
    )
    return CommentPage(
        comments=[CommentRead.model_validate(c) for c in items],
        total=total,
        limit=limit,
        offset=offset,
        has_more=offset + len(items) < total,
    )


@router.patch("/{comment_id}", response_model=CommentRead)
def update_comment(
    list_id: int,
    movie_id: int,
    comment_id: int,
    request: CommentUpdate,
    user: CurrentUser,
    comments: Comments,
):
    return comments.update_comment(
        list_id, user.user_id, movie_id, comment_id, request.content
    )


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_comment(
    list_id: int,
    movie_id: int,
    comment_id: int,
    user: CurrentUser,
    comments: Comments,
):
    comments.delete_comment(list_id, user.user_id, movie_id, comment_id)
