from fastapi import APIRouter, Depends, Query, status

from cinelist.dependencies import CurrentUser, Lists, limit_deletes
from cinelist.models.list_member import ListRole
from cinelist.schemas.movie_list import (
    JoinRequest,
    JoinResponse,
    MovieListCreate,
    MovieListRead,
    UserListRead,
    UserListsResponse,
)

router = APIRouter(prefix="/lists", tags=["lists"])


@router.post("", response_model=MovieListRead, status_code=status.HTTP_201_CREATED)
def create_list(request: MovieListCreate, user: CurrentUser, lists: Lists):
    return lists.create_list(request.name, request.description, user.user_id)


@router.get("", response_model=UserListsResponse)
def list_lists(
    user: CurrentUser,
    lists: Lists,
    role: ListRole | None = None,
    limit: int = Query(default=50),
    offset: int = Query(default=0),
):
    page = lists.list_user_lists(user.user_id, role, limit, offset)
    return UserListsResponse(
        lists=[
            UserListRead(
                list=MovieListRead.model_validate(membership.movie_list),
                role=membership.role,
                member_count=page.member_counts.get(membership.list_id, 0),
                movie_count=page.movie_counts.get(membership.list_id, 0),
            )
            for membership in page.memberships
        ],
        total=page.total,
        limit=page.limit,
        offset=page.offset,
        has_more=page.has_more,
    )


@router.post("/join", response_model=JoinResponse)
def join_list(request: JoinRequest, user: CurrentUser, lists: Lists):
    result = lists.join_list_by_invite_code(request.invite_code, user.user_id)
    if result.already_member:
        message = "You are already a member of this list."
    else:
        message = f"You joined {result.movie_list.name}."
    return JoinResponse(
        list=MovieListRead.model_validate(result.movie_list),
        role=result.role.value,
        already_member=result.already_member,
        member_count=result.member_count,
        message=message,
    )


@router.delete(
    "/{list_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(limit_deletes)],
)
def delete_list(list_id: int, user: CurrentUser, lists: Lists):
    lists.delete_list(list_id, user.user_id)


@router.post("/{list_id}/leave", status_code=status.HTTP_204_NO_CONTENT)
def leave_list(list_id: int, user: CurrentUser, lists: Lists):
    lists.leave_list(list_id, user.user_id)
