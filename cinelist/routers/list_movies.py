from fastapi import APIRouter, Depends, Query, status

from cinelist.dependencies import CurrentUser, Lists, limit_searches
from cinelist.models.list_movie import MovieStatus
from cinelist.schemas.list_movie import (
    AddMovieRequest,
    EntrySnapshotRead,
    ListMovieRead,
    ListMovieSearchResponse,
    ListMoviesResponse,
    ReorderRequest,
    UpdateMovieRequest,
    UpdateMovieResponse,
)
from cinelist.services.list_service import MovieUpdateResult

router = APIRouter(prefix="/lists/{list_id}/movies", tags=["list movies"])


def describe_update(result: MovieUpdateResult) -> str:
    changes = []
    new_status = MovieStatus(result.list_movie.status)
    if new_status != result.old_status:
        changes.append(f"status {result.old_status.value} -> {new_status.value}")
    old_rating = result.old_entry.rating if result.old_entry else None
    new_rating = result.new_entry.rating if result.new_entry else None
    if old_rating != new_rating:
        changes.append(f"rating {old_rating} -> {new_rating}")
    old_notes = result.old_entry.notes if result.old_entry else None
    new_notes = result.new_entry.notes if result.new_entry else None
    if old_notes != new_notes:
        changes.append("notes updated")
    if not changes:
        return f"{result.movie.title}: no changes."
    return f"{result.movie.title}: " + ", ".join(changes) + "."


@router.post("", response_model=ListMovieRead, status_code=status.HTTP_201_CREATED)
def add_movie(list_id: int, request: AddMovieRequest, user: CurrentUser, lists: Lists):
    list_movie, _ = lists.add_media_to_list(
        list_id, user.user_id, request.media_id, request.media_type
    )
    return list_movie


@router.get("", response_model=ListMoviesResponse)
def list_movies(
    list_id: int,
    user: CurrentUser,
    lists: Lists,
    status: MovieStatus | None = None,
):
    movies = lists.list_movies(list_id, user.user_id, status)
    return ListMoviesResponse(
        movies=[ListMovieRead.model_validate(m) for m in movies],
        total=len(movies),
    )


@router.get(
    "/search",
    response_model=ListMovieSearchResponse,
    dependencies=[Depends(limit_searches)],
)
def search_movies(
    list_id: int,
    user: CurrentUser,
    lists: Lists,
    q: str = Query(default=""),
    limit: int = Query(default=50),
    offset: int = Query(default=0),
):
    items, total, limit, offset = lists.search_list_movies(
        list_id, user.user_id, q, limit, offset
    )
    return ListMovieSearchResponse(
        movies=[ListMovieRead.model_validate(m) for m in items],
        total=total,
        limit=limit,
        offset=offset,
        has_more=offset + len(items) < total,
    )


@router.patch("/reorder", status_code=status.HTTP_204_NO_CONTENT)
def reorder_movies(
    list_id: int, request: ReorderRequest, user: CurrentUser, lists: Lists
):
    order_map = {item.movie_id: item.display_order for item in request.movie_orders}
    lists.reorder_movies(list_id, user.user_id, order_map)


@router.patch("/{movie_id}", response_model=UpdateMovieResponse)
def update_movie(
    list_id: int,
    movie_id: int,
    request: UpdateMovieRequest,
    user: CurrentUser,
    lists: Lists,
):
    provided = request.model_fields_set
    result = lists.update_movie(
        list_id,
        user.user_id,
        movie_id,
        status=request.status,
        rating=request.rating,
        rating_provided="rating" in provided,
        notes=request.notes,
        notes_provided="notes" in provided,
    )
    return UpdateMovieResponse(
        list_movie=ListMovieRead.model_validate(result.list_movie),
        old_status=result.old_status,
        new_status=MovieStatus(result.list_movie.status),
        old_entry=(
            EntrySnapshotRead.model_validate(result.old_entry)
            if result.old_entry
            else None
        ),
        new_entry=(
            EntrySnapshotRead.model_validate(result.new_entry)
            if result.new_entry
            else None
        ),
        average_rating=result.average_rating,
        message=describe_update(result),
    )


@router.delete("/{movie_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_movie(list_id: int, movie_id: int, user: CurrentUser, lists: Lists):
    lists.remove_movie_from_list(list_id, user.user_id, movie_id)
