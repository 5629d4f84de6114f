from datetime import date, datetime

from pydantic import BaseModel, Field, model_validator

from cinelist.models.list_movie import MovieStatus


class AddMovieRequest(BaseModel):
    media_id: int = Field(gt=0)
    media_type: str = "movie"


class GenreRead(BaseModel):
    id: int
    name: str

    model_config = {"from_attributes": True}


class MovieRead(BaseModel):
    id: int
    media_type: str
    title: str
    original_title: str | None
    original_lang: str | None
    overview: str | None
    release_date: date | None
    poster_url: str | None
    popularity: float | None
    seasons_count: int | None
    episodes_count: int | None
    series_status: str | None
    genres: list[GenreRead]

    model_config = {"from_attributes": True}


class UserEntryRead(BaseModel):
    user_id: int
    username: str
    rating: int | None
    notes: str | None
    updated_at: datetime

    model_config = {"from_attributes": True}


class EntrySnapshotRead(BaseModel):
    rating: int | None
    notes: str | None

    model_config = {"from_attributes": True}


class ListMovieRead(BaseModel):
    id: int
    list_id: int
    movie_id: int
    status: MovieStatus
    added_by: int | None
    added_at: datetime
    watched_at: datetime | None
    display_order: int | None
    average_rating: float | None
    movie: MovieRead
    user_entries: list[UserEntryRead]

    model_config = {"from_attributes": True}


class ListMoviesResponse(BaseModel):
    movies: list[ListMovieRead]
    total: int


class ListMovieSearchResponse(BaseModel):
    movies: list[ListMovieRead]
    total: int
    limit: int
    offset: int
    has_more: bool


class UpdateMovieRequest(BaseModel):
    status: MovieStatus | None = None
    rating: int | None = None
    notes: str | None = None

    @model_validator(mode="after")
    def require_a_change(self) -> "UpdateMovieRequest":
        if not self.model_fields_set & {"status", "rating", "notes"}:
            raise ValueError("At least one of status, rating or notes is required.")
        if "status" in self.model_fields_set and self.status is None:
            raise ValueError("status cannot be null.")
        return self


class UpdateMovieResponse(BaseModel):
    list_movie: ListMovieRead
    old_status: MovieStatus
    new_status: MovieStatus
    old_entry: EntrySnapshotRead | None
    new_entry: EntrySnapshotRead | None
    average_rating: float | None
    message: str


class MovieOrder(BaseModel):
    movie_id: int
    display_order: int = Field(ge=0)


class ReorderRequest(BaseModel):
    movie_orders: list[MovieOrder]
