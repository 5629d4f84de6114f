from datetime import datetime

from pydantic import BaseModel


class MovieListCreate(BaseModel):
    name: str
    description: str | None = None


class MovieListRead(BaseModel):
    id: int
    name: str
    description: str | None
    invite_code: str
    created_by: int
    creator_username: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserListRead(BaseModel):
    list: MovieListRead
    role: str
    member_count: int
    movie_count: int


class UserListsResponse(BaseModel):
    lists: list[UserListRead]
    total: int
    limit: int
    offset: int
    has_more: bool


class JoinRequest(BaseModel):
    invite_code: str


class JoinResponse(BaseModel):
    list: MovieListRead
    role: str
    already_member: bool
    member_count: int
    message: str
