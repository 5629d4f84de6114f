from datetime import datetime

from pydantic import BaseModel


class CommentCreate(BaseModel):
    content: str


class CommentUpdate(BaseModel):
    content: str


class CommentRead(BaseModel):
    id: int
    list_id: int
    movie_id: int
    user_id: int
    username: str
    content: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CommentPage(BaseModel):
    comments: list[CommentRead]
    total: int
    limit: int
    offset: int
    has_more: bool
