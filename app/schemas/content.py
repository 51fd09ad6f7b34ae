from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class PostIn(BaseModel):
    content: str


class PostOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    author_id: str
    content: str
    created_at: datetime
    updated_at: datetime


class CommentIn(BaseModel):
    content: str


class CommentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    post_id: int
    author_id: str
    content: str
    created_at: datetime


class LikeToggleOut(BaseModel):
    post_id: int
    is_liked: bool = Field(..., description="Like state after the toggle")
    likes_count: int
