from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from app.schemas.common import Page
from app.schemas.user import UserSummary


class FeedPost(BaseModel):
    id: int
    content: str
    author: UserSummary
    likes_count: int = 0
    comment_count: int = 0
    is_liked: bool = False
    created_at: datetime
    updated_at: datetime


class FeedPage(Page[FeedPost]):
    suggestion: Optional[str] = Field(None, description="Set when the viewer follows nobody")
    following_count: Optional[int] = None


class Suggestion(BaseModel):
    user: UserSummary
    intro: Optional[str] = None
    post_count: int
    latest_post_at: datetime
