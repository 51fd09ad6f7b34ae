from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

from app.schemas.user import UserSummary


class RelationshipOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    follower_id: str
    followee_id: str
    created_at: datetime


class FollowEntry(BaseModel):
    user: UserSummary = Field(..., description="The user on the other end of the edge")
    intro: str | None = None
    followed_at: datetime
    is_following: bool = Field(False, description="Whether the viewer follows this user")


class FollowStats(BaseModel):
    followers: int
    following: int


class FollowStatus(BaseModel):
    is_following: bool
    follow_id: int | None = None
