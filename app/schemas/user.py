# app/schemas/user.py
from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime

class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    profile_image: Optional[str] = None

class User(UserSummary):
    intro: Optional[str] = None
    created_at: Optional[datetime] = None

class UserProfile(User):
    followers: int = 0
    following: int = 0
    is_following: bool = False
