from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.dependencies import get_current_user, get_relationship_store, get_user_directory
from app.middleware.deadline import DeadlineRoute
from app.schemas.user import User, UserProfile
from app.services.follows import RelationshipStore
from app.services.users import UserDirectory

router = APIRouter(prefix="/users", tags=["users"], route_class=DeadlineRoute)


@router.get("/me", summary="Return the authenticated user", response_model=User)
async def read_current_user_endpoint(
    current_user: User = Depends(get_current_user),
):
    return current_user


@router.get("/{user_id}", summary="Profile with follow counts", response_model=UserProfile)
async def read_user_profile_endpoint(
    user_id: str,
    current_user: User = Depends(get_current_user),
    users: UserDirectory = Depends(get_user_directory),
    relationships: RelationshipStore = Depends(get_relationship_store),
):
    profile = User.model_validate(await users.get(user_id))
    stats = await relationships.count_stats(user_id)
    is_following = current_user.id != user_id and await relationships.is_following(current_user.id, user_id)
    return UserProfile(
        **profile.model_dump(),
        followers=stats.followers,
        following=stats.following,
        is_following=is_following,
    )
