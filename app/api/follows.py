from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.core.dependencies import User, get_current_user, get_relationship_store
from app.middleware.deadline import DeadlineRoute
from app.schemas.follow import FollowEntry, FollowStats, FollowStatus, RelationshipOut
from app.schemas.common import Page
from app.services.follows import RelationshipStore
from app.utils.pagination import total_pages


router = APIRouter(
    prefix="/follows",
    tags=["follows"],
    route_class=DeadlineRoute,
)


def _page(items, total, page, page_size) -> Page[FollowEntry]:
    return Page[FollowEntry](
        items=items,
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages(total, page_size),
    )


# ───────────────────────────────────────── endpoints ────────────────────────────────────────
@router.post(
    "/{user_id}",
    status_code=status.HTTP_201_CREATED,
    response_model=RelationshipOut,
)
async def follow_user(
    user_id: str,
    user: User = Depends(get_current_user),
    store: RelationshipStore = Depends(get_relationship_store),
):
    """
    Follow a user. The followee receives a follow notification.
    """
    return await store.follow(user.id, user_id)


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def unfollow_user(
    user_id: str,
    user: User = Depends(get_current_user),
    store: RelationshipStore = Depends(get_relationship_store),
):
    """
    Un-follow a user. 404 when the relationship does not exist.
    """
    await store.unfollow(user.id, user_id)


@router.get("/{user_id}/followers", response_model=Page[FollowEntry])
async def list_followers(
    user_id: str,
    page: int = Query(1),
    page_size: Optional[int] = Query(None),
    user: User = Depends(get_current_user),
    store: RelationshipStore = Depends(get_relationship_store),
):
    items, total = await store.list_followers(user_id, page, page_size, viewer_id=user.id)
    return _page(items, total, page, page_size or store.settings.default_page_size)


@router.get("/{user_id}/following", response_model=Page[FollowEntry])
async def list_following(
    user_id: str,
    page: int = Query(1),
    page_size: Optional[int] = Query(None),
    user: User = Depends(get_current_user),
    store: RelationshipStore = Depends(get_relationship_store),
):
    items, total = await store.list_following(user_id, page, page_size, viewer_id=user.id)
    return _page(items, total, page, page_size or store.settings.default_page_size)


@router.get("/{user_id}/mutual", response_model=Page[FollowEntry])
async def list_mutual(
    user_id: str,
    page: int = Query(1),
    page_size: Optional[int] = Query(None),
    user: User = Depends(get_current_user),
    store: RelationshipStore = Depends(get_relationship_store),
):
    """
    Users ``user_id`` follows that the caller also follows.
    """
    items, total = await store.list_mutual(user.id, user_id, page, page_size)
    return _page(items, total, page, page_size or store.settings.default_page_size)


@router.get("/{user_id}/status", response_model=FollowStatus)
async def follow_status(
    user_id: str,
    user: User = Depends(get_current_user),
    store: RelationshipStore = Depends(get_relationship_store),
):
    follow_id = await store.follow_id(user.id, user_id)
    return FollowStatus(is_following=follow_id is not None, follow_id=follow_id)


@router.get("/{user_id}/stats", response_model=FollowStats)
async def follow_stats(
    user_id: str,
    user: User = Depends(get_current_user),
    store: RelationshipStore = Depends(get_relationship_store),
):
    return await store.count_stats(user_id)
