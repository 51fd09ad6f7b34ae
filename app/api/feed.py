from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from app.core.dependencies import User, get_current_user, get_feed_assembler, get_optional_user
from app.middleware.deadline import DeadlineRoute
from app.schemas.feed import FeedPage, Suggestion
from app.services.feed import FeedAssembler
from app.utils.pagination import total_pages

router = APIRouter(prefix="/feed", tags=["feed"], route_class=DeadlineRoute)


def _feed_page(result: dict) -> FeedPage:
    return FeedPage(total_pages=total_pages(result["total"], result["page_size"]), **result)


@router.get("", response_model=FeedPage)
async def home_feed(
    page: int = Query(1),
    page_size: Optional[int] = Query(None),
    user: User = Depends(get_current_user),
    feed: FeedAssembler = Depends(get_feed_assembler),
):
    """Posts by followed users, newest first."""
    return _feed_page(await feed.home_feed(user.id, page, page_size))


@router.get("/explore", response_model=FeedPage)
async def explore_feed(
    page: int = Query(1),
    page_size: Optional[int] = Query(None),
    user: Optional[User] = Depends(get_optional_user),
    feed: FeedAssembler = Depends(get_feed_assembler),
):
    """Every post, newest first. Works without a token."""
    return _feed_page(await feed.explore_feed(user.id if user else None, page, page_size))


@router.get("/suggestions", response_model=List[Suggestion])
async def suggested_users(
    limit: Optional[int] = Query(None, ge=1, le=50),
    user: User = Depends(get_current_user),
    feed: FeedAssembler = Depends(get_feed_assembler),
):
    return await feed.suggested_users(user.id, limit)
