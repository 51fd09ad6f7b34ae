from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.core.dependencies import User, get_current_user, get_notification_engine
from app.middleware.deadline import DeadlineRoute
from app.schemas.notification import MarkAllReadResult, NotificationKind, NotificationOut, NotificationPage, UnreadCount
from app.services.notifications import NotificationEngine
from app.utils.pagination import total_pages

router = APIRouter(prefix="/notifications", tags=["notifications"], route_class=DeadlineRoute)


@router.get("", response_model=NotificationPage)
async def list_notifications(
    page: int = Query(1),
    page_size: Optional[int] = Query(None),
    unread_only: bool = Query(False),
    kind: Optional[NotificationKind] = Query(None),
    user: User = Depends(get_current_user),
    engine: NotificationEngine = Depends(get_notification_engine),
):
    """Newest-first inbox of the authenticated user."""
    items, total, unread = await engine.list_for_user(
        user.id, page, page_size, unread_only=unread_only, kind=kind.value if kind else None
    )
    size = page_size or engine.settings.default_page_size
    return NotificationPage(
        items=items,
        total=total,
        page=page,
        page_size=size,
        total_pages=total_pages(total, size),
        unread_count=unread,
    )


@router.get("/unread-count", response_model=UnreadCount)
async def unread_count(
    user: User = Depends(get_current_user),
    engine: NotificationEngine = Depends(get_notification_engine),
):
    return UnreadCount(unread_count=await engine.unread_count(user.id))


@router.patch("/read-all", response_model=MarkAllReadResult)
async def mark_all_read(
    user: User = Depends(get_current_user),
    engine: NotificationEngine = Depends(get_notification_engine),
):
    return MarkAllReadResult(updated_count=await engine.mark_all_read(user.id))


@router.patch("/{notification_id}/read", response_model=NotificationOut)
async def mark_read(
    notification_id: int,
    user: User = Depends(get_current_user),
    engine: NotificationEngine = Depends(get_notification_engine),
):
    return await engine.mark_read(notification_id, user.id)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: int,
    user: User = Depends(get_current_user),
    engine: NotificationEngine = Depends(get_notification_engine),
):
    await engine.delete(notification_id, user.id)
