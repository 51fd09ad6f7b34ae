from __future__ import annotations

from fastapi import APIRouter, Depends, status

from app.core.dependencies import User, get_content_store, get_current_user
from app.middleware.deadline import DeadlineRoute
from app.schemas.content import CommentIn, CommentOut, LikeToggleOut, PostIn, PostOut
from app.services.content import ContentStore

router = APIRouter(prefix="/posts", tags=["posts"], route_class=DeadlineRoute)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=PostOut)
async def create_post(
    payload: PostIn,
    user: User = Depends(get_current_user),
    content: ContentStore = Depends(get_content_store),
):
    return await content.create_post(user.id, payload.content)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: int,
    user: User = Depends(get_current_user),
    content: ContentStore = Depends(get_content_store),
):
    """Delete an own post together with its comments, likes and notifications."""
    await content.delete_post(post_id, user.id)


@router.post("/{post_id}/likes", response_model=LikeToggleOut)
async def toggle_like(
    post_id: int,
    user: User = Depends(get_current_user),
    content: ContentStore = Depends(get_content_store),
):
    return await content.toggle_like(user.id, post_id)


@router.post("/{post_id}/comments", status_code=status.HTTP_201_CREATED, response_model=CommentOut)
async def add_comment(
    post_id: int,
    payload: CommentIn,
    user: User = Depends(get_current_user),
    content: ContentStore = Depends(get_content_store),
):
    return await content.add_comment(user.id, post_id, payload.content)
