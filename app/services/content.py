"""Posts, likes and comments.

The notification core only needs a handful of lookups from here (author of a
post, like and comment counts, whether a viewer liked a post). The write
methods trigger notifications after their own commit.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.db import store_operation, utcnow
from app.models.content import COMMENT_MAX_LENGTH, POST_MAX_LENGTH, Comment, Like, Post
from app.models.user import User
from app.schemas.content import LikeToggleOut

__all__ = ["ContentStore"]

log = logging.getLogger(__name__)


def _clean(text: Optional[str], limit: int, what: str) -> str:
    text = (text or "").strip()
    if not text:
        raise ValidationError(f"{what} content must not be empty")
    if len(text) > limit:
        raise ValidationError(f"{what} content must be at most {limit} characters")
    return text


class ContentStore:
    def __init__(self, session: AsyncSession, notifications=None):
        self.session = session
        self.notifications = notifications

    # ─────────────────────────────── posts ───────────────────────────────

    @store_operation
    async def create_post(self, author_id: str, content: str) -> Post:
        post = Post(author_id=author_id, content=_clean(content, POST_MAX_LENGTH, "Post"))
        self.session.add(post)
        await self.session.commit()
        log.info(f"User {author_id} created post {post.id}")
        return post

    async def _get_post(self, post_id: int) -> Post:
        post = await self.session.get(Post, post_id)
        if post is None:
            raise NotFoundError("Post not found")
        return post

    @store_operation
    async def author_of(self, post_id: int) -> str:
        return (await self._get_post(post_id)).author_id

    @store_operation
    async def delete_post(self, post_id: int, actor_id: str) -> None:
        """Remove a post and everything that references it, in one transaction.

        Order: notifications about the post, comments, likes, then the post.
        Only the author may delete; anyone else gets ``NotFoundError``.
        """
        post = await self.session.scalar(select(Post).where(Post.id == post_id, Post.author_id == actor_id))
        if post is None:
            raise NotFoundError("Post not found")
        try:
            purged = 0
            if self.notifications is not None:
                purged = await self.notifications.purge_for_post(post_id)
            await self.session.execute(
                delete(Comment).where(Comment.post_id == post_id).execution_options(synchronize_session=False)
            )
            await self.session.execute(
                delete(Like).where(Like.post_id == post_id).execution_options(synchronize_session=False)
            )
            await self.session.delete(post)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        log.info(f"User {actor_id} deleted post {post_id} ({purged} notifications purged)")

    @store_operation
    async def list_posts(
        self, author_ids: Optional[Sequence[str]], offset: int, limit: int
    ) -> Tuple[List[Tuple[Post, User]], int]:
        """Posts with their authors, newest first; ``author_ids=None`` means every author."""
        filters = []
        if author_ids is not None:
            filters.append(Post.author_id.in_(list(author_ids)))
        total = await self.session.scalar(select(func.count(Post.id)).where(*filters))
        rows = await self.session.execute(
            select(Post, User)
            .join(User, User.id == Post.author_id)
            .where(*filters)
            .order_by(Post.created_at.desc(), Post.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return [(post, author) for post, author in rows.all()], total or 0

    @store_operation
    async def rank_authors(self, exclude: Iterable[str], limit: int) -> List[Tuple[User, int, datetime]]:
        """Authors with at least one post, most posts first, ties broken by latest post."""
        post_count = func.count(Post.id).label("post_count")
        latest = func.max(Post.created_at).label("latest_post_at")
        stmt = (
            select(User, post_count, latest)
            .join(Post, Post.author_id == User.id)
            .group_by(User.id)
            .order_by(post_count.desc(), latest.desc(), User.id)
            .limit(limit)
        )
        excluded = list(exclude)
        if excluded:
            stmt = stmt.where(User.id.not_in(excluded))
        rows = await self.session.execute(stmt)
        return [(user, count, latest_at) for user, count, latest_at in rows.all()]

    # ─────────────────────────────── likes ───────────────────────────────

    @store_operation
    async def toggle_like(self, user_id: str, post_id: int) -> LikeToggleOut:
        post = await self._get_post(post_id)
        existing = await self.session.scalar(
            select(Like).where(Like.user_id == user_id, Like.post_id == post_id)
        )
        if existing is not None:
            await self.session.delete(existing)
            await self.session.commit()
            log.info(f"User {user_id} unliked post {post_id}")
            return LikeToggleOut(post_id=post_id, is_liked=False, likes_count=await self.count_likes(post_id))

        self.session.add(Like(user_id=user_id, post_id=post_id))
        try:
            await self.session.commit()
        except IntegrityError:
            # A concurrent request from the same user already liked it.
            await self.session.rollback()
            return LikeToggleOut(post_id=post_id, is_liked=True, likes_count=await self.count_likes(post_id))
        log.info(f"User {user_id} liked post {post_id}")
        if self.notifications is not None:
            await self.notifications.record_action("like", user_id, post.author_id, subject_post_id=post_id)
        return LikeToggleOut(post_id=post_id, is_liked=True, likes_count=await self.count_likes(post_id))

    @store_operation
    async def count_likes(self, post_id: int) -> int:
        count = await self.session.scalar(select(func.count(Like.id)).where(Like.post_id == post_id))
        return count or 0

    @store_operation
    async def has_liked(self, user_id: str, post_id: int) -> bool:
        found = await self.session.scalar(
            select(Like.id).where(Like.user_id == user_id, Like.post_id == post_id)
        )
        return found is not None

    @store_operation
    async def like_counts(self, post_ids: Sequence[int]) -> Dict[int, int]:
        if not post_ids:
            return {}
        rows = await self.session.execute(
            select(Like.post_id, func.count(Like.id)).where(Like.post_id.in_(list(post_ids))).group_by(Like.post_id)
        )
        return {post_id: count for post_id, count in rows.all()}

    @store_operation
    async def liked_post_ids(self, user_id: str, post_ids: Sequence[int]) -> Set[int]:
        if not post_ids:
            return set()
        result = await self.session.scalars(
            select(Like.post_id).where(Like.user_id == user_id, Like.post_id.in_(list(post_ids)))
        )
        return set(result.all())

    # ─────────────────────────────── comments ────────────────────────────

    @store_operation
    async def add_comment(self, author_id: str, post_id: int, content: str) -> Comment:
        text = _clean(content, COMMENT_MAX_LENGTH, "Comment")
        post = await self._get_post(post_id)
        comment = Comment(post_id=post_id, author_id=author_id, content=text, created_at=utcnow())
        self.session.add(comment)
        await self.session.commit()
        log.info(f"User {author_id} commented on post {post_id}")
        if self.notifications is not None:
            await self.notifications.record_action(
                "comment", author_id, post.author_id, subject_post_id=post_id, subject_comment_id=comment.id
            )
        return comment

    @store_operation
    async def count_comments(self, post_id: int) -> int:
        count = await self.session.scalar(select(func.count(Comment.id)).where(Comment.post_id == post_id))
        return count or 0

    @store_operation
    async def comment_counts(self, post_ids: Sequence[int]) -> Dict[int, int]:
        if not post_ids:
            return {}
        rows = await self.session.execute(
            select(Comment.post_id, func.count(Comment.id))
            .where(Comment.post_id.in_(list(post_ids)))
            .group_by(Comment.post_id)
        )
        return {post_id: count for post_id, count in rows.all()}
