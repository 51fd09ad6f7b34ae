"""User-to-user follow graph backed by the ``follows`` table."""

from __future__ import annotations

import logging
from typing import List, Optional, Set, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, settings as default_settings
from app.core.exceptions import DuplicateRelationshipError, NotFoundError, SelfReferenceError, StoreError
from app.db import store_operation
from app.metrics.prometheus import track_relationship_operation
from app.models.follow import Relationship
from app.models.user import User
from app.schemas.follow import FollowEntry, FollowStats
from app.schemas.user import UserSummary
from app.utils.pagination import page_offset, resolve_page

__all__ = ["RelationshipStore"]

log = logging.getLogger(__name__)


class RelationshipStore:
    def __init__(self, session: AsyncSession, notifications=None, settings: Optional[Settings] = None):
        self.session = session
        self.notifications = notifications
        self.settings = settings or default_settings

    def _page(self, page, page_size) -> Tuple[int, int]:
        return resolve_page(page, page_size, self.settings.default_page_size, self.settings.max_page_size)

    @store_operation
    async def follow(self, follower_id: str, followee_id: str) -> Relationship:
        """Create the edge ``follower_id -> followee_id`` and notify the followee."""
        if follower_id == followee_id:
            track_relationship_operation("follow", "self")
            raise SelfReferenceError("You cannot follow yourself")
        if await self.session.get(User, followee_id) is None:
            track_relationship_operation("follow", "not_found")
            raise NotFoundError("User not found")
        if await self.is_following(follower_id, followee_id):
            track_relationship_operation("follow", "duplicate")
            raise DuplicateRelationshipError("Already following this user")

        edge = Relationship(follower_id=follower_id, followee_id=followee_id)
        self.session.add(edge)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            # The unique constraint is the arbiter when two follows race.
            if await self.is_following(follower_id, followee_id):
                track_relationship_operation("follow", "duplicate")
                raise DuplicateRelationshipError("Already following this user") from exc
            track_relationship_operation("follow", "error")
            raise StoreError("Could not create follow relationship") from exc

        track_relationship_operation("follow", "success")
        log.info(f"User {follower_id} followed {followee_id}")
        if self.notifications is not None:
            await self.notifications.record_action("follow", follower_id, followee_id)
        return edge

    @store_operation
    async def unfollow(self, follower_id: str, followee_id: str) -> None:
        result = await self.session.execute(
            delete(Relationship)
            .where(Relationship.follower_id == follower_id, Relationship.followee_id == followee_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            track_relationship_operation("unfollow", "not_found")
            raise NotFoundError("Follow relationship not found")
        await self.session.commit()
        track_relationship_operation("unfollow", "success")
        log.info(f"User {follower_id} unfollowed {followee_id}")

    async def _require_user(self, user_id: str) -> None:
        if await self.session.get(User, user_id) is None:
            raise NotFoundError("User not found")

    @store_operation
    async def list_followers(
        self, user_id: str, page: int = 1, page_size: Optional[int] = None, viewer_id: Optional[str] = None
    ) -> Tuple[List[FollowEntry], int]:
        """Users following ``user_id``, newest edge first.

        ``is_following`` on each entry tells whether ``viewer_id`` follows that
        follower back; it is always false for the viewer's own entry.
        """
        page, page_size = self._page(page, page_size)
        await self._require_user(user_id)
        total = await self.session.scalar(
            select(func.count(Relationship.id)).where(Relationship.followee_id == user_id)
        )
        rows = (
            await self.session.execute(
                select(Relationship, User)
                .join(User, User.id == Relationship.follower_id)
                .where(Relationship.followee_id == user_id)
                .order_by(Relationship.created_at.desc(), Relationship.id.desc())
                .offset(page_offset(page, page_size))
                .limit(page_size)
            )
        ).all()
        return self._entries(rows, await self._viewer_follows(viewer_id, rows)), total or 0

    @store_operation
    async def list_following(
        self, user_id: str, page: int = 1, page_size: Optional[int] = None, viewer_id: Optional[str] = None
    ) -> Tuple[List[FollowEntry], int]:
        """Users ``user_id`` follows, newest edge first, with the viewer's follow state."""
        page, page_size = self._page(page, page_size)
        await self._require_user(user_id)
        filters = [Relationship.follower_id == user_id]
        return await self._followee_page(filters, page, page_size, viewer_id)

    @store_operation
    async def list_mutual(
        self, viewer_id: str, user_id: str, page: int = 1, page_size: Optional[int] = None
    ) -> Tuple[List[FollowEntry], int]:
        """Users ``user_id`` follows that ``viewer_id`` follows too, newest edge first."""
        page, page_size = self._page(page, page_size)
        await self._require_user(user_id)
        viewer_follows = select(Relationship.followee_id).where(Relationship.follower_id == viewer_id)
        filters = [Relationship.follower_id == user_id, Relationship.followee_id.in_(viewer_follows)]
        return await self._followee_page(filters, page, page_size, viewer_id)

    async def _followee_page(self, filters, page, page_size, viewer_id) -> Tuple[List[FollowEntry], int]:
        total = await self.session.scalar(select(func.count(Relationship.id)).where(*filters))
        rows = (
            await self.session.execute(
                select(Relationship, User)
                .join(User, User.id == Relationship.followee_id)
                .where(*filters)
                .order_by(Relationship.created_at.desc(), Relationship.id.desc())
                .offset(page_offset(page, page_size))
                .limit(page_size)
            )
        ).all()
        return self._entries(rows, await self._viewer_follows(viewer_id, rows)), total or 0

    async def _viewer_follows(self, viewer_id: Optional[str], rows) -> Set[str]:
        if viewer_id is None or not rows:
            return set()
        return await self._followed_among(viewer_id, [user.id for _, user in rows])

    @staticmethod
    def _entries(rows, followed: Set[str]) -> List[FollowEntry]:
        return [
            FollowEntry(
                user=UserSummary.model_validate(user),
                intro=user.intro,
                followed_at=edge.created_at,
                is_following=user.id in followed,
            )
            for edge, user in rows
        ]

    async def _followed_among(self, viewer_id: str, candidate_ids: List[str]) -> Set[str]:
        result = await self.session.scalars(
            select(Relationship.followee_id).where(
                Relationship.follower_id == viewer_id,
                Relationship.followee_id.in_(candidate_ids),
            )
        )
        return set(result.all())

    @store_operation
    async def follow_id(self, follower_id: str, followee_id: str) -> Optional[int]:
        return await self.session.scalar(
            select(Relationship.id).where(
                Relationship.follower_id == follower_id,
                Relationship.followee_id == followee_id,
            )
        )

    async def is_following(self, follower_id: str, followee_id: str) -> bool:
        return await self.follow_id(follower_id, followee_id) is not None

    @store_operation
    async def count_stats(self, user_id: str) -> FollowStats:
        followers = await self.session.scalar(
            select(func.count(Relationship.id)).where(Relationship.followee_id == user_id)
        )
        following = await self.session.scalar(
            select(func.count(Relationship.id)).where(Relationship.follower_id == user_id)
        )
        return FollowStats(followers=followers or 0, following=following or 0)

    @store_operation
    async def following_ids(self, user_id: str) -> List[str]:
        result = await self.session.scalars(
            select(Relationship.followee_id).where(Relationship.follower_id == user_id)
        )
        return list(result.all())
