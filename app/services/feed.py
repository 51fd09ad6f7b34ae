"""Home, explore and suggestion feeds assembled from the follow graph and the content store."""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from app.core.config import Settings, settings as default_settings
from app.schemas.feed import FeedPost, Suggestion
from app.schemas.user import UserSummary
from app.utils.pagination import page_offset, resolve_page

log = logging.getLogger(__name__)

EMPTY_FEED_SUGGESTION = "Follow some users to fill your feed."


class FeedAssembler:
    def __init__(self, relationships, content, settings: Optional[Settings] = None):
        self.relationships = relationships
        self.content = content
        self.settings = settings or default_settings

    def _page(self, page, page_size) -> Tuple[int, int]:
        return resolve_page(page, page_size, self.settings.feed_page_size, self.settings.max_page_size)

    async def home_feed(self, user_id: str, page: int = 1, page_size: Optional[int] = None) -> dict:
        """Posts by the authors ``user_id`` follows, newest first.

        With an empty following set the content store is not consulted at all;
        the result is an empty page carrying a suggestion.
        """
        page, page_size = self._page(page, page_size)
        following = await self.relationships.following_ids(user_id)
        if not following:
            log.debug(f"Home feed for {user_id} is empty: follows nobody")
            return {
                "items": [],
                "total": 0,
                "page": page,
                "page_size": page_size,
                "suggestion": EMPTY_FEED_SUGGESTION,
                "following_count": 0,
            }
        rows, total = await self.content.list_posts(following, page_offset(page, page_size), page_size)
        return {
            "items": await self._decorate(rows, user_id),
            "total": total,
            "page": page,
            "page_size": page_size,
            "suggestion": None,
            "following_count": len(following),
        }

    async def explore_feed(self, viewer_id: Optional[str] = None, page: int = 1, page_size: Optional[int] = None) -> dict:
        page, page_size = self._page(page, page_size)
        rows, total = await self.content.list_posts(None, page_offset(page, page_size), page_size)
        return {
            "items": await self._decorate(rows, viewer_id),
            "total": total,
            "page": page,
            "page_size": page_size,
        }

    async def suggested_users(self, user_id: str, limit: Optional[int] = None) -> List[Suggestion]:
        """Authors the user does not follow yet, ranked by post count then most recent post."""
        limit = limit or self.settings.suggestion_limit
        exclude = set(await self.relationships.following_ids(user_id))
        exclude.add(user_id)
        ranked = await self.content.rank_authors(exclude, limit)
        return [
            Suggestion(
                user=UserSummary.model_validate(user),
                intro=user.intro,
                post_count=count,
                latest_post_at=latest,
            )
            for user, count, latest in ranked
        ]

    async def _decorate(self, rows, viewer_id: Optional[str]) -> List[FeedPost]:
        post_ids = [post.id for post, _ in rows]
        likes = await self.content.like_counts(post_ids)
        comments = await self.content.comment_counts(post_ids)
        liked = await self.content.liked_post_ids(viewer_id, post_ids) if viewer_id else set()
        return [
            FeedPost(
                id=post.id,
                content=post.content,
                author=UserSummary.model_validate(author),
                likes_count=likes.get(post.id, 0),
                comment_count=comments.get(post.id, 0),
                is_liked=post.id in liked,
                created_at=post.created_at,
                updated_at=post.updated_at,
            )
            for post, author in rows
        ]
