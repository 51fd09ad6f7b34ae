"""Notification fan-out: the single write path for notifications and the recipient's inbox.

``record_action`` is called by the relationship and content stores after their
own write has committed. Self-actions and repeats inside the dedup window are
successful no-ops that return ``None``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, settings as default_settings
from app.core.exceptions import NotFoundError, ValidationError
from app.db import store_operation, utcnow
from app.metrics.prometheus import track_notification
from app.models.notification import Notification
from app.models.user import User
from app.schemas.notification import NotificationKind, NotificationOut, parse_action, render_message
from app.schemas.user import UserSummary
from app.utils.pagination import page_offset, resolve_page

log = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1)


def dedup_bucket(moment: datetime, window: timedelta) -> int:
    return int((moment - _EPOCH).total_seconds() // window.total_seconds())


def dedup_key(recipient_id: str, sender_id: str, kind: str, post_id: Optional[int], bucket: int) -> str:
    return f"{recipient_id}|{sender_id}|{kind}|{post_id if post_id is not None else '-'}|{bucket}"


def to_out(row: Notification, sender: User) -> NotificationOut:
    return NotificationOut(
        id=row.id,
        kind=row.kind,
        message=render_message(row.kind, sender.username),
        sender=UserSummary.model_validate(sender),
        subject_post=row.subject_post_id,
        subject_comment=row.subject_comment_id,
        is_read=row.is_read,
        created_at=row.created_at,
    )


class NotificationEngine:
    def __init__(
        self,
        session: AsyncSession,
        notifier=None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session = session
        self.notifier = notifier
        self.settings = settings or default_settings
        self.clock = clock

    @property
    def window(self) -> timedelta:
        return timedelta(hours=self.settings.notification_dedup_window_hours)

    @store_operation
    async def record_action(
        self,
        kind: str,
        actor_id: str,
        recipient_id: str,
        subject_post_id: Optional[int] = None,
        subject_comment_id: Optional[int] = None,
    ) -> Optional[Notification]:
        """Persist an unread notification for ``recipient_id`` unless it is suppressed."""
        action = parse_action(kind, actor_id, recipient_id, post_id=subject_post_id, comment_id=subject_comment_id)
        post_id = getattr(action, "post_id", None)
        comment_id = getattr(action, "comment_id", None)

        if action.actor_id == action.recipient_id:
            log.debug(f"Skipping {action.kind} notification: {actor_id} acted on their own content")
            track_notification(action.kind, "self_action")
            return None

        now = self.clock()
        if await self._recent_exists(action.recipient_id, action.actor_id, action.kind, post_id, now - self.window):
            log.debug(f"Skipping duplicate {action.kind} notification {actor_id} -> {recipient_id} (post={post_id})")
            track_notification(action.kind, "duplicate")
            return None

        row = Notification(
            recipient_id=action.recipient_id,
            sender_id=action.actor_id,
            kind=action.kind,
            subject_post_id=post_id,
            subject_comment_id=comment_id,
            is_read=False,
            created_at=now,
            dedup_key=dedup_key(action.recipient_id, action.actor_id, action.kind, post_id, dedup_bucket(now, self.window)),
        )
        try:
            async with self.session.begin_nested():
                self.session.add(row)
        except IntegrityError as exc:
            if not await self._key_exists(row.dedup_key):
                raise
            log.debug(f"Lost dedup race for {row.dedup_key}: {exc.orig}")
            track_notification(action.kind, "race_lost")
            return None
        await self.session.commit()

        log.info(f"Created {action.kind} notification {row.id} for {recipient_id} from {actor_id}")
        track_notification(action.kind, "created")
        await self._publish(row)
        return row

    async def _recent_exists(self, recipient_id, sender_id, kind, post_id, since) -> bool:
        stmt = select(Notification.id).where(
            Notification.recipient_id == recipient_id,
            Notification.sender_id == sender_id,
            Notification.kind == kind,
            Notification.created_at >= since,
        )
        if post_id is None:
            stmt = stmt.where(Notification.subject_post_id.is_(None))
        else:
            stmt = stmt.where(Notification.subject_post_id == post_id)
        return (await self.session.execute(stmt.limit(1))).first() is not None

    async def _key_exists(self, key: str) -> bool:
        stmt = select(Notification.id).where(Notification.dedup_key == key).limit(1)
        return (await self.session.execute(stmt)).first() is not None

    async def _publish(self, row: Notification) -> None:
        if self.notifier is None:
            return
        # Delivery is best-effort; the notification is already committed.
        try:
            sender = await self.session.get(User, row.sender_id)
            payload = to_out(row, sender).model_dump(mode="json")
            await self.notifier.publish(row.recipient_id, {"type": "notification", "notification": payload})
        except Exception as exc:
            log.warning(f"Realtime delivery of notification {row.id} to {row.recipient_id} failed: {exc}")

    @store_operation
    async def list_for_user(
        self,
        recipient_id: str,
        page: int = 1,
        page_size: Optional[int] = None,
        unread_only: bool = False,
        kind: Optional[str] = None,
    ) -> Tuple[List[NotificationOut], int, int]:
        """Return ``(items, total, unread_count)``, newest first.

        ``total`` counts the filtered set; ``unread_count`` always covers the
        whole inbox so a client badge stays correct while a filter is applied.
        """
        page, page_size = resolve_page(
            page, page_size, self.settings.default_page_size, self.settings.max_page_size
        )
        filters = [Notification.recipient_id == recipient_id]
        if unread_only:
            filters.append(Notification.is_read.is_(False))
        if kind is not None:
            try:
                filters.append(Notification.kind == NotificationKind(kind).value)
            except ValueError as exc:
                raise ValidationError(f"Unknown notification kind: {kind!r}") from exc

        total = await self.session.scalar(select(func.count(Notification.id)).where(*filters))
        rows = await self.session.execute(
            select(Notification, User)
            .join(User, User.id == Notification.sender_id)
            .where(*filters)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(page_offset(page, page_size))
            .limit(page_size)
        )
        items = [to_out(row, sender) for row, sender in rows.all()]
        return items, total or 0, await self.unread_count(recipient_id)

    async def _owned(self, notification_id: int, recipient_id: str) -> Notification:
        row = await self.session.scalar(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.recipient_id == recipient_id,
            )
        )
        if row is None:
            raise NotFoundError("Notification not found")
        return row

    @store_operation
    async def mark_read(self, notification_id: int, recipient_id: str) -> NotificationOut:
        row = await self._owned(notification_id, recipient_id)
        if not row.is_read:
            row.is_read = True
            await self.session.commit()
        sender = await self.session.get(User, row.sender_id)
        return to_out(row, sender)

    @store_operation
    async def mark_all_read(self, recipient_id: str) -> int:
        result = await self.session.execute(
            update(Notification)
            .where(Notification.recipient_id == recipient_id, Notification.is_read.is_(False))
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        log.info(f"Marked {result.rowcount} notifications read for {recipient_id}")
        return result.rowcount

    @store_operation
    async def delete(self, notification_id: int, recipient_id: str) -> None:
        result = await self.session.execute(
            delete(Notification)
            .where(Notification.id == notification_id, Notification.recipient_id == recipient_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError("Notification not found")
        await self.session.commit()

    @store_operation
    async def unread_count(self, recipient_id: str) -> int:
        count = await self.session.scalar(
            select(func.count(Notification.id)).where(
                Notification.recipient_id == recipient_id,
                Notification.is_read.is_(False),
            )
        )
        return count or 0

    async def purge_for_post(self, post_id: int) -> int:
        """Delete notifications about ``post_id`` without committing; the caller owns the transaction."""
        result = await self.session.execute(
            delete(Notification)
            .where(Notification.subject_post_id == post_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
