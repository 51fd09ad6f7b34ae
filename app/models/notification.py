from datetime import datetime
from typing import Optional
from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db import Base, utcnow


class Notification(Base):
    __tablename__  = "notifications"
    __table_args__ = (
        CheckConstraint("sender_id <> recipient_id", name="ck_notifications_not_self"),
        CheckConstraint("kind IN ('follow', 'like', 'comment')", name="ck_notifications_kind"),
        CheckConstraint("kind = 'follow' OR subject_post_id IS NOT NULL", name="ck_notifications_post_subject"),
        CheckConstraint("kind <> 'comment' OR subject_comment_id IS NOT NULL", name="ck_notifications_comment_subject"),
        Index("ix_notifications_recipient_created", "recipient_id", "created_at"),
        Index("ix_notifications_recipient_read", "recipient_id", "is_read"),
    )

    id:                 Mapped[int]           = mapped_column(primary_key=True, autoincrement=True)
    recipient_id:       Mapped[str]           = mapped_column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    sender_id:          Mapped[str]           = mapped_column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    kind:               Mapped[str]           = mapped_column(String(16), nullable=False)
    subject_post_id:    Mapped[Optional[int]] = mapped_column(ForeignKey("posts.id", ondelete="CASCADE"), nullable=True, index=True)
    subject_comment_id: Mapped[Optional[int]] = mapped_column(ForeignKey("comments.id", ondelete="CASCADE"), nullable=True)
    is_read:            Mapped[bool]          = mapped_column(Boolean, default=False, nullable=False)
    created_at:         Mapped[datetime]      = mapped_column(default=utcnow, nullable=False)
    # recipient|sender|kind|post|window-bucket; unique so concurrent duplicates lose at insert time
    dedup_key:          Mapped[str]           = mapped_column(String(255), unique=True, nullable=False)

    sender = relationship("User", foreign_keys=[sender_id])
