"""Posts, comments and likes.

These tables belong to the content collaborator; the notification core only
references them by id.
"""
from datetime import datetime
from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db import Base, utcnow

POST_MAX_LENGTH = 1000
COMMENT_MAX_LENGTH = 500


class Post(Base):
    __tablename__  = "posts"
    __table_args__ = (
        Index("ix_posts_author_created", "author_id", "created_at"),
    )

    id:         Mapped[int]      = mapped_column(primary_key=True, autoincrement=True)
    author_id:  Mapped[str]      = mapped_column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content:    Mapped[str]      = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)

    author = relationship("User")


class Comment(Base):
    __tablename__ = "comments"

    id:         Mapped[int]      = mapped_column(primary_key=True, autoincrement=True)
    post_id:    Mapped[int]      = mapped_column(ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id:  Mapped[str]      = mapped_column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content:    Mapped[str]      = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    author = relationship("User")


class Like(Base):
    __tablename__  = "likes"
    __table_args__ = (
        UniqueConstraint("user_id", "post_id", name="uq_like_user_post"),
    )

    id:         Mapped[int]      = mapped_column(primary_key=True, autoincrement=True)
    user_id:    Mapped[str]      = mapped_column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    post_id:    Mapped[int]      = mapped_column(ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
