# app/models/follow.py
from datetime import datetime
from sqlalchemy import CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db import Base, utcnow

class Relationship(Base):
    """Directed follow edge: ``follower_id`` receives ``followee_id``'s posts."""

    __tablename__  = "follows"
    __table_args__ = (
        UniqueConstraint("follower_id", "followee_id", name="uq_follower_followee"),
        CheckConstraint("follower_id <> followee_id", name="ck_follows_not_self"),
        Index("ix_follows_followee_created", "followee_id", "created_at"),
    )

    id:          Mapped[int]      = mapped_column(primary_key=True, autoincrement=True)
    follower_id: Mapped[str]      = mapped_column(String(64), ForeignKey("users.id", ondelete="CASCADE"), index=True)
    followee_id: Mapped[str]      = mapped_column(String(64), ForeignKey("users.id", ondelete="CASCADE"), index=True)
    created_at:  Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    follower = relationship("User", foreign_keys=[follower_id])
    followee = relationship("User", foreign_keys=[followee_id])

    def __repr__(self):
        return f"<Relationship(id={self.id}, follower={self.follower_id}, followee={self.followee_id})>"
