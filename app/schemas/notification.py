"""Notification kinds, the actions that produce them, and their read-side shape.

Actions are a discriminated union on ``kind``: a follow carries no subject, a
like must name the post, a comment must name both the post and the comment.
Building an action through :func:`parse_action` is therefore the only place the
per-kind subject requirements are checked.
"""
from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import ValidationError
from app.schemas.common import Page
from app.schemas.user import UserSummary


class NotificationKind(str, Enum):
    FOLLOW = "follow"
    LIKE = "like"
    COMMENT = "comment"


class FollowAction(BaseModel):
    kind: Literal["follow"] = "follow"
    actor_id: str
    recipient_id: str


class LikeAction(BaseModel):
    kind: Literal["like"] = "like"
    actor_id: str
    recipient_id: str
    post_id: int


class CommentAction(BaseModel):
    kind: Literal["comment"] = "comment"
    actor_id: str
    recipient_id: str
    post_id: int
    comment_id: int


SocialAction = Annotated[Union[FollowAction, LikeAction, CommentAction], Field(discriminator="kind")]

_action_adapter = TypeAdapter(SocialAction)


def parse_action(kind, actor_id, recipient_id, post_id=None, comment_id=None) -> SocialAction:
    """Build the action variant for ``kind``, raising ``ValidationError`` on a missing subject."""
    try:
        kind = NotificationKind(kind).value
    except ValueError as exc:
        raise ValidationError(f"Unknown notification kind: {kind!r}") from exc
    data = {"kind": kind, "actor_id": actor_id, "recipient_id": recipient_id}
    if post_id is not None:
        data["post_id"] = post_id
    if comment_id is not None:
        data["comment_id"] = comment_id
    try:
        return _action_adapter.validate_python(data)
    except PydanticValidationError as exc:
        missing = ", ".join(".".join(str(p) for p in err["loc"][1:]) for err in exc.errors())
        raise ValidationError(f"Invalid {kind} action: {missing or exc}") from exc


def render_message(kind: str, sender_username: str) -> str:
    """Human-readable text, built at read time so a username change is reflected."""
    if kind == NotificationKind.FOLLOW.value:
        return f"{sender_username} started following you."
    if kind == NotificationKind.LIKE.value:
        return f"{sender_username} liked your post."
    if kind == NotificationKind.COMMENT.value:
        return f"{sender_username} commented on your post."
    return "You have a new notification."


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: NotificationKind
    message: str
    sender: UserSummary
    subject_post: Optional[int] = None
    subject_comment: Optional[int] = None
    is_read: bool = False
    created_at: datetime


class NotificationPage(Page[NotificationOut]):
    unread_count: int = 0


class UnreadCount(BaseModel):
    unread_count: int


class MarkAllReadResult(BaseModel):
    updated_count: int
