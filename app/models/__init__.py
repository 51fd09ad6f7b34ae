from app.models.user import User
from app.models.follow import Relationship
from app.models.content import Comment, Like, Post
from app.models.notification import Notification

__all__ = ["User", "Relationship", "Post", "Comment", "Like", "Notification"]
