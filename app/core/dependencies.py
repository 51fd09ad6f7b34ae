"""Application-wide FastAPI dependencies.

These helpers are imported by individual routers to
  • extract auth tokens
  • resolve the current user (decoded JWT, profile row ensured)
  • inject configured services (RelationshipStore, NotificationEngine, …)

Having them in *core* keeps the `api/` layer focused purely on HTTP handling.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, settings
from app.db import get_db
from app.schemas.user import User
from app.services.content import ContentStore
from app.services.feed import FeedAssembler
from app.services.follows import RelationshipStore
from app.services.notifications import NotificationEngine
from app.services.presence import PresenceRegistry
from app.services.users import UserDirectory

log = logging.getLogger(__name__)

# ─────────────────────────────── Token helpers ───────────────────────────────

def get_bearer_token(authorization: str = Header(..., alias="Authorization")) -> str:
    """Extract the raw JWT from the *Authorization* header.

    Raises
    ------
    HTTPException 401
        When the header is missing or malformed.
    """
    if not authorization.lower().startswith("bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return authorization.split(" ", 1)[1]


def decode_token(token: str) -> dict:
    """Return the JWT claims, verifying the signature when a secret is configured.

    Raises ``JWTError`` for a malformed token or a bad signature.
    """
    jwt_secret = settings.jwt_secret.get_secret_value() if settings.jwt_secret else None
    if jwt_secret:
        return jwt.decode(token, jwt_secret, algorithms=[settings.jwt_algorithm])
    # Fallback for dev when JWT secret is not configured
    log.warning("JWT_SECRET is not set; accepting unverified token claims")
    return jwt.get_unverified_claims(token)


def claims_identity(claims: dict) -> tuple[str, Optional[str]]:
    user_id = claims.get("sub")
    if not user_id:
        raise JWTError("token has no subject")
    return str(user_id), claims.get("username")


# ─────────────────────────────── User helpers ────────────────────────────────

def get_user_directory(db: AsyncSession = Depends(get_db)) -> UserDirectory:
    return UserDirectory(db)


async def get_current_user(
    token: str = Depends(get_bearer_token),
    users: UserDirectory = Depends(get_user_directory),
) -> User:
    """Return the `User` named by the JWT ``sub`` claim, creating its profile on first sight."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        user_id, username = claims_identity(decode_token(token))
    except JWTError:
        raise credentials_exception
    return User.model_validate(await users.ensure(user_id, username))


async def get_optional_user(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    users: UserDirectory = Depends(get_user_directory),
) -> Optional[User]:
    """Like `get_current_user`, but anonymous requests resolve to ``None``."""
    if not authorization:
        return None
    token = get_bearer_token(authorization)
    return await get_current_user(token=token, users=users)


# ─────────────────────────────── Settings helper ─────────────────────────────

def get_core_settings() -> Settings:  # pragma: no cover
    """Return the singleton `Settings` instance for DI."""
    return settings


# ─────────────────────────────── Service helpers ─────────────────────────────

def get_presence(request: Request) -> PresenceRegistry:
    """Return the registry built by the application lifespan."""
    return request.app.state.presence


def get_notification_engine(
    db: AsyncSession = Depends(get_db),
    presence: PresenceRegistry = Depends(get_presence),
    settings: Settings = Depends(get_core_settings),
) -> NotificationEngine:
    return NotificationEngine(db, notifier=presence, settings=settings)


def get_relationship_store(
    db: AsyncSession = Depends(get_db),
    notifications: NotificationEngine = Depends(get_notification_engine),
    settings: Settings = Depends(get_core_settings),
) -> RelationshipStore:
    return RelationshipStore(db, notifications=notifications, settings=settings)


def get_content_store(
    db: AsyncSession = Depends(get_db),
    notifications: NotificationEngine = Depends(get_notification_engine),
) -> ContentStore:
    return ContentStore(db, notifications=notifications)


def get_feed_assembler(
    relationships: RelationshipStore = Depends(get_relationship_store),
    content: ContentStore = Depends(get_content_store),
    settings: Settings = Depends(get_core_settings),
) -> FeedAssembler:
    return FeedAssembler(relationships, content, settings=settings)
