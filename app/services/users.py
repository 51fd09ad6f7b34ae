"""Profile rows for authenticated actors."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.db import store_operation
from app.models.user import User

log = logging.getLogger(__name__)


class UserDirectory:
    def __init__(self, session: AsyncSession):
        self.session = session

    @store_operation
    async def find(self, user_id: str) -> Optional[User]:
        return await self.session.get(User, user_id)

    async def get(self, user_id: str) -> User:
        user = await self.find(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    @store_operation
    async def ensure(self, user_id: str, username: Optional[str] = None) -> User:
        """Return the profile for ``user_id``, creating it the first time the actor is seen.

        Without a ``username`` claim the id is used as the handle.
        """
        user = await self.session.get(User, user_id)
        if user is not None:
            return user
        handle = (username or user_id).strip()[:50]
        if not handle:
            raise ValidationError("username must not be empty")
        user = User(id=user_id, username=handle)
        self.session.add(user)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            # Either a concurrent request created the same profile, or the handle is taken.
            existing = await self.session.get(User, user_id)
            if existing is not None:
                return existing
            raise ValidationError(f"Username {handle!r} is already taken") from exc
        log.info(f"Created profile for user {user_id} ({handle})")
        return user
