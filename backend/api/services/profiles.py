"""Local copy of user profiles, kept in step with the identity provider."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel, Field

from shared.dal.models import UserProfile

if TYPE_CHECKING:
    from shared.dal.user_repository import UserRepository

logger = structlog.get_logger()

MAX_DISPLAY_NAME_LENGTH = 50


class ProfileUpdate(BaseModel, frozen=True):
    display_name: str | None = Field(default=None, min_length=1, max_length=MAX_DISPLAY_NAME_LENGTH)
    avatar_url: str | None = Field(default=None, max_length=500)


class ProfileService:
    """Profiles are created from verified identities; only the display fields are user-editable."""

    def __init__(self, users: UserRepository) -> None:
        self._users = users

    async def sync(self, user_id: str, email: str | None) -> UserProfile:
        """Record the caller's identity, keeping any display fields already set.

        The email always comes from the identity provider, so a guest who
        registers becomes registered here on their next request.
        """
        existing = await self._users.get_user(user_id)
        if existing is not None and existing.email == email:
            return existing
        profile = UserProfile(user_id=user_id, email=email)
        if existing is not None:
            profile = existing.model_copy(update={"email": email})
        await self._users.save_user(profile)
        logger.info("profile synced", user_id=user_id, registered=profile.is_registered)
        return profile

    async def update(self, user_id: str, email: str | None, update: ProfileUpdate) -> UserProfile:
        profile = await self.sync(user_id, email)
        changes = update.model_dump(exclude_unset=True)
        if not changes:
            return profile
        profile = profile.model_copy(update=changes)
        await self._users.save_user(profile)
        return profile

    async def get(self, user_id: str) -> UserProfile | None:
        return await self._users.get_user(user_id)
