"""Follow graph operations with the registered-users-only business rules."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from shared.errors import ValidationError

if TYPE_CHECKING:
    from shared.dal.models import FollowEntry
    from shared.dal.social_repository import SocialRepository
    from shared.dal.user_repository import UserRepository

logger = structlog.get_logger()

SELF_FOLLOW = "SELF_FOLLOW"
NOT_REGISTERED = "NOT_REGISTERED"
TARGET_NOT_REGISTERED = "TARGET_NOT_REGISTERED"
ALREADY_FOLLOWING = "ALREADY_FOLLOWING"
SELF_UNFOLLOW = "SELF_UNFOLLOW"
NOT_FOLLOWING = "NOT_FOLLOWING"

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


class SocialError(ValidationError):
    """A follow request that breaks a business rule. ``error_code`` names the rule."""

    def __init__(self, message: str, error_code: str) -> None:
        super().__init__(message, field="user_id")
        self.error_code = error_code


class SocialService:
    """Follow and unfollow between registered users; list either side of the graph."""

    def __init__(self, users: UserRepository, social: SocialRepository) -> None:
        self._users = users
        self._social = social

    async def follow(self, follower_id: str, user_id: str) -> str:
        """Make ``follower_id`` follow ``user_id`` and return a confirmation message.

        Both users must be registered (guests have no email). Following
        yourself or someone you already follow is rejected.
        """
        if follower_id == user_id:
            raise SocialError("You cannot follow yourself", SELF_FOLLOW)

        follower = await self._users.get_user(follower_id)
        if follower is None or not follower.is_registered:
            raise SocialError("Only registered users can follow others", NOT_REGISTERED)

        target = await self._users.get_user(user_id)
        if target is None or not target.is_registered:
            raise SocialError("Cannot follow guest users", TARGET_NOT_REGISTERED)

        if await self._social.is_following(follower_id, user_id):
            raise SocialError("You are already following this user", ALREADY_FOLLOWING)
        if not await self._social.add_follow(follower_id, user_id):
            # Lost a race with a concurrent follow of the same pair.
            raise SocialError("You are already following this user", ALREADY_FOLLOWING)

        logger.info("user followed", follower_id=follower_id, user_id=user_id)
        return f"Successfully followed {target.display_name or 'user'}"

    async def unfollow(self, follower_id: str, user_id: str) -> str:
        if follower_id == user_id:
            raise SocialError("You cannot unfollow yourself", SELF_UNFOLLOW)
        if not await self._social.remove_follow(follower_id, user_id):
            raise SocialError("You are not following this user", NOT_FOLLOWING)
        logger.info("user unfollowed", follower_id=follower_id, user_id=user_id)
        return "Successfully unfollowed user"

    async def list_following(self, user_id: str, limit: int, offset: int) -> list[FollowEntry]:
        return await self._social.list_following(user_id, limit, offset)

    async def list_followers(self, user_id: str, limit: int, offset: int) -> list[FollowEntry]:
        return await self._social.list_followers(user_id, limit, offset)

    async def following_ids(self, user_id: str) -> set[str]:
        return await self._social.following_ids(user_id)
