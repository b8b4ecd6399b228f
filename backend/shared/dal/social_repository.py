"""Abstract interface for the follow graph."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shared.dal.models import FollowEntry


class SocialRepository(ABC):
    @abstractmethod
    async def add_follow(self, follower_id: str, user_id: str) -> bool:
        """Create the edge. Returns False when it already exists."""

    @abstractmethod
    async def remove_follow(self, follower_id: str, user_id: str) -> bool:
        """Delete the edge. Returns False when there was nothing to delete."""

    @abstractmethod
    async def is_following(self, follower_id: str, user_id: str) -> bool: ...

    @abstractmethod
    async def following_ids(self, follower_id: str) -> set[str]: ...

    @abstractmethod
    async def list_following(self, follower_id: str, limit: int, offset: int) -> list[FollowEntry]:
        """Users followed by ``follower_id``, most recent follow first."""

    @abstractmethod
    async def list_followers(self, user_id: str, limit: int, offset: int) -> list[FollowEntry]:
        """Users following ``user_id``, most recent follow first."""
