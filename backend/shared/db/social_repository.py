"""SQLite-backed follow graph repository."""

from __future__ import annotations

import asyncio
import sqlite3
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from shared.dal.models import FollowEntry
from shared.dal.social_repository import SocialRepository

if TYPE_CHECKING:
    from shared.db.connection import Database

_FOLLOWERS_COUNT_SQL = "(SELECT COUNT(*) FROM follows c WHERE c.user_id = u.id)"


class SqliteSocialRepository(SocialRepository):
    """SQLite implementation of SocialRepository.

    The (follower_id, user_id) primary key makes a duplicate follow an
    IntegrityError, which is reported as ``False`` rather than raised.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def add_follow(self, follower_id: str, user_id: str) -> bool:
        async with self._lock:
            try:
                self._db.connection.execute(
                    "INSERT INTO follows (follower_id, user_id, created_at) VALUES (?, ?, ?)",
                    (follower_id, user_id, datetime.now(tz=UTC).isoformat()),
                )
                self._db.connection.commit()
            except sqlite3.IntegrityError:
                self._db.connection.rollback()
                return False
        return True

    async def remove_follow(self, follower_id: str, user_id: str) -> bool:
        async with self._lock:
            cursor = self._db.connection.execute(
                "DELETE FROM follows WHERE follower_id = ? AND user_id = ?",
                (follower_id, user_id),
            )
            self._db.connection.commit()
        return cursor.rowcount > 0

    async def is_following(self, follower_id: str, user_id: str) -> bool:
        row = self._db.connection.execute(
            "SELECT 1 FROM follows WHERE follower_id = ? AND user_id = ?",
            (follower_id, user_id),
        ).fetchone()
        return row is not None

    async def following_ids(self, follower_id: str) -> set[str]:
        rows = self._db.connection.execute(
            "SELECT user_id FROM follows WHERE follower_id = ?",
            (follower_id,),
        ).fetchall()
        return {row[0] for row in rows}

    async def list_following(self, follower_id: str, limit: int, offset: int) -> list[FollowEntry]:
        rows = self._db.connection.execute(
            "SELECT f.user_id, u.display_name, u.avatar_url, "
            f"{_FOLLOWERS_COUNT_SQL}, f.created_at "
            "FROM follows f LEFT JOIN users u ON u.id = f.user_id "
            "WHERE f.follower_id = ? ORDER BY f.created_at DESC LIMIT ? OFFSET ?",
            (follower_id, limit, offset),
        ).fetchall()
        return [_to_entry(row) for row in rows]

    async def list_followers(self, user_id: str, limit: int, offset: int) -> list[FollowEntry]:
        rows = self._db.connection.execute(
            "SELECT f.follower_id, u.display_name, u.avatar_url, "
            f"{_FOLLOWERS_COUNT_SQL}, f.created_at "
            "FROM follows f LEFT JOIN users u ON u.id = f.follower_id "
            "WHERE f.user_id = ? ORDER BY f.created_at DESC LIMIT ? OFFSET ?",
            (user_id, limit, offset),
        ).fetchall()
        return [_to_entry(row) for row in rows]


def _to_entry(row: tuple) -> FollowEntry:
    user_id, display_name, avatar_url, followers_count, followed_at = row
    return FollowEntry(
        id=user_id,
        display_name=display_name,
        avatar_url=avatar_url,
        followers_count=followers_count,
        followed_at=followed_at,
    )
