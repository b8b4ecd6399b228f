"""SQLite-backed user profile repository."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from shared.dal.models import UserProfile
from shared.dal.user_repository import UserRepository

if TYPE_CHECKING:
    from shared.db.connection import Database


class SqliteUserRepository(UserRepository):
    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def get_user(self, user_id: str) -> UserProfile | None:
        row = self._db.connection.execute(
            "SELECT id, display_name, avatar_url, email FROM users WHERE id = ?",
            (user_id,),
        ).fetchone()
        if row is None:
            return None
        return UserProfile(user_id=row[0], display_name=row[1], avatar_url=row[2], email=row[3])

    async def save_user(self, user: UserProfile) -> None:
        async with self._lock:
            self._db.connection.execute(
                "INSERT OR REPLACE INTO users (id, display_name, avatar_url, email) VALUES (?, ?, ?, ?)",
                (user.user_id, user.display_name, user.avatar_url, user.email),
            )
            self._db.connection.commit()
