"""SQLite-backed game catalogue repository."""

from __future__ import annotations

import asyncio
import sqlite3
from typing import TYPE_CHECKING

import structlog

from shared.dal.game_repository import GameRepository
from shared.dal.models import Game
from shared.errors import BackendError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from shared.db.connection import Database

logger = structlog.get_logger()


class SqliteGameRepository(GameRepository):
    """SQLite implementation of GameRepository. Each game is stored as a JSON document."""

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def get_game(self, game_id: str) -> Game | None:
        row = self._db.connection.execute("SELECT data FROM games WHERE id = ?", (game_id,)).fetchone()
        if row is None:
            return None
        return Game.model_validate_json(row[0])

    async def list_games(self) -> list[Game]:
        rows = self._db.connection.execute("SELECT data FROM games ORDER BY id").fetchall()
        return [Game.model_validate_json(row[0]) for row in rows]

    async def save_games(self, games: Sequence[Game]) -> None:
        async with self._lock:
            try:
                self._db.connection.executemany(
                    "INSERT OR REPLACE INTO games (id, data) VALUES (?, ?)",
                    [(game.game_id, game.model_dump_json()) for game in games],
                )
                self._db.connection.commit()
            except sqlite3.Error as exc:
                self._db.connection.rollback()
                raise BackendError("Failed to save games") from exc

    async def delete_game(self, game_id: str) -> bool:
        async with self._lock:
            cursor = self._db.connection.execute("DELETE FROM games WHERE id = ?", (game_id,))
            self._db.connection.commit()
        if cursor.rowcount == 0:
            logger.warning("delete_game had no effect (not found)", game_id=game_id)
        return cursor.rowcount > 0
