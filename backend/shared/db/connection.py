"""SQLite database connection and schema management."""

import json
import os
import sqlite3
from pathlib import Path

import structlog

from shared.dal.models import Game

logger = structlog.get_logger()

MEMORY_DATABASE = ":memory:"

_DB_FILE_PERMISSIONS = 0o600

_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    display_name TEXT,
    avatar_url TEXT,
    email TEXT
);

CREATE TABLE IF NOT EXISTS games (
    id TEXT PRIMARY KEY,
    data TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS game_records (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    game_id TEXT NOT NULL,
    failed INTEGER NOT NULL DEFAULT 0,
    scores TEXT,
    metadata TEXT,
    share_text TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_game_records_user_game
    ON game_records (user_id, game_id, created_at);

CREATE INDEX IF NOT EXISTS idx_game_records_game_created
    ON game_records (game_id, created_at);

CREATE TABLE IF NOT EXISTS follows (
    follower_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    created_at TEXT NOT NULL,
    PRIMARY KEY (follower_id, user_id)
);

CREATE INDEX IF NOT EXISTS idx_follows_user
    ON follows (user_id, created_at);
"""


class Database:
    """SQLite database wrapper with schema management and catalogue seeding."""

    def __init__(self, path: str | Path) -> None:
        self._path = str(path)
        self._conn: sqlite3.Connection | None = None

    @property
    def connection(self) -> sqlite3.Connection:
        """Return the active connection or raise if disconnected."""
        if self._conn is None:
            raise RuntimeError("Database is not connected")
        return self._conn

    @property
    def is_memory(self) -> bool:
        return self._path == MEMORY_DATABASE

    def connect(self) -> None:
        """Open the database, apply pragmas, create schema, and harden file permissions."""
        if not self.is_memory:
            Path(self._path).parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(self._path, check_same_thread=False)
        if not self.is_memory:
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA busy_timeout=5000")
        self._conn.executescript(_SCHEMA_SQL)

        if not self.is_memory:
            self._harden_permissions()

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def seed_games(self, games_file: str | None) -> int:
        """Load the game catalogue from a JSON array file into an empty games table.

        Returns the number of games inserted. Skips seeding when the path is
        None, the file does not exist, or the table already has data. The
        whole file is inserted in one transaction.
        """
        if games_file is None:
            return 0

        json_path = Path(games_file)
        if not json_path.exists():
            return 0

        conn = self.connection
        row = conn.execute("SELECT COUNT(*) FROM games").fetchone()
        if row[0] > 0:
            logger.info("games table already has data, skipping seed")
            return 0

        games = self._parse_games_file(json_path)
        try:
            conn.execute("BEGIN")
            conn.executemany(
                "INSERT INTO games (id, data) VALUES (?, ?)",
                [(game.game_id, game.model_dump_json()) for game in games],
            )
            conn.execute("COMMIT")
        except sqlite3.Error:
            conn.execute("ROLLBACK")
            raise

        logger.info("seeded game catalogue", count=len(games), path=games_file)
        return len(games)

    @staticmethod
    def _parse_games_file(json_path: Path) -> list[Game]:
        try:
            data = json.loads(json_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            msg = f"Failed to read game catalogue: {json_path}"
            raise OSError(msg) from exc

        if not isinstance(data, list):
            msg = f"Expected JSON array at root in {json_path}"
            raise OSError(msg)

        games: list[Game] = []
        for index, entry in enumerate(data):
            try:
                games.append(Game.model_validate(entry))
            except ValueError as exc:
                msg = f"Invalid game entry at index {index} in {json_path}"
                raise OSError(msg) from exc
        return games

    def _harden_permissions(self) -> None:
        """Set restrictive file permissions on the DB and its WAL/SHM siblings (POSIX, best effort)."""
        if os.name != "posix":  # pragma: no cover
            return
        for suffix in ("", "-wal", "-shm"):
            p = Path(self._path + suffix)
            if p.exists():
                try:
                    p.chmod(_DB_FILE_PERMISSIONS)
                except OSError:
                    logger.warning("could not set file permissions", permissions=oct(_DB_FILE_PERMISSIONS), path=str(p))
