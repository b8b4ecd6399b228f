"""SQLite-backed game record repository."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from datetime import UTC
from typing import TYPE_CHECKING, Any

import structlog

from shared.dal.models import GameRecord, RawRecordRow
from shared.dal.record_repository import MAX_DISTINCT_GAMES, RecordRepository
from shared.errors import BackendError, PartialSaveError

if TYPE_CHECKING:
    from collections.abc import Collection, Sequence
    from datetime import datetime

    from shared.db.connection import Database

logger = structlog.get_logger()

# Metadata entry keys that live elsewhere in the row and are not duplicated.
_ENTRY_KEYS_STORED_ELSEWHERE = {"share_text", "scores", "max_attempts"}
# Puzzle key a legacy plain-string share_text column belongs to.
_LEGACY_SHARE_TEXT_KEY = "puzzle1"

_RECORD_COLUMNS = "id, user_id, game_id, failed, scores, metadata, share_text, created_at, updated_at"


def record_to_row(record: GameRecord) -> tuple[Any, ...]:
    """Map a record to its column values.

    Raw share texts move into the ``share_text`` column keyed by entry name;
    the metadata column keeps the remaining entry fields, or NULL when there
    is nothing to keep.
    """
    share_texts: dict[str, str] = {}
    entries: list[dict[str, Any]] = []
    for entry in record.metadata.share_texts:
        if entry.share_text:
            share_texts[entry.name] = entry.share_text
        entries.append(entry.model_dump(exclude=_ENTRY_KEYS_STORED_ELSEWHERE, exclude_none=True))

    metadata: dict[str, Any] | None = None
    if entries or record.metadata.has_invalid_share_text:
        metadata = {"share_texts": entries, "has_invalid_share_text": record.metadata.has_invalid_share_text}

    return (
        record.record_id,
        record.user_id,
        record.game_id,
        int(record.failed),
        json.dumps(record.scores) if record.scores else None,
        json.dumps(metadata) if metadata is not None else None,
        json.dumps(share_texts) if share_texts else None,
        record.created_at,
        record.updated_at,
    )


def row_to_record(row: sqlite3.Row | tuple[Any, ...]) -> GameRecord:
    """Rebuild a record from its columns, re-attaching share texts to their entries."""
    record_id, user_id, game_id, failed, scores, metadata, share_text, created_at, updated_at = row
    metadata_data: dict[str, Any] = json.loads(metadata) if metadata else {}
    share_texts = _decode_share_text(share_text)

    entries = metadata_data.get("share_texts", [])
    for entry in entries:
        text = share_texts.get(entry.get("name"))
        if text is not None:
            entry["share_text"] = text

    return GameRecord.model_validate(
        {
            "record_id": record_id,
            "user_id": user_id,
            "game_id": game_id,
            "failed": bool(failed),
            "scores": json.loads(scores) if scores else None,
            "metadata": {
                "share_texts": entries,
                "has_invalid_share_text": metadata_data.get("has_invalid_share_text", False),
            },
            "created_at": created_at,
            "updated_at": updated_at,
        },
    )


def _decode_share_text(raw: str | None) -> dict[str, str]:
    if not raw:
        return {}
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError:
        return {_LEGACY_SHARE_TEXT_KEY: raw}
    if isinstance(decoded, str):
        return {_LEGACY_SHARE_TEXT_KEY: decoded}
    if isinstance(decoded, dict):
        return {str(k): v for k, v in decoded.items() if isinstance(v, str)}
    return {}


class SqliteRecordRepository(RecordRepository):
    """SQLite implementation of RecordRepository.

    Each record is one row; scores, metadata and share texts are JSON columns.
    Writes are serialized behind an asyncio lock.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def get_record(self, record_id: str) -> GameRecord | None:
        row = self._db.connection.execute(
            f"SELECT {_RECORD_COLUMNS} FROM game_records WHERE id = ?",  # noqa: S608
            (record_id,),
        ).fetchone()
        if row is None:
            return None
        return row_to_record(row)

    async def list_records(self, user_id: str, game_id: str | None = None) -> list[GameRecord]:
        sql = f"SELECT {_RECORD_COLUMNS} FROM game_records WHERE user_id = ?"  # noqa: S608
        params: list[Any] = [user_id]
        if game_id is not None:
            sql += " AND game_id = ?"
            params.append(game_id)
        sql += " ORDER BY created_at ASC"
        rows = self._db.connection.execute(sql, params).fetchall()
        return [row_to_record(row) for row in rows]

    async def save_record(self, record: GameRecord) -> None:
        async with self._lock:
            self._upsert(record)

    async def save_records(self, records: Sequence[GameRecord]) -> None:
        saved: list[str] = []
        for index, record in enumerate(records):
            try:
                await self.save_record(record)
            except BackendError as exc:
                unsaved = [r.record_id for r in records[index:]]
                logger.warning(
                    "batch save stopped part-way",
                    failed_record_id=record.record_id,
                    saved=len(saved),
                    unsaved=len(unsaved),
                )
                msg = f"Saved {len(saved)} of {len(records)} records"
                raise PartialSaveError(msg, saved_ids=saved, unsaved_ids=unsaved) from exc
            saved.append(record.record_id)

    def _upsert(self, record: GameRecord) -> None:
        try:
            self._db.connection.execute(
                f"INSERT OR REPLACE INTO game_records ({_RECORD_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",  # noqa: S608
                record_to_row(record),
            )
            self._db.connection.commit()
        except sqlite3.Error as exc:
            self._db.connection.rollback()
            msg = f"Failed to save record {record.record_id}"
            raise BackendError(msg) from exc

    async def delete_record(self, record_id: str, user_id: str) -> bool:
        async with self._lock:
            cursor = self._db.connection.execute(
                "DELETE FROM game_records WHERE id = ? AND user_id = ?",
                (record_id, user_id),
            )
            self._db.connection.commit()
        return cursor.rowcount > 0

    async def clear_user_records(self, user_id: str) -> int:
        async with self._lock:
            cursor = self._db.connection.execute("DELETE FROM game_records WHERE user_id = ?", (user_id,))
            self._db.connection.commit()
        if cursor.rowcount:
            logger.info("cleared user records", user_id=user_id, count=cursor.rowcount)
        return cursor.rowcount

    async def query_rows(
        self,
        game_id: str,
        since: datetime | None = None,
        user_ids: Collection[str] | None = None,
    ) -> list[RawRecordRow]:
        """Fetch leaderboard rows for a game.

        ``since`` narrows by calendar date only; the exact instant comparison
        happens during aggregation because stored timestamps vary in format.
        """
        if user_ids is not None and not user_ids:
            return []
        sql = (
            "SELECT r.id, r.user_id, r.game_id, r.scores, r.failed, r.created_at, u.display_name, u.avatar_url "
            "FROM game_records r LEFT JOIN users u ON u.id = r.user_id "
            "WHERE r.game_id = ?"
        )
        params: list[Any] = [game_id]
        if since is not None:
            sql += " AND r.created_at >= ?"
            params.append(_since_date(since))
        if user_ids is not None:
            ids = sorted(user_ids)
            sql += f" AND r.user_id IN ({', '.join('?' for _ in ids)})"
            params.extend(ids)
        sql += " ORDER BY r.created_at ASC"

        rows = self._db.connection.execute(sql, params).fetchall()
        return [
            RawRecordRow(
                record_id=record_id,
                user_id=user_id,
                game_id=row_game_id,
                scores=json.loads(scores) if scores else None,
                failed=bool(failed),
                created_at=created_at,
                display_name=display_name,
                avatar_url=avatar_url,
            )
            for record_id, user_id, row_game_id, scores, failed, created_at, display_name, avatar_url in rows
        ]

    async def list_game_ids(self, since: datetime | None = None, limit: int = MAX_DISTINCT_GAMES) -> list[str]:
        sql = "SELECT DISTINCT game_id FROM game_records"
        params: list[Any] = []
        if since is not None:
            sql += " WHERE created_at >= ?"
            params.append(_since_date(since))
        sql += " ORDER BY game_id LIMIT ?"
        params.append(limit)
        return [row[0] for row in self._db.connection.execute(sql, params).fetchall()]


def _since_date(since: datetime) -> str:
    """UTC calendar date of ``since``, for a coarse text comparison against stored timestamps."""
    if since.tzinfo is not None:
        since = since.astimezone(UTC)
    return since.date().isoformat()
