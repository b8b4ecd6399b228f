"""Tests for SqliteRecordRepository and its row mapping."""

from __future__ import annotations

import json
import sqlite3
from datetime import UTC, datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from shared.dal.models import GameRecord, RecordMetadata, ShareTextEntry, UserProfile
from shared.db.connection import Database
from shared.db.record_repository import SqliteRecordRepository, record_to_row, row_to_record
from shared.db.user_repository import SqliteUserRepository
from shared.errors import BackendError, PartialSaveError

WORDLE_TEXT = "Wordle 1,000 3/6\n\n\u2b1b\U0001f7e8\u2b1b\u2b1b\u2b1b\n\U0001f7e9\U0001f7e9\U0001f7e9\U0001f7e9\U0001f7e9"


def _record(
    record_id: str = "r1",
    user_id: str = "u1",
    game_id: str = "wordle",
    created_at: str = "2024-03-01T10:00:00+00:00",
    **kwargs,
) -> GameRecord:
    return GameRecord(record_id=record_id, user_id=user_id, game_id=game_id, created_at=created_at, **kwargs)


@pytest.fixture
def db():
    db = Database(":memory:")
    db.connect()
    yield db
    db.close()


@pytest.fixture
def repo(db: Database) -> SqliteRecordRepository:
    return SqliteRecordRepository(db)


class TestRowMapping:
    def test_share_text_moves_to_its_own_column(self) -> None:
        entry = ShareTextEntry(
            name="puzzle1",
            share_text=WORDLE_TEXT,
            scores={"puzzle1": {"attempts": 3}},
            puzzle_number="1000",
            max_attempts=6,
        )
        record = _record(scores={"puzzle1": {"attempts": 3}}, metadata=RecordMetadata(share_texts=[entry]))

        row = record_to_row(record)

        metadata = json.loads(row[5])
        assert metadata["share_texts"] == [{"name": "puzzle1", "failed": False, "puzzle_number": "1000"}]
        assert json.loads(row[6]) == {"puzzle1": WORDLE_TEXT}

    def test_round_trip_reattaches_share_text(self) -> None:
        entry = ShareTextEntry(name="puzzle1", share_text=WORDLE_TEXT, puzzle_number="1000")
        record = _record(scores={"puzzle1": {"attempts": 3}}, metadata=RecordMetadata(share_texts=[entry]))

        restored = row_to_record(record_to_row(record))

        assert restored.metadata.share_texts[0].share_text == WORDLE_TEXT
        assert restored.scores == {"puzzle1": {"attempts": 3}}

    def test_empty_metadata_is_null(self) -> None:
        row = record_to_row(_record())
        assert row[4] is None
        assert row[5] is None
        assert row[6] is None

    def test_legacy_plain_share_text_column(self) -> None:
        metadata = json.dumps({"share_texts": [{"name": "puzzle1"}]})
        row = ("r1", "u1", "wordle", 0, None, metadata, "Wordle 1,000 3/6", "2024-03-01", None)

        restored = row_to_record(row)

        assert restored.metadata.share_texts[0].share_text == "Wordle 1,000 3/6"


class TestSaveAndList:
    async def test_save_and_get(self, repo: SqliteRecordRepository) -> None:
        record = _record(failed=True, scores={"puzzle1": {"attempts": -1}})
        await repo.save_record(record)

        assert await repo.get_record("r1") == record

    async def test_save_replaces_whole_record(self, repo: SqliteRecordRepository) -> None:
        await repo.save_record(_record(scores={"puzzle1": {"attempts": 5}}))
        await repo.save_record(_record(scores={"puzzle1": {"attempts": 2}}, updated_at="2024-03-01T11:00:00+00:00"))

        stored = await repo.get_record("r1")
        assert stored is not None
        assert stored.scores == {"puzzle1": {"attempts": 2}}
        assert stored.updated_at == "2024-03-01T11:00:00+00:00"

    async def test_list_is_oldest_first_and_filtered(self, repo: SqliteRecordRepository) -> None:
        await repo.save_record(_record("r2", created_at="2024-03-02T10:00:00+00:00"))
        await repo.save_record(_record("r1", created_at="2024-03-01T10:00:00+00:00"))
        await repo.save_record(_record("r3", game_id="angle"))
        await repo.save_record(_record("r4", user_id="u2"))

        assert [r.record_id for r in await repo.list_records("u1")] == ["r1", "r3", "r2"]
        assert [r.record_id for r in await repo.list_records("u1", "wordle")] == ["r1", "r2"]

    async def test_delete_only_own_record(self, repo: SqliteRecordRepository) -> None:
        await repo.save_record(_record())

        assert await repo.delete_record("r1", "someone-else") is False
        assert await repo.delete_record("r1", "u1") is True
        assert await repo.get_record("r1") is None

    async def test_clear_user_records(self, repo: SqliteRecordRepository) -> None:
        await repo.save_record(_record("r1"))
        await repo.save_record(_record("r2", game_id="angle"))
        await repo.save_record(_record("r3", user_id="u2"))

        assert await repo.clear_user_records("u1") == 2
        assert await repo.list_records("u1") == []
        assert len(await repo.list_records("u2")) == 1


class TestSaveRecords:
    async def test_saves_all(self, repo: SqliteRecordRepository) -> None:
        await repo.save_records([_record("r1"), _record("r2")])
        assert len(await repo.list_records("u1")) == 2

    async def test_partial_failure_names_unsaved_ids(self, repo: SqliteRecordRepository) -> None:
        original = repo._upsert
        calls = 0

        def flaky_upsert(record: GameRecord) -> None:
            nonlocal calls
            calls += 1
            if calls == 2:
                raise BackendError("Failed to save record")
            original(record)

        with patch.object(repo, "_upsert", side_effect=flaky_upsert), pytest.raises(PartialSaveError) as exc_info:
            await repo.save_records([_record("r1"), _record("r2"), _record("r3")])

        assert exc_info.value.saved_ids == ["r1"]
        assert exc_info.value.unsaved_ids == ["r2", "r3"]
        assert await repo.get_record("r1") is not None

    async def test_sqlite_error_becomes_backend_error(self, repo: SqliteRecordRepository, db: Database) -> None:
        db.connection.execute("DROP TABLE game_records")

        with pytest.raises(BackendError) as exc_info:
            await repo.save_record(_record())
        assert isinstance(exc_info.value.__cause__, sqlite3.Error)


class TestQueryRows:
    async def test_joins_owner_identity(self, db: Database, repo: SqliteRecordRepository) -> None:
        await SqliteUserRepository(db).save_user(UserProfile(user_id="u1", display_name="Alice", avatar_url="a.png"))
        await repo.save_record(_record(scores={"puzzle1": {"attempts": 3}}))
        await repo.save_record(_record("r2", user_id="ghost"))

        rows = await repo.query_rows("wordle")

        by_user = {row.user_id: row for row in rows}
        assert by_user["u1"].display_name == "Alice"
        assert by_user["u1"].scores == {"puzzle1": {"attempts": 3}}
        assert by_user["ghost"].display_name is None
        assert by_user["ghost"].record_id == "r2"

    async def test_since_filters_by_utc_date(self, repo: SqliteRecordRepository) -> None:
        await repo.save_record(_record("old", created_at="2024-02-29T23:00:00+00:00"))
        await repo.save_record(_record("new", created_at="2024-03-01T08:00:00+00:00"))

        # 01:00 on 1 March at +02:00 is still 29 February in UTC.
        since = datetime(2024, 3, 1, 1, 0, tzinfo=timezone(timedelta(hours=2)))
        rows = await repo.query_rows("wordle", since=since)
        assert len(rows) == 2

        rows = await repo.query_rows("wordle", since=datetime(2024, 3, 1, tzinfo=UTC))
        assert [row.created_at for row in rows] == ["2024-03-01T08:00:00+00:00"]

    async def test_user_filter(self, repo: SqliteRecordRepository) -> None:
        await repo.save_record(_record("r1", user_id="u1"))
        await repo.save_record(_record("r2", user_id="u2"))
        await repo.save_record(_record("r3", user_id="u3"))

        rows = await repo.query_rows("wordle", user_ids={"u1", "u3"})
        assert sorted(row.user_id for row in rows) == ["u1", "u3"]

    async def test_empty_user_filter_matches_nothing(self, repo: SqliteRecordRepository) -> None:
        await repo.save_record(_record())
        assert await repo.query_rows("wordle", user_ids=set()) == []


class TestListGameIds:
    async def test_distinct_and_sorted(self, repo: SqliteRecordRepository) -> None:
        await repo.save_record(_record("r1", game_id="wordle"))
        await repo.save_record(_record("r2", game_id="angle"))
        await repo.save_record(_record("r3", game_id="wordle", user_id="u2"))

        assert await repo.list_game_ids() == ["angle", "wordle"]

    async def test_since_and_limit(self, repo: SqliteRecordRepository) -> None:
        await repo.save_record(_record("r1", game_id="wordle", created_at="2024-01-01T10:00:00+00:00"))
        await repo.save_record(_record("r2", game_id="angle", created_at="2024-03-01T10:00:00+00:00"))
        await repo.save_record(_record("r3", game_id="worldle", created_at="2024-03-02T10:00:00+00:00"))

        assert await repo.list_game_ids(since=datetime(2024, 2, 1, tzinfo=UTC)) == ["angle", "worldle"]
        assert await repo.list_game_ids(limit=1) == ["angle"]
