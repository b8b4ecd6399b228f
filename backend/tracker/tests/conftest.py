from datetime import UTC, datetime
from typing import Any

from shared.dal.models import Game, GameRecord, RawRecordRow

# ============================================================================
# Test Builder Helpers
# ============================================================================


def create_game(
    game_id: str = "wordle",
    display_name: str = "Wordle",
    *,
    score_types: dict[str, dict[str, float]] | None = None,
    reset_time: str = "00:00",
    is_asynchronous: bool = False,
    is_failable: bool = True,
    **kwargs: Any,
) -> Game:
    return Game(
        game_id=game_id,
        display_name=display_name,
        score_types={"puzzle1": {"attempts": 6}} if score_types is None else score_types,
        reset_time=reset_time,
        is_asynchronous=is_asynchronous,
        is_failable=is_failable,
        **kwargs,
    )


def create_record(
    created_at: str,
    *,
    record_id: str | None = None,
    user_id: str = "u1",
    game_id: str = "wordle",
    failed: bool = False,
    attempts: int | None = None,
    scores: dict[str, dict[str, Any]] | None = None,
) -> GameRecord:
    if scores is None and attempts is not None:
        scores = {"puzzle1": {"attempts": attempts}}
    return GameRecord(
        record_id=record_id or f"r-{user_id}-{created_at}",
        game_id=game_id,
        user_id=user_id,
        failed=failed,
        scores=scores,
        created_at=created_at,
    )


def create_row(
    created_at: str,
    *,
    record_id: str = "",
    user_id: str = "u1",
    game_id: str = "wordle",
    failed: bool = False,
    attempts: int | None = None,
    display_name: str | None = None,
) -> RawRecordRow:
    return RawRecordRow(
        record_id=record_id,
        user_id=user_id,
        game_id=game_id,
        scores={"puzzle1": {"attempts": attempts}} if attempts is not None else None,
        failed=failed,
        created_at=created_at,
        display_name=display_name,
    )


def utc(year: int, month: int, day: int, hour: int = 12, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=UTC)
