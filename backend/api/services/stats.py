"""Per-user statistics for one game."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from shared.errors import NotFoundError
from tracker.stats import compute_game_stats

if TYPE_CHECKING:
    from datetime import datetime, tzinfo

    from shared.dal.game_repository import GameRepository
    from shared.dal.record_repository import RecordRepository
    from tracker.stats import GameStats

logger = structlog.get_logger()


class StatsService:
    def __init__(self, records: RecordRepository, games: GameRepository) -> None:
        self._records = records
        self._games = games

    async def game_stats(
        self,
        user_id: str,
        game_id: str,
        now: datetime,
        tz: tzinfo,
        score_field: str | None = None,
    ) -> GameStats:
        game = await self._games.get_game(game_id)
        if game is None:
            raise NotFoundError(f"Unknown game '{game_id}'")
        records = await self._records.list_records(user_id, game_id)
        result = compute_game_stats(records, game, now, tz, score_field)
        if result.stats.issues:
            logger.warning(
                "stats computed with excluded records",
                user_id=user_id,
                game_id=game_id,
                excluded=len(result.stats.issues),
            )
        return result
