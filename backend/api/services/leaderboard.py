"""Leaderboards across users, per game and for every played game at once."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from shared.errors import NotFoundError
from tracker.fanout import gather_settled
from tracker.leaderboard import DEFAULT_LIMIT, RANKING_CEILING, rank_rows, user_ranking

if TYPE_CHECKING:
    from datetime import datetime

    from shared.dal.game_repository import GameRepository
    from shared.dal.record_repository import RecordRepository
    from tracker.leaderboard import LeaderboardEntry, RankedRows, UserRanking
    from tracker.streaks import DataQualityIssue

logger = structlog.get_logger()

MAX_LIMIT = 500


@dataclass(frozen=True)
class GameLeaderboard:
    game_id: str
    game_name: str
    entries: list[LeaderboardEntry]
    # rows that could not be counted
    issues: tuple[DataQualityIssue, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "game_id": self.game_id,
            "game_name": self.game_name,
            "entries": [entry.model_dump(mode="json") for entry in self.entries],
            "issues": [{"record_id": issue.record_id, "reason": issue.reason} for issue in self.issues],
        }


@dataclass(frozen=True)
class AllGamesLeaderboard:
    leaderboards: list[GameLeaderboard] = field(default_factory=list)
    # games whose aggregation failed and are missing from ``leaderboards``
    failed_game_ids: list[str] = field(default_factory=list)


class LeaderboardService:
    """Fetch record rows and rank them with ``tracker.leaderboard``."""

    def __init__(
        self,
        records: RecordRepository,
        games: GameRepository,
        *,
        ranking_ceiling: int = RANKING_CEILING,
    ) -> None:
        self._records = records
        self._games = games
        self._ranking_ceiling = ranking_ceiling

    async def _rank_game(
        self,
        game_id: str,
        game_name: str,
        limit: int,
        since: datetime | None,
        user_ids: set[str] | None,
    ) -> RankedRows:
        rows = await self._records.query_rows(game_id, since=since, user_ids=user_ids)
        return rank_rows(rows, limit, since, game_id=game_id, game_name=game_name)

    async def game_leaderboard(
        self,
        game_id: str,
        limit: int = DEFAULT_LIMIT,
        offset: int = 0,
        since: datetime | None = None,
        user_ids: set[str] | None = None,
    ) -> GameLeaderboard:
        """Ranked entries for one game. ``user_ids`` restricts the rows to those users."""
        game = await self._games.get_game(game_id)
        if game is None:
            raise NotFoundError(f"Unknown game '{game_id}'")
        ranked = await self._rank_game(game_id, game.display_name, limit + offset, since, user_ids)
        return GameLeaderboard(game_id, game.display_name, ranked.entries[offset:], ranked.issues)

    async def all_games_leaderboard(
        self,
        limit: int = DEFAULT_LIMIT,
        offset: int = 0,
        since: datetime | None = None,
        user_ids: set[str] | None = None,
    ) -> AllGamesLeaderboard:
        """One leaderboard per game played since ``since``.

        Finding the played games must succeed. After that every game is
        ranked concurrently, and a game that fails is left out and reported
        in ``failed_game_ids`` instead of failing the whole board.
        """
        game_ids = await self._records.list_game_ids(since)
        names = {game.game_id: game.display_name for game in await self._games.list_games()}

        outcome = await gather_settled(
            {
                game_id: self._rank_game(game_id, names.get(game_id, game_id), limit + offset, since, user_ids)
                for game_id in game_ids
            },
        )
        for game_id, exc in outcome.failures.items():
            logger.warning("leaderboard aggregation failed for game", game_id=game_id, error=str(exc))

        leaderboards = [
            GameLeaderboard(game_id, names.get(game_id, game_id), ranked.entries[offset:], ranked.issues)
            for game_id, ranked in outcome.results.items()
            if ranked.entries[offset:]
        ]
        return AllGamesLeaderboard(leaderboards=leaderboards, failed_game_ids=list(outcome.failures))

    async def user_ranking(self, user_id: str, game_id: str) -> UserRanking:
        game = await self._games.get_game(game_id)
        if game is None:
            raise NotFoundError(f"Unknown game '{game_id}'")
        rows = await self._records.query_rows(game_id)
        return user_ranking(
            rows,
            user_id,
            game_id=game_id,
            game_name=game.display_name,
            ceiling=self._ranking_ceiling,
        )
