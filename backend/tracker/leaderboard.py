"""Cross-user leaderboard ranking for one game.

Leaderboard streaks use the calendar date written in each record's timestamp,
without the game's reset time or the viewer's timezone. Per-user streaks in
``tracker.streaks`` do apply that policy, so the two can disagree around the
reset boundary. Whether the leaderboard should adopt the reset policy is an
open product question.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel

from tracker.puzzle_day import parse_timestamp
from tracker.stats import AVERAGE_PRECISION, is_numeric
from tracker.streaks import DataQualityIssue, leading_run, longest_run

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    from shared.dal.models import RawRecordRow, ScoreMap

logger = structlog.get_logger()

DEFAULT_LIMIT = 100
RANKING_CEILING = 1000
NOT_RANKED = -1


class LeaderboardEntry(BaseModel, frozen=True):
    user_id: str
    display_name: str | None = None
    avatar_url: str | None = None
    game_id: str
    game_name: str | None = None
    total_wins: int
    total_played: int
    win_rate: float  # percent, 0-100
    current_streak: int
    max_streak: int
    average_score: float | None = None
    last_played: date | None = None


class UserRanking(BaseModel, frozen=True):
    rank: int  # 1-based, NOT_RANKED when the user has no entry
    total_users: int
    entry: LeaderboardEntry | None = None


@dataclass
class _Tally:
    user_id: str
    display_name: str | None
    avatar_url: str | None
    played: int = 0
    wins: int = 0
    scores: list[float] = field(default_factory=list)
    dates: set[date] = field(default_factory=set)

    def to_entry(self, game_id: str, game_name: str | None) -> LeaderboardEntry:
        dates_desc = sorted(self.dates, reverse=True)
        average = round(sum(self.scores) / len(self.scores), AVERAGE_PRECISION) if self.scores else None
        return LeaderboardEntry(
            user_id=self.user_id,
            display_name=self.display_name,
            avatar_url=self.avatar_url,
            game_id=game_id,
            game_name=game_name,
            total_wins=self.wins,
            total_played=self.played,
            win_rate=self.wins / self.played * 100 if self.played else 0,
            current_streak=leading_run(dates_desc),
            max_streak=longest_run(dates_desc),
            average_score=average,
            last_played=dates_desc[0] if dates_desc else None,
        )


def primary_score(scores: ScoreMap | None) -> float | None:
    """First field of the first puzzle key, when it is numeric."""
    if not scores:
        return None
    fields = next(iter(scores.values()))
    if not fields:
        return None
    value = next(iter(fields.values()))
    return value if is_numeric(value) else None


@dataclass(frozen=True)
class RankedRows:
    entries: list[LeaderboardEntry]
    # rows left out of every tally
    issues: tuple[DataQualityIssue, ...] = ()


def rank_rows(
    rows: Iterable[RawRecordRow],
    limit: int = DEFAULT_LIMIT,
    since: datetime | None = None,
    *,
    game_id: str,
    game_name: str | None = None,
) -> RankedRows:
    """Aggregate rows per user and rank them.

    Rows before ``since`` are ignored. Rows with an unreadable ``created_at``
    are reported as issues. Order is most wins first, then higher win rate,
    then user id so equal entries keep a stable order.
    """
    tallies: dict[str, _Tally] = {}
    issues: list[DataQualityIssue] = []
    for row in rows:
        try:
            instant = parse_timestamp(row.created_at)
        except ValueError:
            logger.warning(
                "leaderboard row has unreadable created_at, skipped",
                record_id=row.record_id,
                game_id=game_id,
            )
            issues.append(DataQualityIssue(row.record_id, f"unreadable created_at {row.created_at!r}"))
            continue
        if since is not None and instant < since:
            continue

        tally = tallies.get(row.user_id)
        if tally is None:
            tally = tallies[row.user_id] = _Tally(row.user_id, row.display_name, row.avatar_url)
        tally.played += 1
        tally.dates.add(instant.date())
        if not row.failed:
            tally.wins += 1
            score = primary_score(row.scores)
            if score is not None:
                tally.scores.append(score)

    entries = [tally.to_entry(game_id, game_name) for tally in tallies.values()]
    entries.sort(key=lambda e: (-e.total_wins, -e.win_rate, e.user_id))
    return RankedRows(entries[:limit], tuple(issues))


def rank_entries(
    rows: Iterable[RawRecordRow],
    limit: int = DEFAULT_LIMIT,
    since: datetime | None = None,
    *,
    game_id: str,
    game_name: str | None = None,
) -> list[LeaderboardEntry]:
    return rank_rows(rows, limit, since, game_id=game_id, game_name=game_name).entries


def locate_user(entries: list[LeaderboardEntry], user_id: str) -> UserRanking:
    for position, entry in enumerate(entries, start=1):
        if entry.user_id == user_id:
            return UserRanking(rank=position, total_users=len(entries), entry=entry)
    return UserRanking(rank=NOT_RANKED, total_users=len(entries), entry=None)


def user_ranking(
    rows: Iterable[RawRecordRow],
    user_id: str,
    *,
    game_id: str,
    game_name: str | None = None,
    ceiling: int = RANKING_CEILING,
) -> UserRanking:
    """The user's 1-based place among the top ``ceiling`` entries."""
    entries = rank_entries(rows, ceiling, game_id=game_id, game_name=game_name)
    return locate_user(entries, user_id)
